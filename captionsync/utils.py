"""Utility functions for CaptionSync."""

import math
import os
import logging
from .exceptions import FileSystemError

logger = logging.getLogger(__name__)

# Digits kept before ceiling so that 0.9 * 30 lands on frame 27, not 28.
FRAME_ROUNDING_DIGITS = 6

def ensure_dir_exists(dir_path: str) -> bool:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Returns:
        True if the directory was created by this call, False if it already existed.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
            return True
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
        return False
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def artifact_path_for(source: str, suffix: str = '.json') -> str:
    """
    Returns the caption artifact path for a source path or URL.

    The artifact lives next to the source with the same base name; only the
    extension is replaced.
    """
    base, ext = os.path.splitext(source)
    if not ext:
        return source + suffix
    return base + suffix

def seconds_to_frames(seconds: float, fps: float) -> int:
    """
    Converts a time in seconds to a frame index, rounding up.

    A caption never appears before its true onset, so the conversion is a
    ceiling; float noise is trimmed first.
    """
    return int(math.ceil(round(seconds * fps, FRAME_ROUNDING_DIGITS)))
