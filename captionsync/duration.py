"""Resolves the playable duration of an audio source."""

import asyncio
import logging
from typing import Optional

import ffmpeg

from .exceptions import DurationResolutionError

logger = logging.getLogger(__name__)

class DurationResolver:
    """
    Asks ffprobe for the duration of a file or URL.

    The probed duration is authoritative for the render length; caption
    timestamps may end well before the audio does.
    """

    def __init__(self, ffprobe_path: Optional[str] = None):
        self.ffprobe_cmd = ffprobe_path or 'ffprobe'

    def probe(self, source: str) -> float:
        try:
            info = ffmpeg.probe(source, cmd=self.ffprobe_cmd)
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            raise DurationResolutionError(f"ffprobe failed for {source}: {stderr_output}") from e
        except FileNotFoundError as e:
            raise DurationResolutionError(f"ffprobe executable not found: {self.ffprobe_cmd}") from e

        try:
            duration = float(info['format']['duration'])
        except (KeyError, TypeError, ValueError) as e:
            raise DurationResolutionError(f"ffprobe reported no duration for {source}") from e
        if duration <= 0:
            raise DurationResolutionError(f"Non-positive duration {duration} for {source}")
        return duration

    async def resolve(self, source: str) -> float:
        """Returns the duration of ``source`` in seconds without blocking the event loop."""
        duration = await asyncio.to_thread(self.probe, source)
        logger.debug(f"Resolved duration of {source}: {duration:.3f}s")
        return duration
