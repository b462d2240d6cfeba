"""Converts media files to the mono 16kHz WAV that transcription expects."""

import contextlib
import ffmpeg
import os
import shutil
import logging
from typing import Iterator, Optional

from .exceptions import AudioExtractionError
from .models import Workspace
from .utils import ensure_dir_exists

logger = logging.getLogger(__name__)

class AudioNormalizer:
    """Extracts and resamples the audio track of any supported media file."""

    def __init__(self, ffmpeg_path: Optional[str] = None, sample_rate: int = 16000, channels: int = 1):
        """
        Initializes the AudioNormalizer.

        Args:
            ffmpeg_path: Optional path to the ffmpeg executable.
                         If None, assumes ffmpeg is in the system PATH.
            sample_rate: Output sample rate in Hz.
            channels: Output channel count.
        """
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.sample_rate = sample_rate
        self.channels = channels
        logger.info(f"Using ffmpeg command: {self.ffmpeg_cmd}")

    def normalize(self, source_path: str, output_path: str) -> str:
        """
        Writes the audio of ``source_path`` to ``output_path`` as 16-bit PCM WAV.

        Args:
            source_path: Path to the input audio or video file.
            output_path: Destination WAV path. Overwritten if present.

        Returns:
            ``output_path``.

        Raises:
            FileNotFoundError: If the input file does not exist.
            AudioExtractionError: If ffmpeg fails.
        """
        logger.info(f"Normalizing audio for: {source_path}")
        if not os.path.exists(source_path):
            raise FileNotFoundError(f"Input media file not found: {source_path}")

        try:
            (
                ffmpeg
                .input(source_path)
                .output(output_path, acodec='pcm_s16le', ar=self.sample_rate, ac=self.channels)
                .overwrite_output()
                .run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
            )
            logger.info(f"Normalized audio written to: {output_path}")
            return output_path
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffmpeg failed for {source_path}: {stderr_output}")
            self._remove_partial(output_path)
            raise AudioExtractionError(f"ffmpeg failed for {source_path}: {stderr_output}") from e
        except FileNotFoundError as e:
            # Raised by subprocess when the ffmpeg binary itself is missing
            self._remove_partial(output_path)
            raise AudioExtractionError(f"ffmpeg executable not found: {self.ffmpeg_cmd}") from e

    def _remove_partial(self, output_path: str) -> None:
        if os.path.exists(output_path):
            try:
                os.remove(output_path)
            except OSError:
                logger.warning(f"Could not clean up partially created audio file: {output_path}")

@contextlib.contextmanager
def scoped_workspace(path: str) -> Iterator[Workspace]:
    """
    Provides a scratch directory for one asset.

    The directory is created when missing and, on exit, removed again only if
    it was created here. Removal happens on both the success and the error path.
    A directory that existed beforehand is left in place.
    """
    created = ensure_dir_exists(path)
    workspace = Workspace(path=path, created_by_this_run=created)
    try:
        yield workspace
    finally:
        if workspace.created_by_this_run:
            try:
                shutil.rmtree(workspace.path)
                logger.info(f"Removed temporary directory: {workspace.path}")
            except OSError as e:
                logger.warning(f"Could not remove temporary directory {workspace.path}: {e}")
