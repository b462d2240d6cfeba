"""Reads and writes caption artifacts."""

import json
import logging
import os
import tempfile

from .exceptions import ArtifactFormatError, ArtifactNotFoundError, ArtifactWriteError
from .models import Caption, Token, TranscriptArtifact

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ('transcription', 'fullTranscription', 'rawTokens')

class TranscriptStore:
    """
    JSON persistence for TranscriptArtifact.

    Writes go to a temporary file in the target directory and are moved onto
    the final path with ``os.replace``, so readers see either the old file or
    the complete new one.
    """

    def exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def write(self, artifact: TranscriptArtifact, path: str) -> None:
        """
        Raises:
            ArtifactFormatError: If caption starts are not strictly increasing.
            ArtifactWriteError: If the file cannot be written.
        """
        check_caption_order(artifact, path)
        payload = json.dumps(artifact.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + '\n'

        directory = os.path.dirname(os.path.abspath(path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{os.path.basename(path)}.", suffix='.tmp', dir=directory
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            logger.error(f"Failed to write caption artifact {path}: {e}")
            raise ArtifactWriteError(f"Could not write caption artifact {path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    logger.warning(f"Could not remove temporary artifact file: {tmp_path}")
        logger.info(f"Wrote {len(artifact.transcription)} captions to {path}")

    def read(self, path: str) -> TranscriptArtifact:
        """
        Raises:
            ArtifactNotFoundError: If there is no artifact at ``path``.
            ArtifactFormatError: If the file is not a valid artifact.
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ArtifactNotFoundError(f"No caption artifact at {path}") from e
        except json.JSONDecodeError as e:
            raise ArtifactFormatError(f"Caption artifact {path} is not valid JSON: {e}") from e
        except OSError as e:
            raise ArtifactFormatError(f"Could not read caption artifact {path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('transcription'), list):
            raise ArtifactFormatError(f"Caption artifact {path} has no 'transcription' list")

        try:
            captions = [Caption.from_dict(item) for item in data['transcription']]
            raw_tokens = [Token.from_dict(item) for item in data.get('rawTokens') or []]
        except (KeyError, TypeError, ValueError) as e:
            raise ArtifactFormatError(f"Malformed entry in caption artifact {path}: {e}") from e

        artifact = TranscriptArtifact(
            transcription=captions,
            full_transcription=str(data.get('fullTranscription', '')),
            raw_tokens=raw_tokens,
            extra={key: value for key, value in data.items() if key not in REQUIRED_KEYS},
        )
        check_caption_order(artifact, path)
        return artifact

def check_caption_order(artifact: TranscriptArtifact, path: str) -> None:
    captions = artifact.transcription
    for previous, current in zip(captions, captions[1:]):
        if not previous.start_in_seconds < current.start_in_seconds:
            raise ArtifactFormatError(
                f"Captions for {path} are not strictly ordered: "
                f"{previous.start_in_seconds}s followed by {current.start_in_seconds}s"
            )
