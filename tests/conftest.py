"""Shared fakes for the pipeline and render tests."""

import os
from typing import List, Optional

import pytest

from captionsync.config_loader import DEFAULT_CONFIG
from captionsync.exceptions import AudioExtractionError, TranscriptionError
from captionsync.models import Token, TranscriptionResult
from captionsync.transcriber import Transcriber


class FakeNormalizer:
    """Writes a placeholder WAV instead of running ffmpeg."""

    def __init__(self, fail_for: Optional[List[str]] = None):
        self.fail_for = set(fail_for or [])
        self.calls = []

    def normalize(self, source_path: str, output_path: str) -> str:
        self.calls.append((source_path, output_path))
        with open(output_path, "wb") as f:
            f.write(b"RIFF")
        if os.path.basename(source_path) in self.fail_for:
            raise AudioExtractionError(f"ffmpeg failed: {source_path}")
        return output_path


class FakeTranscriber(Transcriber):
    def __init__(self, tokens: Optional[List[Token]] = None, fail_for: Optional[List[str]] = None):
        self.tokens = tokens if tokens is not None else [
            Token(" Hello", 0.0, 0.4, 0.9),
            Token(" world", 0.5, 0.9, 0.8),
            Token(" again", 1.5, 1.9, 0.95),
        ]
        self.fail_for = set(fail_for or [])
        self.calls = []

    def transcribe(self, audio_path: str, language: str = "en") -> TranscriptionResult:
        self.calls.append((audio_path, language))
        assert os.path.exists(audio_path), "normalized audio must exist while transcribing"
        if os.path.basename(audio_path) in self.fail_for:
            raise TranscriptionError(f"unsupported language {language}")
        return TranscriptionResult(tokens=list(self.tokens), language=language, model="fake", source_path=audio_path)


@pytest.fixture
def config(tmp_path) -> dict:
    cfg = dict(DEFAULT_CONFIG)
    cfg["temp_dir"] = str(tmp_path / "temp")
    cfg["assets_root"] = str(tmp_path / "public")
    return cfg


@pytest.fixture
def media_tree(tmp_path):
    """public/ with a few media files, a nested folder and some noise."""
    root = tmp_path / "public"
    (root / "talks" / "2024").mkdir(parents=True)
    for rel in ["intro.mp4", "talks/keynote.wav", "talks/2024/panel.MP3", "notes.txt", ".DS_Store"]:
        (root / rel).write_bytes(b"media")
    return root
