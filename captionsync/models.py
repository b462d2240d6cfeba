"""Data models for CaptionSync."""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .utils import artifact_path_for

AUDIO_EXTENSIONS = ('.mp3', '.wav')

@dataclass
class MediaAsset:
    """A source file picked up by the batch pipeline."""
    path: str
    extension: str
    artifact_suffix: str = '.json'

    @classmethod
    def from_path(cls, path: str, artifact_suffix: str = '.json') -> "MediaAsset":
        return cls(path=path, extension=os.path.splitext(path)[1].lower(), artifact_suffix=artifact_suffix)

    @property
    def kind(self) -> str:
        return 'audio' if self.extension in AUDIO_EXTENSIONS else 'video'

    @property
    def artifact_path(self) -> str:
        return artifact_path_for(self.path, self.artifact_suffix)

    @property
    def base_name(self) -> str:
        return os.path.splitext(os.path.basename(self.path))[0]

@dataclass
class Token:
    """A single time-stamped word emitted by transcription."""
    text: str
    start_in_seconds: float
    end_in_seconds: float
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'startInSeconds': self.start_in_seconds,
            'endInSeconds': self.end_in_seconds,
            'confidence': self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Token":
        return cls(
            text=str(data['text']),
            start_in_seconds=float(data['startInSeconds']),
            end_in_seconds=float(data['endInSeconds']),
            confidence=float(data.get('confidence', 1.0)),
        )

@dataclass
class Caption:
    """One or more merged tokens shown as a single display unit."""
    text: str
    start_in_seconds: float

    def to_dict(self) -> Dict[str, Any]:
        return {'startInSeconds': self.start_in_seconds, 'text': self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Caption":
        return cls(text=str(data['text']), start_in_seconds=float(data['startInSeconds']))

@dataclass
class TranscriptionResult:
    """Holds the structured output from the ASR process."""
    tokens: List[Token] = field(default_factory=list)
    language: Optional[str] = None
    model: Optional[str] = None
    source_path: Optional[str] = None

@dataclass
class TranscriptArtifact:
    """The persisted caption file for one source asset."""
    transcription: List[Caption] = field(default_factory=list)
    full_transcription: str = ''
    raw_tokens: List[Token] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict) # language, model and other raw fields

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            'transcription': [caption.to_dict() for caption in self.transcription],
            'fullTranscription': self.full_transcription,
            'rawTokens': [token.to_dict() for token in self.raw_tokens],
        })
        return data

@dataclass
class TimelineEntry:
    """A caption resolved to a frame-quantized display window."""
    caption: Caption
    start_frame: int
    duration_frames: int

    def __post_init__(self):
        if self.duration_frames <= 0:
            raise ValueError(f"duration_frames must be positive, got {self.duration_frames}")

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.duration_frames

@dataclass
class Workspace:
    """Scratch directory for normalized audio. Only removed if this run created it."""
    path: str
    created_by_this_run: bool

@dataclass
class PipelineRunState:
    """Per-invocation bookkeeping for the batch pipeline."""
    processed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    workspace: Optional[Workspace] = None

    def record_processed(self, path: str) -> None:
        self.processed.append(path)

    def record_skipped(self, path: str) -> None:
        self.skipped.append(path)

    def record_failed(self, path: str) -> None:
        self.failed.append(path)

    def summary(self) -> str:
        return f"processed={len(self.processed)} skipped={len(self.skipped)} failed={len(self.failed)}"
