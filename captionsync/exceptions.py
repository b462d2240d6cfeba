"""Custom Exceptions for the CaptionSync application."""

class CaptionSyncError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(CaptionSyncError):
    """Exception raised for errors in configuration loading."""
    pass

class FileSystemError(CaptionSyncError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass

class ScanError(CaptionSyncError):
    """Exception raised when a directory cannot be enumerated."""
    pass

class AudioExtractionError(CaptionSyncError):
    """Exception raised for errors during audio normalization."""
    pass

class TranscriptionError(CaptionSyncError):
    """Exception raised for errors during transcription."""
    pass

class MergeError(CaptionSyncError):
    """Exception raised when tokens cannot be merged into captions."""
    pass

class ArtifactError(CaptionSyncError):
    """Base class for caption artifact errors."""
    pass

class ArtifactNotFoundError(ArtifactError):
    """Raised when no caption artifact exists at the requested path."""
    pass

class ArtifactFormatError(ArtifactError):
    """Raised when a caption artifact cannot be parsed."""
    pass

class ArtifactWriteError(ArtifactError):
    """Raised when a caption artifact cannot be written. Fatal for a batch run."""
    pass

class DurationResolutionError(CaptionSyncError):
    """Exception raised when the playable duration of an audio source is unknown."""
    pass

class RenderCancelledError(CaptionSyncError):
    """Raised when a render pass is cancelled. The triggering error is attached."""

    def __init__(self, error: BaseException):
        super().__init__(f"Render cancelled: {error}")
        self.error = error
