"""Handles Speech-to-Text transcription using Whisper."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import os

from .models import TranscriptionResult, Token
from .exceptions import TranscriptionError

logger = logging.getLogger(__name__)

class Transcriber(ABC):
    """Abstract base class for transcription services."""

    @abstractmethod
    def transcribe(self, audio_path: str, language: str = 'en') -> TranscriptionResult:
        """
        Transcribes the given normalized waveform.

        Args:
            audio_path: Path to a mono 16kHz WAV file.
            language: Language code the audio is decoded as.

        Returns:
            A TranscriptionResult whose tokens are in time order, with
            timestamps in seconds from the start of the waveform.

        Raises:
            TranscriptionError: If transcription fails.
            FileNotFoundError: If the audio file doesn't exist.
        """
        pass

class WhisperTranscriber(Transcriber):
    """Implements word-level transcription using OpenAI's Whisper model."""

    def __init__(
        self,
        model_name: str = "medium",
        device: str = "cpu",
        fp16: bool = False,
        download_root: Optional[str] = None,
    ):
        """
        Initializes the WhisperTranscriber and loads the model.

        Args:
            model_name: The name of the Whisper model to use (e.g., "base", "medium"). English-only ".en" models only accept "en".
            device: The device to run the model on ("cuda" or "cpu").
            fp16: Whether to use float16 precision (only honoured on CUDA).
            download_root: Where model weights are installed. None uses whisper's cache.

        Raises:
            ValueError: If the specified device is invalid.
            TranscriptionError: If the model fails to load.
        """
        import torch
        import whisper

        self.model_name = model_name
        self.device = device
        self.fp16 = fp16

        if self.device not in ["cuda", "cpu"]:
            raise ValueError(f"Invalid device specified: {self.device}. Choose 'cuda' or 'cpu'.")
        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning("CUDA device requested but not available. Falling back to CPU.")
            self.device = "cpu"

        logger.info(f"Initializing WhisperTranscriber with model '{self.model_name}' on device '{self.device}' (FP16: {self.fp16})")
        try:
            self.model = whisper.load_model(self.model_name, device=self.device, download_root=download_root)
            logger.info(f"Whisper model '{self.model_name}' loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load Whisper model '{self.model_name}': {e}", exc_info=True)
            raise TranscriptionError(f"Failed to load Whisper model '{self.model_name}': {e}") from e

    def transcribe(self, audio_path: str, language: str = 'en') -> TranscriptionResult:
        logger.info(f"Starting transcription for: {audio_path} (language: {language})")
        if not os.path.exists(audio_path):
            raise FileNotFoundError(f"Audio file not found: {audio_path}")
        # whisper decodes anything as English on ".en" models
        if language != 'en' and not getattr(self.model, 'is_multilingual', True):
            raise TranscriptionError(
                f"Whisper model '{self.model_name}' is English-only and cannot transcribe language '{language}'"
            )

        try:
            result = self.model.transcribe(
                audio_path,
                language=language,
                task='transcribe', # never translate to English
                word_timestamps=True,
                fp16=self.fp16 if self.device == "cuda" else False,
                verbose=False,
            )
        except Exception as e:
            logger.error(f"Error during Whisper transcription process for {audio_path}: {e}", exc_info=True)
            raise TranscriptionError(f"Whisper transcription failed for {audio_path}: {e}") from e

        tokens = tokens_from_segments(result.get('segments', []))
        logger.info(f"Transcription completed with {len(tokens)} word tokens.")
        return TranscriptionResult(
            tokens=tokens,
            language=result.get('language', language),
            model=self.model_name,
            source_path=audio_path,
        )

def tokens_from_segments(segments: List[Dict[str, Any]]) -> List[Token]:
    """Flattens whisper segments into word tokens, keeping emission order."""
    tokens = []
    for segment in segments:
        words = segment.get('words')
        if not words:
            logger.warning(f"Segment without word timestamps skipped: {segment.get('text', '')!r}")
            continue
        for word in words:
            if 'start' not in word or 'end' not in word or 'word' not in word:
                logger.warning(f"Skipping incomplete word data: {word}")
                continue
            tokens.append(Token(
                text=word['word'],
                start_in_seconds=float(word['start']),
                end_in_seconds=float(word['end']),
                confidence=float(word.get('probability', 1.0)),
            ))
    return tokens
