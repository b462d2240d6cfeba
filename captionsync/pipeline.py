"""Orchestrates the batch transcription pipeline."""

import logging
import os
import time
from typing import Callable, Iterable, Optional

from .audio_normalizer import AudioNormalizer, scoped_workspace
from .caption_merger import CaptionMerger
from .exceptions import (
    ArtifactFormatError,
    AudioExtractionError,
    MergeError,
    ScanError,
    TranscriptionError,
)
from .models import MediaAsset, PipelineRunState
from .scanner import AssetScanner
from .transcriber import Transcriber
from .transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

# Failures that only cost the asset being processed
PER_ASSET_ERRORS = (AudioExtractionError, TranscriptionError, MergeError, ArtifactFormatError, FileNotFoundError)

class TranscriptionPipeline:
    """
    Transcribes media assets into caption artifacts, one asset at a time.

    Each asset runs normalize -> transcribe -> merge -> write to completion
    before the next one starts. Assets that already have an artifact are
    skipped. Per-asset failures are logged and recorded; a failure to write
    an artifact aborts the run.
    """

    def __init__(
        self,
        config: dict,
        normalizer: AudioNormalizer,
        transcriber: Transcriber,
        merger: Optional[CaptionMerger] = None,
        store: Optional[TranscriptStore] = None,
        scanner: Optional[AssetScanner] = None,
        force: bool = False,
        on_asset_done: Optional[Callable[[MediaAsset], None]] = None,
    ):
        """
        Args:
            config: Configuration dictionary (see config_loader.DEFAULT_CONFIG).
            normalizer: Produces the mono 16kHz WAV for each asset.
            transcriber: Any Transcriber implementation.
            merger: Token merger. Built from config when omitted.
            store: Artifact persistence. A plain TranscriptStore when omitted.
            scanner: Directory walker. Built from config when omitted.
            force: Re-transcribe assets that already have an artifact.
            on_asset_done: Called after every asset that was not skipped, for progress reporting.
        """
        self.config = config
        self.normalizer = normalizer
        self.transcriber = transcriber
        self.merger = merger or CaptionMerger(config.get('combine_tokens_within_ms', 200))
        self.store = store or TranscriptStore()
        self.scanner = scanner or AssetScanner(
            supported_extensions=config.get('supported_extensions', ('.mp4', '.webm', '.mkv', '.mov', '.mp3', '.wav')),
            ignored_names=config.get('ignored_names', ('.DS_Store',)),
            artifact_suffix=config.get('artifact_suffix', '.json'),
        )
        self.temp_dir = config.get('temp_dir', 'temp')
        self.force = force
        self.on_asset_done = on_asset_done

    def process_file(self, path: str, language: str, state: PipelineRunState) -> None:
        """
        Transcribes one file unless it is unsupported or already transcribed.

        Raises:
            ArtifactWriteError: If the artifact could not be written.
        """
        if not self.scanner.is_supported(path):
            logger.debug(f"Unsupported file ignored: {path}")
            return
        asset = self.scanner.to_asset(path)
        if not self.force and self.store.exists(asset.artifact_path):
            logger.info(f"Already transcribed, skipping: {path}")
            state.record_skipped(path)
            return

        logger.info(f"Processing file {path}")
        start_time = time.time()
        try:
            self._transcribe_asset(asset, language, state)
        except PER_ASSET_ERRORS as e:
            logger.error(f"Failed to transcribe {path}: {e}")
            state.record_failed(path)
        else:
            state.record_processed(path)
            logger.info(f"Captions for {path} written to {asset.artifact_path} ({time.time() - start_time:.2f}s)")
        finally:
            if self.on_asset_done is not None:
                self.on_asset_done(asset)

    def _transcribe_asset(self, asset: MediaAsset, language: str, state: PipelineRunState) -> None:
        with scoped_workspace(self.temp_dir) as workspace:
            state.workspace = workspace
            wav_path = os.path.join(workspace.path, f"{asset.base_name}.wav")
            try:
                self.normalizer.normalize(asset.path, wav_path)
                result = self.transcriber.transcribe(wav_path, language)
            finally:
                self._cleanup_temp_file(wav_path)
            artifact = self.merger.build_artifact(result)
            self.store.write(artifact, asset.artifact_path)

    def _cleanup_temp_file(self, file_path: str) -> None:
        if os.path.exists(file_path):
            try:
                os.remove(file_path)
                logger.debug(f"Cleaned up temporary file: {file_path}")
            except OSError as e:
                logger.warning(f"Could not remove temporary file {file_path}: {e}")

    def process_directory(self, root: str, language: str, state: PipelineRunState) -> None:
        """Walks ``root`` depth-first, processing every supported file."""
        for asset in self.scanner.scan(root, skip_transcribed=False):
            self.process_file(asset.path, language, state)
        for error in self.scanner.errors:
            logger.error(f"Scan error under {root}: {error}")

    def process_paths(self, paths: Iterable[str], language: str, state: Optional[PipelineRunState] = None) -> PipelineRunState:
        """
        Processes files and directories given on the command line.

        Paths that do not exist are logged and recorded as failed; the rest
        of the list is still processed.
        """
        state = state or PipelineRunState()
        for path in paths:
            if os.path.isdir(path):
                try:
                    self.process_directory(path, language, state)
                except ScanError as e:
                    logger.error(f"Could not scan {path}: {e}")
                    state.record_failed(path)
            elif os.path.isfile(path):
                self.process_file(path, language, state)
            else:
                logger.error(f"Path not found: {path}")
                state.record_failed(path)
        logger.info(f"Batch finished: {state.summary()}")
        return state
