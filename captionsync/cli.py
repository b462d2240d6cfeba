"""Command-Line Interface handler for CaptionSync."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from tqdm import tqdm

from .config_loader import ConfigLoader
from .log_setup import setup_logging, setup_logging_from_config
from .audio_normalizer import AudioNormalizer
from .transcriber import WhisperTranscriber
from .pipeline import TranscriptionPipeline
from .models import PipelineRunState
from .exceptions import CaptionSyncError, ConfigurationError, ArtifactWriteError

logger = logging.getLogger(__name__)

class CLIHandler:
    """Parses arguments and runs the batch transcription pipeline."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="CaptionSync: transcribe media files into word-timed caption JSON files.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )
        parser.add_argument(
            "paths",
            nargs="*",
            help="Files or directories to transcribe. Without any, the configured assets root is processed recursively."
        )
        parser.add_argument(
            "--lang",
            default=None, # Default taken from config, 'en' if unset
            help="Language code of the spoken audio."
        )
        parser.add_argument(
            "-c", "--config",
            default=None,
            help="Path to the configuration YAML file. Defaults to ./config.yaml when present."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        parser.add_argument(
            "--device",
            default=None, # Default taken from config
            choices=["cuda", "cpu"],
            help="Override the processing device (cuda or cpu) specified in config."
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Re-transcribe files that already have a caption file."
        )
        return parser

    def build_pipeline(self, config: dict, force: bool = False, progress: Optional[tqdm] = None) -> TranscriptionPipeline:
        device = config.get('device', 'cpu')
        normalizer = AudioNormalizer(ffmpeg_path=config.get('ffmpeg_path'))
        transcriber = WhisperTranscriber(
            model_name=config.get('whisper_model', 'medium'),
            device=device,
            fp16=config.get('whisper_fp16', False) if device == 'cuda' else False,
            download_root=config.get('whisper_download_root'),
        )
        return TranscriptionPipeline(
            config=config,
            normalizer=normalizer,
            transcriber=transcriber,
            force=force,
            on_asset_done=(lambda asset: progress.update(1)) if progress is not None else None,
        )

    def run(self, argv: Optional[List[str]] = None) -> PipelineRunState:
        """Parses arguments, sets up logging, loads config, and runs the pipeline."""
        args = self.parser.parse_args(argv)

        log_level = getattr(logging, args.log_level.upper(), logging.INFO)
        setup_logging(log_level=log_level, log_dir='logs', log_file='captionsync_init.log')

        try:
            config = ConfigLoader().load_config(args.config)
        except (ConfigurationError, FileNotFoundError) as e:
            logger.critical(f"Failed to load configuration: {e}")
            sys.exit(1)

        setup_logging_from_config(config, log_level)

        if args.device:
            logger.info(f"Overriding device from config with CLI argument: {args.device}")
            config['device'] = args.device
        language = args.lang or config.get('language', 'en')

        state = PipelineRunState()
        try:
            with tqdm(unit="file", desc="Transcribing") as progress:
                pipeline = self.build_pipeline(config, force=args.force, progress=progress)
                if not args.paths:
                    root = os.path.abspath(config['assets_root'])
                    logger.info(f"No paths given, processing {root} recursively")
                    pipeline.process_paths([root], language, state)
                    sys.exit(0)
                pipeline.process_paths([os.path.abspath(path) for path in args.paths], language, state)
        except ArtifactWriteError as e:
            logger.critical(f"Aborting run, caption file could not be written: {e}")
            sys.exit(1)
        except CaptionSyncError as e:
            logger.error(f"A CaptionSync error occurred: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
            sys.exit(1)
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            sys.exit(2)
        return state
