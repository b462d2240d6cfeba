"""Handles loading configuration from YAML files."""

import copy
import yaml
import os
import logging
from typing import Optional
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULT_CONFIG = {
    'assets_root': 'public',
    'temp_dir': 'temp',
    'artifact_suffix': '.json',
    'supported_extensions': ['.mp4', '.webm', '.mkv', '.mov', '.mp3', '.wav'],
    'ignored_names': ['.DS_Store'],
    'combine_tokens_within_ms': 200,
    'language': 'en',
    'whisper_model': 'medium',
    'whisper_download_root': None,
    'whisper_fp16': False,
    'device': 'cpu',
    'ffmpeg_path': None,
    'ffprobe_path': None,
    'fps': 30,
    'log_dir': 'logs',
    'log_file': 'captionsync.log',
}

class ConfigLoader:
    """Loads configuration settings from a YAML file on top of the built-in defaults."""

    def load_config(self, config_path: Optional[str] = None) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Args:
            config_path: The path to the YAML configuration file. When None,
                         ``config.yaml`` in the working directory is used if it
                         exists, otherwise the defaults are returned.

        Returns:
            A dictionary containing the merged configuration settings.

        Raises:
            FileNotFoundError: If an explicitly requested configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML or
                              if there are other reading errors.
        """
        config = copy.deepcopy(DEFAULT_CONFIG)
        if config_path is None:
            if not os.path.exists(DEFAULT_CONFIG_PATH):
                logger.warning(f"No {DEFAULT_CONFIG_PATH} found, using built-in defaults.")
                return config
            config_path = DEFAULT_CONFIG_PATH

        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
            logger.error(f"Configuration path is not a file: {config_path}")
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")

        config.update(loaded)
        self._validate(config, config_path)
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    def _validate(self, config: dict, config_path: str) -> None:
        threshold = config.get('combine_tokens_within_ms')
        if not isinstance(threshold, int) or isinstance(threshold, bool) or threshold < 0:
            raise ConfigurationError(f"'combine_tokens_within_ms' must be a non-negative integer in {config_path}")
        fps = config.get('fps')
        if not isinstance(fps, (int, float)) or isinstance(fps, bool) or fps <= 0:
            raise ConfigurationError(f"'fps' must be a positive number in {config_path}")
        if not config.get('supported_extensions'):
            raise ConfigurationError(f"'supported_extensions' must not be empty in {config_path}")
        config['supported_extensions'] = [ext.lower() for ext in config['supported_extensions']]
