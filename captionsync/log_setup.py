"""Logging configuration for CaptionSync."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Dict, List, Optional

from .exceptions import FileSystemError
from .utils import ensure_dir_exists

DEFAULT_LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Third-party loggers that flood DEBUG output: the observer thread reports
# every inotify event, and whisper's numba kernels log each compilation.
NOISY_LOGGERS: Dict[str, int] = {
    'watchdog': logging.WARNING,
    'numba': logging.WARNING,
}

_OWNED_ATTR = '_captionsync_handler'

def _own(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _OWNED_ATTR, True)
    return handler

def owned_handlers(logger: Optional[logging.Logger] = None) -> List[logging.Handler]:
    """Handlers installed by ``setup_logging`` on ``logger`` (the root logger by default)."""
    logger = logger or logging.getLogger()
    return [h for h in logger.handlers if getattr(h, _OWNED_ATTR, False)]

def _build_file_handler(
    log_dir: str,
    log_file: str,
    formatter: logging.Formatter,
    max_bytes: int,
    backup_count: int,
) -> RotatingFileHandler:
    ensure_dir_exists(log_dir)
    handler = RotatingFileHandler(
        os.path.join(log_dir, log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8',
    )
    handler.setFormatter(formatter)
    return _own(handler)

def setup_logging(
    log_level: int = logging.INFO,
    log_dir: Optional[str] = "logs",
    log_file: str = "captionsync.log",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    max_bytes: int = 10 * 1024 * 1024, # 10 MB
    backup_count: int = 5,
    quiet_loggers: Optional[Dict[str, int]] = None,
) -> Optional[str]:
    """
    Sends log records to stdout and, when ``log_dir`` is set, to a rotating file.

    Only handlers installed by an earlier call are replaced, so the first call
    can log to a bootstrap file and a second call can move logging to the
    directory named in the loaded config. Handlers added by anything else
    (pytest, an embedding application) are left alone.

    Args:
        log_level: Minimum level for the root logger and the console.
        log_dir: Directory of the log file. None disables file logging.
        log_file: File name inside ``log_dir``.
        log_format: Format string shared by both handlers.
        date_format: Timestamp format.
        max_bytes: Size at which the log file is rotated.
        backup_count: Rotated files kept.
        quiet_loggers: Logger name to minimum level. Defaults to NOISY_LOGGERS.

    Returns:
        The log file path, or None if logging goes to the console only.
    """
    root = logging.getLogger()
    for handler in owned_handlers(root):
        root.removeHandler(handler)
        handler.close()

    root.setLevel(log_level)
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console = _own(logging.StreamHandler(sys.stdout))
    console.setFormatter(formatter)
    console.setLevel(log_level)
    root.addHandler(console)

    log_path = None
    if log_dir:
        try:
            file_handler = _build_file_handler(log_dir, log_file, formatter, max_bytes, backup_count)
        except (FileSystemError, OSError) as e:
            # Console logging still works without the file handler
            root.error(f"Failed to set up file logging at {os.path.join(log_dir, log_file)}: {e}")
        else:
            root.addHandler(file_handler)
            log_path = file_handler.baseFilename
            root.info(f"Logging initialized. Log file: {log_path}")

    for name, level in (NOISY_LOGGERS if quiet_loggers is None else quiet_loggers).items():
        logging.getLogger(name).setLevel(level)
    return log_path

def setup_logging_from_config(config: dict, log_level: int = logging.INFO) -> Optional[str]:
    """Applies the ``log_dir`` and ``log_file`` settings of a loaded config."""
    return setup_logging(
        log_level=log_level,
        log_dir=config.get('log_dir', 'logs'),
        log_file=config.get('log_file', 'captionsync.log'),
    )
