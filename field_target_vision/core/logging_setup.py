"""Logging handlers built from LoggingConfig."""

import logging
import logging.handlers
from typing import Optional

from .config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure the package logger.

    Installs a console handler and, if enabled, a rotating file handler.
    Calling it again replaces the handlers installed by the previous call.

    Args:
        config: Logging settings (defaults if None)

    Returns:
        The package root logger
    """
    config = config or LoggingConfig()
    root = logging.getLogger('field_target_vision')

    level = logging.getLevelName(str(config.level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    if config.console_enabled:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    if config.file_enabled:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                config.file_path,
                maxBytes=config.max_file_size,
                backupCount=config.backup_count)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            root.warning(f"Cannot open log file {config.file_path}: {e}")

    return root
