"""
Logging Configuration for ReportFlow

Root logger setup driven by the `logging` section of settings.yaml: a
stdout console handler and an optional rotating file under `paths.logs`.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from .config_loader import config
from .exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def resolve_level(name: str) -> int:
    """
    Numeric level for a level name, case-insensitive.

    Raises:
        ConfigurationError: If the name is not a standard logging level
    """
    if str(name).upper() not in LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level '{name}' (expected one of: {', '.join(LOG_LEVELS)})"
        )
    return getattr(logging, str(name).upper())


def _file_handler(file_config: dict, log_file: Optional[str]) -> logging.Handler:
    logs_dir = Path(config.get('paths.logs', './logs'))
    logs_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        logs_dir / (log_file or file_config.get('filename', 'reportflow.log')),
        maxBytes=file_config.get('max_bytes', 10 * 1024 * 1024),
        backupCount=file_config.get('backup_count', 5),
    )
    handler.setLevel(resolve_level(file_config.get('level', 'DEBUG')))
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Overrides the configured root and console level
        log_file: Log filename under `paths.logs`; enables the file handler

    Raises:
        ConfigurationError: If a configured or requested level is unknown
    """
    logging_config = config.get_section('logging')
    handlers_config = logging_config.get('handlers', {})
    console_config = handlers_config.get('console', {})
    file_config = handlers_config.get('file', {})

    level = log_level or logging_config.get('level', 'INFO')
    formatter = logging.Formatter(
        logging_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        datefmt=logging_config.get('date_format', '%Y-%m-%d %H:%M:%S'),
    )

    handlers = []
    console_enabled = console_config.get('enabled', True)
    if console_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(resolve_level(log_level or console_config.get('level', 'INFO')))
        handlers.append(console_handler)

    file_enabled = file_config.get('enabled', False) or log_file is not None
    if file_enabled:
        handlers.append(_file_handler(file_config, log_file))

    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_level(level))
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger(__name__).debug(
        f"Logging initialized (level={level}, console={console_enabled}, file={file_enabled})"
    )
