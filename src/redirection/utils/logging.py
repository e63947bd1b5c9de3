"""Logging for the redirection service.

Every service logs under the ``redirection`` package logger:

    redirection                     ← handlers live here (file + console)
    ├── redirection.database_status
    ├── redirection.stage_runner
    ├── redirection.plan_provider
    └── redirection.option_store

Handlers are only attached to the package logger; service loggers carry no
handlers of their own and can be tuned individually with ``service_levels``.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional

PACKAGE_LOGGER = "redirection"

# Option store logs every read/write at DEBUG; keep it quiet by default
DEFAULT_SERVICE_LEVELS: Dict[str, int] = {
    "option_store": logging.INFO,
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def service_logger(service: str, root: str = PACKAGE_LOGGER) -> logging.Logger:
    """Logger for one service, e.g. ``service_logger("stage_runner")``."""
    return logging.getLogger(f"{root}.{service}")


def _build_handlers(
    log_file: str, max_bytes: int, backup_count: int, level: int
) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    console_handler = logging.StreamHandler()

    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return [file_handler, console_handler]


def setup_logger(
    name: str = PACKAGE_LOGGER,
    log_file: str = "./logs/redirection.log",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
    level: int = logging.INFO,
    service_levels: Optional[Dict[str, int]] = None,
) -> logging.Logger:
    """Configure the package logger and its service children.

    Safe to call again: handlers are attached once, service levels are
    re-applied on every call.

    Args:
        name: Package logger name
        log_file: Path to the rotating log file (directory created if missing)
        max_bytes: Max size before rotation
        backup_count: Number of rotated files to keep
        level: Level of the package logger and its handlers
        service_levels: Per-service overrides, service name → level
            (default: DEFAULT_SERVICE_LEVELS)

    Returns:
        The package logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    overrides = DEFAULT_SERVICE_LEVELS if service_levels is None else service_levels
    for service, service_level in overrides.items():
        service_logger(service, root=name).setLevel(service_level)

    if logger.handlers:
        return logger

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    for handler in _build_handlers(log_file, max_bytes, backup_count, level):
        logger.addHandler(handler)

    return logger
