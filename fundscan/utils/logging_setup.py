"""Loguru sink configuration for CLI and service entry points."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from fundscan.utils.config import LoggingConfig

_TEXT_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
)


def setup_logging(config: LoggingConfig | None = None, *, verbose: bool = False) -> None:
    """Replace Loguru's default sink with the configured ones."""
    config = config or LoggingConfig()
    level = "DEBUG" if verbose else config.level.upper()

    logger.remove()
    if config.format == "json":
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, format=_TEXT_FORMAT, level=level)

    if config.file:
        target = Path(config.file)
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(target),
            level=level,
            rotation=f"{config.max_size_mb} MB",
            retention=config.backup_count,
            serialize=config.format == "json",
        )
