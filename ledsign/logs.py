"""Logging setup for the slideshow process."""

from __future__ import annotations

import logging
from pathlib import Path

from ledsign.config import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "ledsign.log"


def configure_logging(config: LoggingConfig, debug: bool = False) -> logging.Logger:
    """Log to the console and to ``<log_dir>/ledsign.log``."""
    level = logging.DEBUG if debug else logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level: {config.level}")

    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    file_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console_handler)
    root.addHandler(file_handler)
    return logging.getLogger("ledsign")


__all__ = ["configure_logging"]
