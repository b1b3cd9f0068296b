# Path: config/logging_config.py
# Purpose: Configure application-wide logging.
# Layer: config.
# Details: Installs console and optional rotating file handlers and quiets chatty third-party loggers.

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

_NOISY_LOGGERS = [
    ("httpx", logging.WARNING),
    ("httpcore", logging.WARNING),
    ("urllib3", logging.WARNING),
    ("transformers", logging.WARNING),
    ("sentence_transformers", logging.WARNING),
]


def setup_logging(
    level: str = "INFO",
    *,
    log_file_enabled: bool = False,
    log_file_path: Union[str, Path] = "logs/live_caption_memory.log",
) -> None:
    """Initialize the root logger from the configured level and optional file output."""

    root_level = getattr(logging, str(level).upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    file_handler: Optional[logging.Handler] = None
    if log_file_enabled:
        log_path = Path(log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        # 1 MB per file, one backup.
        file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=1, encoding="utf-8")
        handlers.append(file_handler)

    logging.basicConfig(level=root_level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name, lib_level in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(lib_level)


__all__ = ["LOG_FORMAT", "setup_logging"]
