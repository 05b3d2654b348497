"""Logging helpers for the calorie tracker backend.

`get_logger` hands out loggers that share one stream handler and one rotating
file handler under `LOG_DIR`, so every module logs in the same format.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from core.config import LOG_DIR, LOG_LEVEL

os.makedirs(LOG_DIR, exist_ok=True)

LOG_FILE = os.path.join(LOG_DIR, "calorie_tracker.log")

_formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

_stream_handler = logging.StreamHandler()
_stream_handler.setFormatter(_formatter)

_file_handler = RotatingFileHandler(LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3)
_file_handler.setFormatter(_formatter)


def get_logger(name: str = __name__, level: str = LOG_LEVEL) -> logging.Logger:
    """Return a logger wired to the shared stream and file handlers.

    Handlers are attached only once per logger name, so repeated calls from
    the same module do not duplicate output.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        logger.addHandler(_stream_handler)
        logger.addHandler(_file_handler)
    return logger
