from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from .config import _env_flag


_LOGGER_NAME = "logid"


def logging_enabled() -> bool:
    return _env_flag("ENABLE_LOGGING", False)


def setup_diagnostics_logger() -> logging.Logger:
    """Configure the ``logid`` logger once.

    Verbose (INFO) only when ENABLE_LOGGING is set; errors are always shown.
    Set LOGID_LOG_FILE to also keep a rotating log file.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO if logging_enabled() else logging.ERROR)
    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    from . import _SecretRedactor

    handler: logging.Handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)
    handler.addFilter(_SecretRedactor())
    logger.addHandler(handler)

    path = (os.getenv("LOGID_LOG_FILE") or "").strip()
    if path:
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(fmt)
        file_handler.addFilter(_SecretRedactor())
        logger.addHandler(file_handler)
    logger.propagate = False
    return logger


def get_logger() -> logging.Logger:
    return setup_diagnostics_logger()
