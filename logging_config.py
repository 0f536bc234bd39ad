"""
Logger factory. Console output always; a rotating file when SITE_AUDIT_LOG_FILE is set.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from config import LOG_FILE_BACKUP_COUNT, LOG_FILE_ENV, LOG_FILE_MAX_BYTES, LOG_FORMAT, LOG_LEVEL


def get_logger(name: str) -> logging.Logger:
    """
    Creates a logger instance that writes to console and, optionally, a file.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_file_path = os.environ.get(LOG_FILE_ENV)
    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
