"""Logging configuration helpers."""

import logging

_FORMAT = "%(asctime)s %(levelname)s: %(name)s: %(message)s"


def configure_logging(log_file: str | None = None) -> None:
    """Configure package logging with a stream handler and optional log file."""
    logger = logging.getLogger("acfun_live_tracker")
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return
    formatter = logging.Formatter(_FORMAT)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    logger.propagate = False
