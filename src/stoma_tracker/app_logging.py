"""Logging configuration helpers."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s: %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Attach one stream handler to the package logger.

    Repeated calls only adjust the level, so app factories and tests can call
    this freely.
    """
    logger = logging.getLogger("stoma_tracker")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
