"""Logging configuration helpers."""

import logging

_FORMAT = "%(asctime)s %(levelname)s: %(name)s: %(message)s"

# Per-request INFO lines from the HTTP client drown out game events.
_QUIET_LOGGERS = ("httpx", "httpcore", "hpack")


def configure_logging(level: str = "INFO") -> None:
    """Attach one stream handler to the ``ask_match`` logger tree.

    Every service logs through ``logging.getLogger(__name__)``, so session
    transitions, rejected operations and timer failures all end up here.
    Calling this again only updates the level.
    """
    resolved = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    logger = logging.getLogger("ask_match")
    logger.setLevel(resolved)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
