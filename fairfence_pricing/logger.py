"""Logging setup for the pricing server.

One stream handler on the root logger. uvicorn's own loggers are pointed at
it so server and application lines share a format.
"""
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Edge Function attempts are logged by the client itself.
_QUIET_LOGGERS = ("httpx", "httpcore")
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _level_from_env() -> int:
    level_name = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> int:
    """Configure logging from ``LOG_LEVEL`` and return the level applied.

    Request access lines are only shown at DEBUG; pricing cache and Edge
    Function log lines already describe each request.
    """
    level = _level_from_env()

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for name in _UVICORN_LOGGERS:
        uv = logging.getLogger(name)
        uv.handlers.clear()
        uv.propagate = True
        uv.setLevel(logging.NOTSET)
    if level > logging.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return level


__all__ = ["DATE_FORMAT", "LOG_FORMAT", "setup_logging"]
