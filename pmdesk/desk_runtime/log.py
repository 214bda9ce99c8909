"""loguru setup for the server and the CLI.

Records from stdlib loggers (uvicorn, sqlalchemy, aiosqlite) are forwarded
to loguru so everything shares one sink and one format.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

SERVER_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
CLI_FORMAT = "<level>{level: <8}</level> {message}"

# Per-request / per-statement chatter, kept at WARNING.
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "aiosqlite")


class _InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the caller.
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame, depth = frame.f_back, depth + 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, fmt: str = SERVER_FORMAT) -> None:
    """Make loguru the only sink, at *level*.  Call once per process."""
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=fmt)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging ready (level={})", level)
