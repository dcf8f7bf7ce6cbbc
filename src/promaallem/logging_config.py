"""Loguru logging for the intake backend.

``setup_logging()`` installs a single stderr sink (coloured text, or JSON
lines for log aggregators) and routes stdlib ``logging`` records from
uvicorn, httpx, openai and pydantic_ai through loguru.

Request logs quote free text typed by guests, so every message is passed
through ``redact()`` before it reaches a sink: Moroccan phone numbers and
bearer tokens never end up in the logs.
"""

from __future__ import annotations

import logging
import re
import sys

from loguru import logger

# Name -> minimum stdlib level (None keeps whatever the loguru sink allows)
_THIRD_PARTY_LOGGERS: dict[str, str | None] = {
    "uvicorn": None,
    "uvicorn.access": None,
    "uvicorn.error": None,
    "fastapi": None,
    "pydantic_ai": None,
    "openai": "WARNING",
    "httpx": "WARNING",
}

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

_PHONE_RE = re.compile(r"(?<!\d)(?:\+212[ .-]?|0)[5-7](?:[ .-]?\d){8}(?!\d)")
_BEARER_RE = re.compile(r"(?i)\b(bearer\s+)\S+")


def redact(text: str) -> str:
    """Mask bearer tokens and all but the prefix of phone numbers."""
    text = _BEARER_RE.sub(r"\1***", text)
    return _PHONE_RE.sub(lambda m: m.group(0)[:4] + "******", text)


def _redact_record(record) -> None:
    record["message"] = redact(record["message"])


class InterceptHandler(logging.Handler):
    """Redirect stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(*, level: str = "INFO", json: bool = False) -> None:
    """Configure loguru as the only logging backend.  Safe to call twice.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ...).
        json: Emit one JSON object per line instead of coloured text.
    """
    logger.remove()
    logger.configure(patcher=_redact_record)

    if json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_TEXT_FORMAT, colorize=True)

    intercept = InterceptHandler()
    for name, min_level in _THIRD_PARTY_LOGGERS.items():
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [intercept]
        stdlib_logger.propagate = False
        if min_level:
            stdlib_logger.setLevel(min_level)

    logging.root.handlers = [intercept]
    logging.root.setLevel(logging.DEBUG)
