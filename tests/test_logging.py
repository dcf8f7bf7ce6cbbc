"""Tests for log redaction and stdlib interception."""

from __future__ import annotations

import logging

import pytest
from loguru import logger

from promaallem.logging_config import redact, setup_logging


@pytest.mark.parametrize(
    "text,expected",
    [
        ("appel du 0600000000", "appel du 0600******"),
        ("tel: +212 6 11 22 33 44", "tel: +212******"),
        ("06.11.22.33.44 svp", "06.1****** svp"),
        ("Authorization: Bearer eyJhbGciOi.abc.def", "Authorization: Bearer ***"),
        ("service_id=1200000000000", "service_id=1200000000000"),
        ("fuite au niveau du robinet", "fuite au niveau du robinet"),
    ],
)
def test_redact(text, expected):
    assert redact(text) == expected


@pytest.fixture()
def captured():
    setup_logging(level="DEBUG")
    messages: list[str] = []
    sink_id = logger.add(messages.append, format="{message}", level="DEBUG")
    yield messages
    logger.remove(sink_id)


def test_loguru_messages_are_redacted(captured):
    logger.info("SOS from {}", "0711223344")
    assert captured == ["SOS from 0711******\n"]


def test_stdlib_records_are_intercepted_and_redacted(captured):
    logging.getLogger("uvicorn.error").warning("bad header Bearer abc.def")
    assert captured == ["bad header Bearer ***\n"]


def test_noisy_client_loggers_are_raised_to_warning(captured):
    logging.getLogger("httpx").info("HTTP Request: POST https://api.deepseek.com")
    assert captured == []
