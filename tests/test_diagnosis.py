"""Tests for the diagnosis chat use case."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from promaallem.application.exceptions import UpstreamTimeout, ValidationError
from promaallem.application.use_cases.diagnosis import (
    DIAGNOSIS_SYSTEM_PROMPT,
    DIAGNOSIS_TEMPERATURE,
    DiagnosisUseCase,
)
from promaallem.domain.models import ChatTurn


@pytest.fixture()
def llm() -> AsyncMock:
    mock = AsyncMock()
    mock.complete.return_value = "Salam! Comment puis-je vous aider ?"
    return mock


async def test_first_message(llm: AsyncMock):
    reply = await DiagnosisUseCase(llm).respond([], "bonjour")

    assert reply == "Salam! Comment puis-je vous aider ?"
    turns = llm.complete.await_args.args[0]
    assert [t.role for t in turns] == ["system", "user"]
    assert turns[0].content == DIAGNOSIS_SYSTEM_PROMPT
    assert turns[1].content == "bonjour"
    assert llm.complete.await_args.kwargs == {"temperature": DIAGNOSIS_TEMPERATURE}


async def test_history_is_forwarded_in_order(llm: AsyncMock):
    prior = [
        ChatTurn(role="user", content="3andi fuite f robini"),
        ChatTurn(role="assistant", content="Wach l'ma kaykhroj bzaf ?"),
    ]
    await DiagnosisUseCase(llm).respond(prior, "ah, bzaf")

    turns = llm.complete.await_args.args[0]
    assert [t.content for t in turns[1:]] == [
        "3andi fuite f robini",
        "Wach l'ma kaykhroj bzaf ?",
        "ah, bzaf",
    ]


async def test_none_history_is_empty(llm: AsyncMock):
    await DiagnosisUseCase(llm).respond(None, "bonjour")
    assert len(llm.complete.await_args.args[0]) == 2


@pytest.mark.parametrize("message", [None, "", "  "])
async def test_blank_message_makes_no_model_call(llm: AsyncMock, message):
    with pytest.raises(ValidationError, match="Message is required"):
        await DiagnosisUseCase(llm).respond([], message)
    llm.complete.assert_not_awaited()


async def test_upstream_errors_propagate(llm: AsyncMock):
    llm.complete.side_effect = UpstreamTimeout("Language model timed out")
    with pytest.raises(UpstreamTimeout):
        await DiagnosisUseCase(llm).respond([], "bonjour")


def test_system_prompt_persona():
    assert "Dr. ProMaallem" in DIAGNOSIS_SYSTEM_PROMPT
    assert "SAME language" in DIAGNOSIS_SYSTEM_PROMPT
