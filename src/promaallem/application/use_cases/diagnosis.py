"""Diagnosis chat use case: free-text troubleshooting with "Dr. ProMaallem".

The backend keeps no session: the caller sends the prior turns with every
message and the full history is forwarded to the model as-is.  History
length is not bounded here.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from promaallem.application.exceptions import ValidationError
from promaallem.domain.models import ChatTurn
from promaallem.domain.protocols import ILanguageModel

DIAGNOSIS_TEMPERATURE = 0.7

DIAGNOSIS_SYSTEM_PROMPT = """\
You are "Dr. ProMaallem", an expert home service assistant for the Moroccan market.
**Languages:** You MUST reply in the SAME language as the user (French, Arabic, or Moroccan Darija).
**Identity:** You are professional, helpful, and speak with a Moroccan touch when using \
Darija (use terms like "Maallem", "Bricolage", "Fuite", "Khit").
**Goal:** Diagnose home issues (Plumbing, Electrical, etc.), assess safety risks, and \
suggest booking a Maallem.
**Safety:** If dangerous (gas leak, sparks), warn immediately to cut power/water.
**Pricing:** Estimate in MAD (e.g., Plomberie ~150DH+, Elec ~200DH+).
**Output:** Keep responses concise and helpful.
"""


class DiagnosisUseCase:
    """Answers one turn of a diagnosis conversation."""

    def __init__(self, llm: ILanguageModel) -> None:
        self.llm = llm

    @staticmethod
    def build_conversation(prior_turns: Sequence[ChatTurn], message: str) -> list[ChatTurn]:
        """``[system instruction] + prior turns + [new user turn]``."""
        return [
            ChatTurn(role="system", content=DIAGNOSIS_SYSTEM_PROMPT),
            *prior_turns,
            ChatTurn(role="user", content=message),
        ]

    async def respond(self, prior_turns: Sequence[ChatTurn] | None, message: str | None) -> str:
        """Return the assistant reply.

        Raises:
            ValidationError: If *message* is blank (no model call is made).
            RateLimited, UpstreamFailure: If the model call fails.
        """
        if not message or not message.strip():
            raise ValidationError("Message is required")

        turns = self.build_conversation(prior_turns or [], message)
        reply = await self.llm.complete(turns, temperature=DIAGNOSIS_TEMPERATURE)

        logger.info("Diagnosis reply | history={} reply_chars={}", len(turns) - 2, len(reply))
        return reply
