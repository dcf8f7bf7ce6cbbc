"""Language-model gateway built on a PydanticAI agent.

The agent talks to an OpenAI-compatible endpoint (DeepSeek or GitHub
Models, see ``config.resolve_llm_provider``).  Prompts are supplied per call
as ``ChatTurn`` sequences, so a single plain-text agent serves both triage
and diagnosis.  Provider errors are translated into application errors here.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger
from openai import APIError, APITimeoutError, AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelRequestPart,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from promaallem.application.exceptions import RateLimited, UpstreamFailure, UpstreamTimeout
from promaallem.config import LLMProviderConfig
from promaallem.domain.models import ChatTurn

# ---------------------------------------------------------------------------
# Agent factory
# ---------------------------------------------------------------------------


def create_chat_agent(config: LLMProviderConfig, *, instrument: bool = False) -> Agent[None, str]:
    """Create a plain-text PydanticAI agent for the resolved provider."""
    client = AsyncOpenAI(base_url=config.base_url, api_key=config.api_key)

    model = OpenAIChatModel(
        config.model_id,
        provider=OpenAIProvider(openai_client=client),
    )

    return Agent(model=model, output_type=str, instrument=instrument)


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class PydanticAIChatModel:
    """``ILanguageModel`` implementation around a PydanticAI agent.

    Parameters
    ----------
    agent:
        A plain-text agent with no system prompt of its own.
    model_name:
        Model identifier, for logging.
    timeout_seconds:
        Upper bound for one completion; exceeding it raises ``UpstreamTimeout``.
    """

    def __init__(self, agent: Agent[None, str], *, model_name: str, timeout_seconds: float = 30.0) -> None:
        self.agent = agent
        self._model_name = model_name
        self.timeout_seconds = timeout_seconds

    @property
    def model_name(self) -> str:
        return self._model_name

    async def complete(
        self,
        turns: Sequence[ChatTurn],
        *,
        temperature: float,
        max_tokens: int | None = None,
    ) -> str:
        if not turns or turns[-1].role != "user":
            raise ValueError("the last turn must be a user message")

        history = self._build_history(turns[:-1])
        model_settings: ModelSettings = {"temperature": temperature}
        if max_tokens is not None:
            model_settings["max_tokens"] = max_tokens

        try:
            result = await asyncio.wait_for(
                self.agent.run(
                    turns[-1].content,
                    message_history=history or None,
                    model_settings=model_settings,
                ),
                timeout=self.timeout_seconds,
            )
        except (TimeoutError, APITimeoutError) as exc:
            logger.error("Model {} timed out after {}s", self.model_name, self.timeout_seconds)
            raise UpstreamTimeout(
                "Language model timed out", details=f"No answer within {self.timeout_seconds}s"
            ) from exc
        except ModelHTTPError as exc:
            if exc.status_code == 429:
                logger.warning("Model {} is rate limiting us", self.model_name)
                raise RateLimited() from exc
            logger.error("Model {} returned HTTP {}: {}", self.model_name, exc.status_code, exc)
            raise UpstreamFailure("Language model request failed", details=str(exc)) from exc
        except (AgentRunError, APIError) as exc:
            logger.error("Model {} call failed: {}", self.model_name, exc)
            raise UpstreamFailure("Language model request failed", details=str(exc)) from exc

        return result.output

    @staticmethod
    def _build_history(prior_turns: Sequence[ChatTurn]) -> list[ModelMessage]:
        """Convert turns into PydanticAI messages.

        Consecutive system/user turns are folded into one ``ModelRequest``;
        each assistant turn becomes a ``ModelResponse``.
        """
        history: list[ModelMessage] = []
        pending: list[ModelRequestPart] = []
        for turn in prior_turns:
            if turn.role == "assistant":
                if pending:
                    history.append(ModelRequest(parts=pending))
                    pending = []
                history.append(ModelResponse(parts=[TextPart(content=turn.content)]))
            elif turn.role == "system":
                pending.append(SystemPromptPart(content=turn.content))
            else:
                pending.append(UserPromptPart(content=turn.content))
        if pending:
            history.append(ModelRequest(parts=pending))
        return history
