"""SOS triage use case: one-shot classification of a problem description.

The pipeline is: build the structured-output prompt, call the language
model at low temperature, clean and parse its answer into an analysis, then
cross-reference the category against the service catalog.  The model is not
trusted to follow the format, so interpretation never fails: unparseable
output becomes a ``DegradedAnalysis`` carrying the cleaned text.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

from loguru import logger
from pydantic import ValidationError as SchemaError

from promaallem.application.exceptions import UpstreamFailure, ValidationError
from promaallem.domain.models import (
    Analysis,
    AnalysisResult,
    ChatTurn,
    DegradedAnalysis,
    ParsedAnalysis,
    ServiceCatalogEntry,
)
from promaallem.domain.protocols import ILanguageModel, IMarketplaceStore

DEFAULT_CITY = "Casablanca"

TRIAGE_TEMPERATURE = 0.2
TRIAGE_MAX_TOKENS = 500

CATEGORIES = (
    "Plomberie",
    "Électricité",
    "Serrurerie",
    "Peinture",
    "Climatisation",
    "Électroménager",
)

PRICING_ANCHORS = {
    "Plomberie": "150-300DH",
    "Électricité": "200-400DH",
}

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

TRIAGE_SYSTEM_PROMPT = """\
You are the expert service classifier for "ProMaallem", a Moroccan home \
service marketplace.
Your goal is to analyze client requests (in French, Arabic, or Darija) and \
structure them for artisans.

**Context & Constraints:**
- **Market**: Morocco (Casablanca mainly).
- **Languages**: Understand Darija terms (e.g., "robini", "bula", "fuit", "chauffe-eau").
- **Pricing**: Estimate in MAD (Dirhams). """ + ", ".join(
    f"{category} ~{price}" for category, price in PRICING_ANCHORS.items()
) + """.

**Analysis Steps:**
1. **Categorize**: """ + ", ".join(CATEGORIES) + """.
2. **Diagnose**: Identify specific problem (e.g., "Fuite robinet" vs "Canalisation bouchée").
3. **Urgency**: Score 1 (Low) to 5 (Critical/Danger).
4. **Estimation**: Time range and price range.
5. **Safety**: Immediate instructions if dangerous.

**Output Format**:
Return ONLY one valid JSON object with exactly these fields, no markdown \
formatting and no text before or after it:
{
  "category": "string",
  "confidence_score": 0-100,
  "problem_type": "string",
  "urgency_level": 1-5,
  "estimated_duration": "string",
  "estimated_price_range": "string",
  "suggested_package": "string",
  "possible_complications": ["string"],
  "safety_instructions": "string (or null)",
  "required_tools": ["string"]
}
"""


# ---------------------------------------------------------------------------
# Prompt construction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PromptSpec:
    """Everything needed for one structured-output model call."""

    system_prompt: str
    user_prompt: str
    temperature: float = TRIAGE_TEMPERATURE
    max_tokens: int = TRIAGE_MAX_TOKENS

    def as_turns(self) -> list[ChatTurn]:
        return [
            ChatTurn(role="system", content=self.system_prompt),
            ChatTurn(role="user", content=self.user_prompt),
        ]


def build_triage_prompt(
    description: str | None,
    location: str | None = None,
    *,
    default_city: str = DEFAULT_CITY,
) -> PromptSpec:
    """Build the triage prompt for a free-text problem description.

    Raises:
        ValidationError: If *description* is missing or blank.
    """
    if not description or not description.strip():
        raise ValidationError("Description is required")

    return PromptSpec(
        system_prompt=TRIAGE_SYSTEM_PROMPT,
        user_prompt=f"Description: {description}. Location: {location or default_city}",
    )


# ---------------------------------------------------------------------------
# Response interpretation
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```(?:json)?")
_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)


def clean_model_output(raw_text: str | None) -> str:
    """Strip code fences and ``<think>`` reasoning blocks, then trim."""
    text = _FENCE_RE.sub("", raw_text or "")
    text = _THINK_RE.sub("", text)
    return text.strip()


def _parse_analysis(text: str) -> AnalysisResult | None:
    try:
        payload = json.loads(text)
        return AnalysisResult.model_validate(payload)
    except (ValueError, RecursionError, SchemaError):
        return None


def interpret(raw_text: str | None) -> Analysis:
    """Turn raw model output into an analysis.  Never raises."""
    cleaned = clean_model_output(raw_text)

    result = _parse_analysis(cleaned)
    if result is None:
        # Repair: the object may be wrapped in stray prose
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if 0 <= start < end and (start, end) != (0, len(cleaned) - 1):
            result = _parse_analysis(cleaned[start : end + 1])

    if result is None:
        logger.warning("Model output is not a valid analysis, degrading | chars={}", len(cleaned))
        return DegradedAnalysis(raw_response=cleaned)
    return ParsedAnalysis(result=result)


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


@dataclass
class TriageResult:
    analysis: Analysis
    service_match: ServiceCatalogEntry | None = None


class TriageUseCase:
    """Classifies an SOS description and matches it to a catalog service."""

    def __init__(
        self,
        llm: ILanguageModel,
        store: IMarketplaceStore,
        default_city: str = DEFAULT_CITY,
    ) -> None:
        self.llm = llm
        self.store = store
        self.default_city = default_city

    async def execute(self, description: str | None, location: str | None = None) -> TriageResult:
        """Run a triage.

        Raises:
            ValidationError: If *description* is blank (no model call is made).
            RateLimited, UpstreamFailure: If the model call fails.
        """
        prompt = build_triage_prompt(description, location, default_city=self.default_city)

        raw = await self.llm.complete(
            prompt.as_turns(),
            temperature=prompt.temperature,
            max_tokens=prompt.max_tokens,
        )
        analysis = interpret(raw)

        service_match = None
        if isinstance(analysis, ParsedAnalysis) and analysis.category:
            service_match = await self._match_service(analysis.category)

        logger.info(
            "Triage completed | category={} degraded={} service_match={}",
            analysis.category,
            isinstance(analysis, DegradedAnalysis),
            service_match.id if service_match else None,
        )
        return TriageResult(analysis=analysis, service_match=service_match)

    async def _match_service(self, category: str) -> ServiceCatalogEntry | None:
        """Case-insensitive substring match; only a single hit counts."""
        try:
            matches = await self.store.search_services(category)
        except UpstreamFailure as exc:
            logger.warning("Service catalog lookup failed for '{}': {}", category, exc)
            return None
        return matches[0] if len(matches) == 1 else None
