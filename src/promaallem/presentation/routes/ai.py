"""AI routes: SOS triage and the diagnosis chatbot."""

from __future__ import annotations

from fastapi import APIRouter, Request
from loguru import logger

from promaallem.application.use_cases.diagnosis import DiagnosisUseCase
from promaallem.application.use_cases.triage import TriageResult, TriageUseCase
from promaallem.presentation.schemas import (
    AnalyzeSosRequest,
    AnalyzeSosResponse,
    DiagnoseRequest,
    DiagnoseResponse,
    ServiceMatchResponse,
    error_responses,
)

router = APIRouter(tags=["ai"])


@router.post(
    "/api/ai/analyze-sos",
    response_model=AnalyzeSosResponse,
    responses=error_responses(400, 429, 500, 504),
)
async def analyze_sos(body: AnalyzeSosRequest, request: Request):
    """Classify a free-text SOS description and suggest a catalog service.

    Always answers 200 with some analysis once the model replied: output
    the model got wrong comes back as ``{category: "Unsure", raw_response}``.
    """
    uc: TriageUseCase = request.app.state.triage_uc

    logger.info(
        "POST /api/ai/analyze-sos | location={} desc={}",
        body.location,
        (body.description or "")[:60],
    )

    result: TriageResult = await uc.execute(body.description, body.location)

    match = result.service_match
    return AnalyzeSosResponse(
        analysis=result.analysis.as_payload(),
        service_match=(
            ServiceMatchResponse(id=match.id, name=match.name, base_price=match.base_price)
            if match
            else None
        ),
    )


@router.post(
    "/api/chat/diagnose",
    response_model=DiagnoseResponse,
    responses=error_responses(400, 429, 500, 504),
)
async def diagnose(body: DiagnoseRequest, request: Request):
    """Answer one turn of the "Dr. ProMaallem" troubleshooting chat."""
    uc: DiagnosisUseCase = request.app.state.diagnosis_uc

    history = body.previous_messages or []
    logger.info(
        "POST /api/chat/diagnose | history={} msg={}",
        len(history),
        (body.message or "")[:60],
    )

    reply = await uc.respond(history, body.message)
    return DiagnoseResponse(reply=reply)
