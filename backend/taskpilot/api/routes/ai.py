"""Generation API routes mirroring the desktop bridge (chat, mood, breakdown, clarify)."""
from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from taskpilot.api.deps import get_orchestrator
from taskpilot.api.schemas.ai import (
    BreakdownResponse,
    ChatRequest,
    ChatResponse,
    ClarifyRawResponse,
    ClarifyResponse,
    GoalRequest,
    MoodRequest,
    MoodResponse,
)
from taskpilot.services.completion_client import FailureKind, classify_failure
from taskpilot.services.orchestrator import GenerationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])

FAILURE_STATUS = {
    FailureKind.CONFIGURATION: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureKind.QUOTA_EXHAUSTED: status.HTTP_429_TOO_MANY_REQUESTS,
    FailureKind.TRANSIENT: status.HTTP_502_BAD_GATEWAY,
    FailureKind.FATAL: status.HTTP_502_BAD_GATEWAY,
}
FAILURE_DETAIL = {
    FailureKind.CONFIGURATION: "The assistant is not configured: OPENAI_API_KEY is missing.",
    FailureKind.QUOTA_EXHAUSTED: "The language-model quota is exhausted. Please check the account's plan and billing.",
    FailureKind.TRANSIENT: "The language model is busy or unreachable. Please try again shortly.",
    FailureKind.FATAL: "The language model rejected the request.",
}


def _raise_generation_error(exc: Exception) -> NoReturn:
    kind = classify_failure(exc)
    logger.error("Generation request failed (%s): %s", kind.value, exc)
    raise HTTPException(status_code=FAILURE_STATUS[kind], detail=FAILURE_DETAIL[kind]) from exc


@router.post("/chat", response_model=ChatResponse, summary="Free chat with the assistant")
async def chat(payload: ChatRequest, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)) -> ChatResponse:
    try:
        reply = await orchestrator.converse(payload.messages)
    except Exception as exc:
        _raise_generation_error(exc)
    return ChatResponse(reply=reply)


@router.post("/mood", response_model=MoodResponse, summary="Assess mood and motivation from a note")
async def mood(payload: MoodRequest, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)) -> MoodResponse:
    try:
        assessment = await orchestrator.assess_mood(payload.note)
    except Exception as exc:
        _raise_generation_error(exc)
    return MoodResponse(**assessment.model_dump())


@router.post("/breakdown", response_model=BreakdownResponse, summary="Break a goal into actionable tasks")
async def breakdown(
    payload: GoalRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> BreakdownResponse:
    tasks = await orchestrator.breakdown_tasks(payload.to_generation_request())
    return BreakdownResponse(tasks=tasks)


@router.post("/clarify", response_model=ClarifyResponse, summary="Ask clarifying questions before planning")
async def clarify(
    payload: GoalRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> ClarifyResponse:
    try:
        questions = await orchestrator.clarify_tasks(payload.to_generation_request())
    except Exception as exc:
        _raise_generation_error(exc)
    return ClarifyResponse(questions=questions)


@router.post("/clarify/raw", response_model=ClarifyRawResponse, summary="Clarifying questions as free text")
async def clarify_raw(
    payload: GoalRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> ClarifyRawResponse:
    try:
        text = await orchestrator.clarify_tasks_raw(payload.to_generation_request())
    except Exception as exc:
        _raise_generation_error(exc)
    return ClarifyRawResponse(text=text)
