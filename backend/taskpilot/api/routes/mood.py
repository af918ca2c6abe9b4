"""Mood log persistence route."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from taskpilot.api.deps import get_mood_log
from taskpilot.api.schemas.mood import MoodRecordRequest, MoodRecordResponse
from taskpilot.observability.metrics import log_metric
from taskpilot.services.mood_log import MoodLog

router = APIRouter(tags=["mood"])


@router.post("/mood/records", response_model=MoodRecordResponse, summary="Append a mood check-in")
def save_mood_record(payload: MoodRecordRequest, mood_log: MoodLog = Depends(get_mood_log)) -> MoodRecordResponse:
    saved = mood_log.append(
        note=payload.note,
        mood=payload.mood,
        motivation=payload.motivation,
        suggestion=payload.suggestion,
    )
    log_metric("mood.record.saved", 1 if saved else 0, metadata={"mood": payload.mood})
    return MoodRecordResponse(saved=saved)
