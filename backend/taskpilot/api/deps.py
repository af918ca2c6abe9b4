"""FastAPI dependencies for shared generation services."""
from __future__ import annotations

from fastapi import Request

from taskpilot.core.config import settings
from taskpilot.services.completion_client import CompletionClient
from taskpilot.services.mood_log import MoodLog
from taskpilot.services.orchestrator import GenerationOrchestrator


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    """Return the orchestrator built at startup, creating it if startup was skipped."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = GenerationOrchestrator(CompletionClient(settings))
        request.app.state.orchestrator = orchestrator
    return orchestrator


def get_mood_log(request: Request) -> MoodLog:
    mood_log = getattr(request.app.state, "mood_log", None)
    if mood_log is None:
        mood_log = MoodLog(settings.mood_log_path)
        request.app.state.mood_log = mood_log
    return mood_log
