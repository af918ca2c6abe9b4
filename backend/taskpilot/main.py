"""Main FastAPI application for the TaskPilot assistant."""
from fastapi import FastAPI, Request

from taskpilot.api.routes.ai import router as ai_router
from taskpilot.api.routes.mood import router as mood_router
from taskpilot.core.config import settings
from taskpilot.core.logging import configure_logging
from taskpilot.core.middleware import RequestIDMiddleware
from taskpilot.observability.client import init_opik
from taskpilot.observability.tracing import trace
from taskpilot.services.completion_client import CompletionClient
from taskpilot.services.mood_log import MoodLog
from taskpilot.services.orchestrator import GenerationOrchestrator

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(ai_router)
app.include_router(mood_router)


@app.on_event("startup")
async def startup_services() -> None:
    """Build the shared orchestrator and initialize observability once the loop starts."""
    init_opik()
    app.state.orchestrator = GenerationOrchestrator(CompletionClient(settings))
    app.state.mood_log = MoodLog(settings.mood_log_path)


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so the desktop shell can check the API is up."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
