from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from conftest import make_settings, status_error
from taskpilot.api.deps import get_orchestrator
from taskpilot.main import app
from taskpilot.services.completion_client import CompletionClient
from taskpilot.services.orchestrator import GenerationOrchestrator
from taskpilot.services.response_parser import fallback_tasks


@pytest.fixture()
def api(make_orchestrator):
    """Return a factory that wires the app to an orchestrator replaying ``outcomes``."""

    def _make(outcomes):
        orchestrator, sdk = make_orchestrator(outcomes)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return TestClient(app), sdk

    yield _make
    app.dependency_overrides.clear()


def test_breakdown_returns_tasks(api) -> None:
    client, sdk = api([json.dumps(["Sketch the schema", "Write the migration", "Add the endpoint"])])

    response = client.post("/ai/breakdown", json={"goal": "Add a notes feature", "type": "dev"})

    assert response.status_code == 200
    assert response.json() == {"tasks": ["Sketch the schema", "Write the migration", "Add the endpoint"]}
    assert "Goal: Add a notes feature" in sdk.calls[0]["messages"][1]["content"]


def test_breakdown_never_errors(api) -> None:
    client, _ = api([status_error(400, "Invalid request")])

    response = client.post("/ai/breakdown", json={"goal": "Tidy the house"})

    assert response.status_code == 200
    assert response.json()["tasks"] == fallback_tasks("Tidy the house", "custom")


def test_breakdown_accepts_previous_qa_alias(api) -> None:
    client, sdk = api([json.dumps(["One step", "Two step", "Three step"])])

    response = client.post(
        "/ai/breakdown",
        json={
            "goal": "Launch a newsletter",
            "userProfile": "Marketing lead",
            "previousQA": [{"q": "Which platform?", "a": "Substack, launching before the deadline"}],
        },
    )

    assert response.status_code == 200
    user_content = sdk.calls[0]["messages"][1]["content"]
    assert "Q1: Which platform?\nA1: Substack, launching before the deadline" in user_content


def test_breakdown_rejects_empty_goal(api) -> None:
    client, sdk = api(["unused"])

    response = client.post("/ai/breakdown", json={"goal": ""})

    assert response.status_code == 422
    assert sdk.calls == []


def test_clarify_returns_questions(api) -> None:
    client, _ = api([json.dumps({"questions": ["Which stack?", "Any deadline?"]})])

    response = client.post("/ai/clarify", json={"goal": "Build a portfolio site", "type": "dev"})

    assert response.status_code == 200
    assert response.json() == {"questions": ["Which stack?", "Any deadline?"]}


def test_clarify_quota_maps_to_429(api) -> None:
    client, _ = api([status_error(429, "You exceeded your current quota")])

    response = client.post("/ai/clarify", json={"goal": "Build a portfolio site"})

    assert response.status_code == 429
    assert "quota" in response.json()["detail"]


def test_clarify_server_errors_map_to_502(api) -> None:
    client, sdk = api([status_error(503, "overloaded")])

    response = client.post("/ai/clarify", json={"goal": "Build a portfolio site"})

    assert response.status_code == 502
    assert len(sdk.calls) == 4


def test_clarify_without_api_key_maps_to_503() -> None:
    orchestrator = GenerationOrchestrator(CompletionClient(make_settings(openai_api_key=None)))
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    try:
        response = TestClient(app).post("/ai/clarify", json={"goal": "Build a portfolio site"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert "OPENAI_API_KEY" in response.json()["detail"]


def test_clarify_raw_returns_text(api) -> None:
    client, _ = api(["1. What is your budget?\n2. Who is the audience?"])

    response = client.post("/ai/clarify/raw", json={"goal": "Plan a workshop"})

    assert response.status_code == 200
    assert response.json() == {"text": "1. What is your budget?\n2. Who is the audience?"}


def test_mood_endpoint(api) -> None:
    client, _ = api(['{"mood": "tired", "motivation": -2, "suggestion": "Rest for ten minutes."}'])

    response = client.post("/ai/mood", json={"note": "  Long night  "})

    assert response.status_code == 200
    assert response.json() == {"mood": "tired", "motivation": 0, "suggestion": "Rest for ten minutes."}


def test_chat_endpoint(api) -> None:
    client, sdk = api(["Let's start small."])

    response = client.post("/ai/chat", json={"messages": [{"role": "user", "content": "I'm stuck"}]})

    assert response.status_code == 200
    assert response.json() == {"reply": "Let's start small."}
    assert sdk.calls[0]["messages"] == [{"role": "user", "content": "I'm stuck"}]


def test_chat_requires_messages(api) -> None:
    client, _ = api(["unused"])

    assert client.post("/ai/chat", json={"messages": []}).status_code == 422
    assert client.post("/ai/chat", json={"messages": [{"role": "robot", "content": "hi"}]}).status_code == 422


def test_blank_mood_note_is_rejected(api) -> None:
    client, sdk = api(["unused"])

    response = client.post("/ai/mood", json={"note": "   \n\t "})

    assert response.status_code == 422
    assert sdk.calls == []


def test_mood_note_is_trimmed_before_prompting(api) -> None:
    client, sdk = api(['{"mood": "steady", "motivation": 5, "suggestion": "Keep going."}'])

    client.post("/ai/mood", json={"note": "  Long night  "})

    assert sdk.calls[0]["messages"][-1] == {"role": "user", "content": "Note: Long night"}


def test_blank_goal_is_rejected(api) -> None:
    client, sdk = api(["unused"])

    assert client.post("/ai/clarify", json={"goal": "   "}).status_code == 422
    assert sdk.calls == []


def test_quota_worded_rate_limit_without_status_maps_to_429(api) -> None:
    client, sdk = api([RuntimeError("Rate limit hit: monthly quota used up")])

    response = client.post("/ai/clarify", json={"goal": "Build a portfolio site"})

    assert response.status_code == 429
    assert len(sdk.calls) == 1
