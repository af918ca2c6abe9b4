from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import httpx
import openai
import pytest

from taskpilot.core.config import Settings
from taskpilot.services.completion_client import CompletionClient
from taskpilot.services.orchestrator import GenerationOrchestrator

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class _FakeCompletions:
    """Replays scripted outcomes: strings become replies, exceptions are raised."""

    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(model=kwargs["model"], choices=[SimpleNamespace(message=message, finish_reason="stop")])


class FakeSDK:
    def __init__(self, outcomes: List[Any]):
        self.completions = _FakeCompletions(outcomes)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.completions.calls

    @property
    def models_called(self) -> List[str]:
        return [call["model"] for call in self.calls]


def status_error(status: int, message: str) -> openai.APIStatusError:
    request = httpx.Request("POST", OPENAI_URL)
    response = httpx.Response(status, request=request)
    if status == 429:
        error_cls = openai.RateLimitError
    elif status >= 500:
        error_cls = openai.InternalServerError
    else:
        error_cls = openai.BadRequestError
    return error_cls(message, response=response, body=None)


def timeout_error() -> openai.APITimeoutError:
    return openai.APITimeoutError(request=httpx.Request("POST", OPENAI_URL))


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "openai_api_key": "sk-test",
        "openai_model": None,
        "openai_fallback_model": "gpt-4o",
        "opik_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture()
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def make_client(sleeper):
    """Build a CompletionClient over a FakeSDK that replays ``outcomes``."""

    def _make(outcomes: List[Any], **setting_overrides: Any):
        sdk = FakeSDK(outcomes)
        client = CompletionClient(make_settings(**setting_overrides), sdk_factory=lambda: sdk, sleep=sleeper)
        return client, sdk

    return _make


@pytest.fixture()
def make_orchestrator(make_client):
    def _make(outcomes: List[Any], **setting_overrides: Any):
        client, sdk = make_client(outcomes, **setting_overrides)
        return GenerationOrchestrator(client), sdk

    return _make
