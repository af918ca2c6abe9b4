"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import asyncio
import json

import pytest

from taskpilot.observability import client as client_module
from taskpilot.observability import tracing
from taskpilot.services.generation_types import GenerationRequest


class _DummyTrace:
    def __init__(self, name, metadata=None):
        self.name = name
        self.metadata = dict(metadata or {})
        self.errors = []
        self.ended = False

    def update(self, metadata=None, error_info=None, **kwargs):
        if metadata:
            self.metadata.update(metadata)
        if error_info:
            self.errors.append(error_info)

    def end(self):
        self.ended = True


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs
        self.traces = []

    def trace(self, name, metadata=None):
        trace = _DummyTrace(name, metadata)
        self.traces.append(trace)
        return trace


@pytest.fixture()
def opik_settings(monkeypatch):
    """Point the client module at test settings and forget any cached client."""

    def _apply(**overrides):
        for key, value in overrides.items():
            monkeypatch.setattr(client_module.settings, key, value)
        client_module.reset_opik()

    yield _apply
    client_module.reset_opik()


def test_opik_disabled_by_default(opik_settings) -> None:
    opik_settings(opik_enabled=False)

    assert client_module.init_opik() is None
    with tracing.trace("generation.chat") as span:
        assert span is None


def test_opik_enabled_without_key_stays_off(opik_settings, monkeypatch) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    opik_settings(opik_enabled=True, opik_api_key=None)

    assert client_module.get_opik_client() is None


def test_enabled_opik_records_generation_traces(opik_settings, monkeypatch, make_orchestrator) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    opik_settings(opik_enabled=True, opik_api_key="opik-test", opik_project="taskpilot-test")
    orchestrator, _ = make_orchestrator([json.dumps(["Outline", "Draft", "Publish"])])

    asyncio.run(orchestrator.breakdown_tasks(GenerationRequest(goal="Write a post")))

    opik = client_module.get_opik_client()
    assert opik.kwargs == {"project_name": "taskpilot-test", "api_key": "opik-test"}
    by_name = {trace.name: trace for trace in opik.traces}
    assert by_name["generation.breakdown"].metadata["parse_outcome"] == "structured"
    assert by_name["completion.attempt"].metadata["use_case"] == "breakdown"
    assert by_name["metric:generation.parse.outcome"].metadata["outcome"] == "structured"
    assert all(trace.ended for trace in opik.traces)


def test_trace_records_errors_and_reraises(opik_settings, monkeypatch) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    opik_settings(opik_enabled=True, opik_api_key="opik-test")

    with pytest.raises(ValueError):
        with tracing.trace("generation.clarify"):
            raise ValueError("boom")

    recorded = client_module.get_opik_client().traces[0]
    assert recorded.errors == [{"message": "boom", "type": "ValueError"}]
    assert recorded.ended
