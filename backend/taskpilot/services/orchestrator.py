"""Generation orchestrator: prompts, completion, parsing and fallbacks per use case."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Sequence

from taskpilot.core.context import bind_use_case, reset_use_case
from taskpilot.observability.metrics import log_metric
from taskpilot.observability.tracing import annotate, trace
from taskpilot.services import mood_assessor
from taskpilot.services.completion_client import (
    JSON_OBJECT_FORMAT,
    CompletionClient,
    CompletionOptions,
    classify_failure,
)
from taskpilot.services.generation_types import (
    GenerationRequest,
    Message,
    MoodAssessment,
    ParseOutcome,
    ParseResult,
)
from taskpilot.services.prompt_builders import (
    build_breakdown_messages,
    build_chat_messages,
    build_clarify_messages,
    build_clarify_raw_messages,
)
from taskpilot.services.response_parser import fallback_tasks, parse_question_list, parse_task_list

logger = logging.getLogger(__name__)

CHAT_OPTIONS = CompletionOptions(temperature=0.4)
BREAKDOWN_OPTIONS = CompletionOptions(temperature=0.3)
CLARIFY_OPTIONS = CompletionOptions(temperature=0.2, response_format=JSON_OBJECT_FORMAT)
CLARIFY_RAW_OPTIONS = CompletionOptions(temperature=0.3)


@contextmanager
def _use_case(name: str) -> Iterator[None]:
    token = bind_use_case(name)
    try:
        yield
    finally:
        reset_use_case(token)


def _question_key(question: str) -> str:
    return " ".join(question.lower().split()).rstrip("?")


class GenerationOrchestrator:
    """Entry point for the assistant's four generation use cases.

    Built once at startup around a single CompletionClient and shared by all
    callers. Each operation handles one request and keeps no state between
    calls.
    """

    def __init__(self, client: CompletionClient) -> None:
        self.client = client

    async def converse(self, messages: Sequence[Message]) -> str:
        with _use_case("chat"), trace("generation.chat", metadata={"turns": len(messages)}) as span:
            result = await self.client.complete(build_chat_messages(messages), CHAT_OPTIONS)
            annotate(span, model=result.model)
        return result.text

    async def assess_mood(self, note: str) -> MoodAssessment:
        with _use_case("mood"), trace("generation.mood", metadata={"note_length": len(note)}):
            return await mood_assessor.assess_mood(self.client, note)

    async def breakdown_tasks(self, request: GenerationRequest) -> List[str]:
        """Return 3-10 tasks for the goal; degrades to the fallback list instead of raising."""
        metadata = {"task_type": request.task_type, "answered_qa": len(request.answered_qa)}
        with _use_case("breakdown"), trace("generation.breakdown", metadata=metadata) as span:
            try:
                result = await self.client.complete(build_breakdown_messages(request), BREAKDOWN_OPTIONS)
            except Exception as exc:
                kind = classify_failure(exc)
                logger.warning("Task breakdown generation failed (%s); returning fallback tasks: %s", kind.value, exc)
                log_metric("generation.fallback.used", 1, {"reason": kind.value, "task_type": request.task_type})
                annotate(span, parse_outcome=ParseOutcome.FALLBACK.value, failure=kind.value)
                return fallback_tasks(request.goal, request.task_type)

            parsed = parse_task_list(result.text, request.goal, request.task_type)
            self._record_parse(parsed, result.model)
            annotate(span, model=result.model, parse_outcome=parsed.outcome.value, items=len(parsed.items))
            if parsed.outcome is ParseOutcome.FALLBACK:
                log_metric("generation.fallback.used", 1, {"reason": "malformed_output", "task_type": request.task_type})
            return parsed.items

    async def clarify_tasks(self, request: GenerationRequest) -> List[str]:
        """Return up to five new clarifying questions; an empty list means none were usable."""
        metadata = {"task_type": request.task_type, "previous_qa": len(request.previous_qa)}
        with _use_case("clarify"), trace("generation.clarify", metadata=metadata) as span:
            result = await self.client.complete(build_clarify_messages(request), CLARIFY_OPTIONS)
            parsed = parse_question_list(result.text)
            self._record_parse(parsed, result.model)
            questions = self._drop_repeated_questions(parsed.items, request)
            annotate(span, model=result.model, parse_outcome=parsed.outcome.value, items=len(questions))
            if not questions:
                logger.info("No usable clarifying questions in model output")
            return questions

    async def clarify_tasks_raw(self, request: GenerationRequest) -> str:
        with _use_case("clarify_raw"), trace("generation.clarify_raw", metadata={"task_type": request.task_type}) as span:
            result = await self.client.complete(build_clarify_raw_messages(request), CLARIFY_RAW_OPTIONS)
            annotate(span, model=result.model)
        return result.text

    @staticmethod
    def _drop_repeated_questions(questions: List[str], request: GenerationRequest) -> List[str]:
        asked = {_question_key(pair.q) for pair in request.previous_qa}
        fresh = [question for question in questions if _question_key(question) not in asked]
        if len(fresh) < len(questions):
            logger.info("Dropped %s question(s) already asked in earlier rounds", len(questions) - len(fresh))
        return fresh

    @staticmethod
    def _record_parse(parsed: ParseResult, model: str) -> None:
        logger.info("Parsed %s item(s) via %s tier (model=%s)", len(parsed.items), parsed.outcome.value, model)
        log_metric("generation.parse.outcome", 1, {"outcome": parsed.outcome.value, "model": model})
