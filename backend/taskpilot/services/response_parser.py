"""Tiered parsing of model output into validated task and question lists."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import cached_property
from typing import Annotated, Any, Callable, List, Optional, Tuple

from pydantic import Field, StringConstraints, TypeAdapter, ValidationError

from taskpilot.services.generation_types import (
    QUESTION_COUNT_RANGE,
    QUESTION_LENGTH_RANGE,
    TASK_COUNT_RANGE,
    TASK_LENGTH_RANGE,
    ParseOutcome,
    ParseResult,
    TaskType,
)

logger = logging.getLogger(__name__)

_LIST_MARKER = re.compile(r"^\s*(?:[-*+•‣◦]|\(?\d{1,2}[.):\]])\s*")
_WORD = re.compile(r"\w")
# brackets and `"key": [` lines left over from pretty-printed JSON
_JSON_SCAFFOLD = re.compile(r'^(?:[\[\]{}]|"?\w+"?\s*:\s*[\[{]?\s*$)')
_GOAL_FOCUS_LIMIT = 110


@dataclass(frozen=True)
class ListSpec:
    """Shape and bounds a parsed list must satisfy."""

    name: str
    field_names: Tuple[str, ...]
    count_range: Tuple[int, int]
    length_range: Tuple[int, int]

    @property
    def max_items(self) -> int:
        return self.count_range[1]

    @cached_property
    def adapter(self) -> TypeAdapter:
        min_length, max_length = self.length_range
        min_items, max_items = self.count_range
        item = Annotated[str, StringConstraints(strip_whitespace=True, min_length=min_length, max_length=max_length)]
        return TypeAdapter(Annotated[List[item], Field(min_length=min_items, max_length=max_items)])


TASK_LIST = ListSpec("tasks", ("tasks", "steps", "items"), TASK_COUNT_RANGE, TASK_LENGTH_RANGE)
QUESTION_LIST = ListSpec("questions", ("questions",), QUESTION_COUNT_RANGE, QUESTION_LENGTH_RANGE)


@dataclass(frozen=True)
class Validation:
    """Tagged success/failure of one parse attempt.

    A ``conclusive`` failure means the model did answer with a list of
    strings that is unusable (for example empty), so later tiers must not
    reinterpret the same text line by line.
    """

    items: Optional[List[str]] = None
    error: Optional[str] = None
    conclusive: bool = False

    @property
    def ok(self) -> bool:
        return self.items is not None

    @classmethod
    def failure(cls, error: str, *, conclusive: bool = False) -> "Validation":
        return cls(error=error, conclusive=conclusive)


def validate_items(candidate: Any, spec: ListSpec) -> Validation:
    """Validate a decoded list; extra items beyond the use-case maximum are trimmed."""
    if not isinstance(candidate, list):
        return Validation.failure(f"expected a list, got {type(candidate).__name__}")
    if not all(isinstance(item, str) for item in candidate):
        return Validation.failure("list contains non-string items")
    unique = _dedupe(item.strip() for item in candidate)
    if len(unique) > spec.max_items:
        logger.debug("Trimming %s %s to the first %s", len(unique), spec.name, spec.max_items)
        unique = unique[: spec.max_items]
    try:
        items = spec.adapter.validate_python(unique)
    except ValidationError as exc:
        error = f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}"
        return Validation.failure(error, conclusive=True)
    return Validation(items=items)


def parse_structured(text: str, spec: ListSpec) -> Validation:
    """Parse the whole text as a JSON array or an object holding the named array."""
    try:
        payload = json.loads(text.strip())
    except ValueError:
        return Validation.failure("not valid JSON")
    candidate = _extract_list(payload, spec)
    if candidate is None:
        return Validation.failure(f"no {spec.name} array in JSON payload")
    return validate_items(candidate, spec)


def parse_embedded(text: str, spec: ListSpec) -> Validation:
    """Parse the first bracket-balanced array found inside surrounding prose."""
    fragment = find_bracketed(text, "[", "]")
    if fragment is None:
        return Validation.failure("no embedded array")
    return parse_structured(fragment, spec)


def parse_heuristic(text: str, spec: ListSpec) -> Validation:
    """Treat each meaningful line as an item after stripping list markers."""
    min_length, max_length = spec.length_range
    lines: List[str] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("```") or _JSON_SCAFFOLD.match(line):
            continue
        line = _LIST_MARKER.sub("", line, count=1)
        line = line.strip().rstrip(",").strip().strip("\"'`").strip()
        if not line or not _WORD.search(line) or line.endswith(":"):
            continue
        if not min_length <= len(line) <= max_length:
            logger.debug("Dropping out-of-bounds %s line (%s chars)", spec.name, len(line))
            continue
        lines.append(line)
    unique = _dedupe(lines)[: spec.max_items]
    if not unique:
        return Validation.failure("no usable lines")
    return validate_items(unique, spec)


STRATEGIES: Tuple[Tuple[ParseOutcome, Callable[[str, ListSpec], Validation]], ...] = (
    (ParseOutcome.STRUCTURED, parse_structured),
    (ParseOutcome.EMBEDDED, parse_embedded),
    (ParseOutcome.HEURISTIC, parse_heuristic),
)


def parse_list(text: str, spec: ListSpec) -> ParseResult:
    """Run the strategies in order; the first valid list wins."""
    for outcome, strategy in STRATEGIES:
        result = strategy(text or "", spec)
        if result.ok:
            logger.debug("Parsed %s %s via %s tier", len(result.items), spec.name, outcome.value)
            return ParseResult(items=result.items, outcome=outcome)
        logger.debug("%s tier rejected %s output: %s", outcome.value, spec.name, result.error)
        if result.conclusive:
            break
    return ParseResult(items=[], outcome=ParseOutcome.EMPTY)


def parse_task_list(text: str, goal: str, task_type: TaskType = "custom") -> ParseResult:
    result = parse_list(text, TASK_LIST)
    if result.items:
        return result
    logger.warning("Model output held no usable task list; using fallback tasks")
    return ParseResult(items=fallback_tasks(goal, task_type), outcome=ParseOutcome.FALLBACK)


def parse_question_list(text: str) -> ParseResult:
    return parse_list(text, QUESTION_LIST)


def fallback_tasks(goal: str, task_type: TaskType = "custom") -> List[str]:
    """Return a deterministic task list when generation or parsing fails."""
    focus = _goal_focus(goal)
    if task_type == "dev":
        return [
            f'Clarify acceptance criteria for "{focus}"',
            f'Audit code/docs relevant to "{focus}"',
            f'Create feature branch for "{focus}"',
            f'Implement core logic for "{focus}"',
            f'Write unit tests for "{focus}"',
            f'Update docs/README for "{focus}"',
            f'Open PR and request review for "{focus}"',
        ]
    return [
        f'Define success criteria for "{focus}"',
        f'List required materials or info for "{focus}"',
        f'Schedule focused time for "{focus}"',
        f'Complete first concrete step for "{focus}"',
        f'Review progress and adjust plan for "{focus}"',
        f'Document notes or outcomes for "{focus}"',
        f'Share or reflect on results for "{focus}"',
    ]


def find_bracketed(text: str, open_char: str, close_char: str) -> Optional[str]:
    """Return the first substring enclosed by balanced ``open_char``/``close_char``.

    Brackets inside JSON string literals are ignored.
    """
    start = text.find(open_char)
    while start != -1:
        depth = 0
        in_string = False
        escape = False
        for index in range(start, len(text)):
            char = text[index]
            if escape:
                escape = False
                continue
            if in_string:
                if char == "\\":
                    escape = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == open_char:
                depth += 1
            elif char == close_char:
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find(open_char, start + 1)
    return None


def _extract_list(payload: Any, spec: ListSpec) -> Optional[list]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for name in spec.field_names:
            value = payload.get(name)
            if isinstance(value, list):
                return value
    return None


def _dedupe(items) -> List[str]:
    return list(dict.fromkeys(items))


def _goal_focus(goal: str) -> str:
    cleaned = " ".join((goal or "").split())
    if not cleaned:
        return "the goal"
    if len(cleaned) > _GOAL_FOCUS_LIMIT:
        return f"{cleaned[: _GOAL_FOCUS_LIMIT - 3]}..."
    return cleaned
