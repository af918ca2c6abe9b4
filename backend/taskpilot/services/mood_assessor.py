"""Mood assessment: prompt, completion and lenient parsing of the coach's JSON reply."""
from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Optional

from taskpilot.services.completion_client import JSON_OBJECT_FORMAT, CompletionClient, CompletionOptions
from taskpilot.services.generation_types import (
    DEFAULT_MOTIVATION,
    MOOD_LABELS,
    MOTIVATION_RANGE,
    NEUTRAL_MOOD,
    MoodAssessment,
)
from taskpilot.services.prompt_builders import build_mood_messages
from taskpilot.services.response_parser import find_bracketed

logger = logging.getLogger(__name__)

SUGGESTION_EXCERPT_CHARS = 200
DEFAULT_SUGGESTION = "Take a short break, then start with one small, concrete step."
MOOD_OPTIONS = CompletionOptions(temperature=0.4, response_format=JSON_OBJECT_FORMAT)


def clamp_motivation(value: Any) -> int:
    low, high = MOTIVATION_RANGE
    if isinstance(value, bool):
        return DEFAULT_MOTIVATION
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_MOTIVATION
    if math.isnan(number):
        return DEFAULT_MOTIVATION
    return int(round(max(low, min(high, number))))


def normalize_mood(value: Any) -> str:
    label = str(value or "").strip().lower()
    return label if label in MOOD_LABELS else NEUTRAL_MOOD


def parse_mood(raw: str) -> MoodAssessment:
    """Turn the coach's reply into a MoodAssessment; never raises."""
    payload = _load_object(raw)
    if payload is None:
        logger.info("Mood reply was not JSON; keeping an excerpt as the suggestion")
        return MoodAssessment(
            mood=NEUTRAL_MOOD,
            motivation=DEFAULT_MOTIVATION,
            suggestion=(raw or "").strip()[:SUGGESTION_EXCERPT_CHARS] or DEFAULT_SUGGESTION,
        )
    motivation = payload.get("motivation")
    return MoodAssessment(
        mood=normalize_mood(payload.get("mood")),
        motivation=clamp_motivation(DEFAULT_MOTIVATION if motivation is None else motivation),
        suggestion=str(payload.get("suggestion") or "").strip() or DEFAULT_SUGGESTION,
    )


async def assess_mood(client: CompletionClient, note: str) -> MoodAssessment:
    result = await client.complete(build_mood_messages(note), MOOD_OPTIONS)
    assessment = parse_mood(result.text)
    logger.info("Mood assessed as %s (%s/10) by %s", assessment.mood, assessment.motivation, result.model)
    return assessment


def _load_object(raw: str) -> Optional[Dict[str, Any]]:
    text = (raw or "").strip()
    for candidate in (text, find_bracketed(text, "{", "}")):
        if not candidate:
            continue
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None
