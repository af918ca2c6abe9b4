"""Shared types for the generation services."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]
TaskType = Literal["dev", "custom"]

MOOD_LABELS = ("energized", "steady", "stressed", "tired", "blocked")
NEUTRAL_MOOD = "steady"
DEFAULT_MOTIVATION = 5
MOTIVATION_RANGE = (0, 10)

TASK_COUNT_RANGE = (3, 10)
TASK_LENGTH_RANGE = (1, 160)
QUESTION_COUNT_RANGE = (1, 5)
QUESTION_LENGTH_RANGE = (3, 140)


class Message(BaseModel):
    """Single chat turn: system, user, or assistant."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def to_openai(self) -> dict:
        return {"role": self.role, "content": self.content}


class ClarifyQA(BaseModel):
    """One clarification round: the question asked and the user's answer, if any."""

    model_config = ConfigDict(frozen=True)

    q: str = Field(..., min_length=1)
    a: Optional[str] = None


class GenerationRequest(BaseModel):
    """Everything a prompt builder needs for one breakdown or clarify call."""

    model_config = ConfigDict(frozen=True)

    goal: str
    context: Optional[str] = None
    note: Optional[str] = None
    task_type: TaskType = "custom"
    user_profile: Optional[str] = None
    previous_qa: Tuple[ClarifyQA, ...] = ()

    @property
    def answered_qa(self) -> List[ClarifyQA]:
        return [pair for pair in self.previous_qa if (pair.a or "").strip()]


class MoodAssessment(BaseModel):
    mood: str = NEUTRAL_MOOD
    motivation: int = Field(default=DEFAULT_MOTIVATION, ge=0, le=10)
    suggestion: str = ""


@dataclass(frozen=True)
class CompletionResult:
    text: str
    model: str


class ParseOutcome(str, Enum):
    """Which parser tier produced a result."""

    STRUCTURED = "structured"
    EMBEDDED = "embedded"
    HEURISTIC = "heuristic"
    FALLBACK = "fallback"
    EMPTY = "empty"


@dataclass(frozen=True)
class ParseResult:
    items: List[str]
    outcome: ParseOutcome

    @property
    def generated(self) -> bool:
        """True when the items came from model output rather than a stand-in."""
        return self.outcome not in (ParseOutcome.FALLBACK, ParseOutcome.EMPTY)
