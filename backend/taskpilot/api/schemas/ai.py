"""Pydantic schemas for the assistant's generation API."""
from __future__ import annotations

from typing import Annotated, List, Optional

from pydantic import AliasChoices, BaseModel, Field, StringConstraints

from taskpilot.services.generation_types import ClarifyQA, GenerationRequest, Message, TaskType


class ChatRequest(BaseModel):
    messages: List[Message] = Field(..., min_length=1)


class ChatResponse(BaseModel):
    reply: str


class MoodRequest(BaseModel):
    note: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2000)]


class MoodResponse(BaseModel):
    mood: str
    motivation: int
    suggestion: str


class GoalRequest(BaseModel):
    """Fields shared by breakdown and clarify calls."""

    goal: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2000)]
    context: Optional[str] = Field(default=None, max_length=8000)
    note: Optional[str] = Field(default=None, max_length=2000)
    type: TaskType = "custom"
    user_profile: Optional[str] = Field(
        default=None,
        max_length=200,
        validation_alias=AliasChoices("user_profile", "userProfile"),
    )
    previous_qa: List[ClarifyQA] = Field(
        default_factory=list,
        validation_alias=AliasChoices("previous_qa", "previousQA"),
    )

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            goal=self.goal,
            context=self.context,
            note=self.note,
            task_type=self.type,
            user_profile=self.user_profile,
            previous_qa=tuple(self.previous_qa),
        )


class BreakdownResponse(BaseModel):
    tasks: List[str]


class ClarifyResponse(BaseModel):
    questions: List[str]


class ClarifyRawResponse(BaseModel):
    text: str
