"""Schemas for mood log persistence."""
from __future__ import annotations

from pydantic import BaseModel, Field


class MoodRecordRequest(BaseModel):
    note: str = Field(..., max_length=2000)
    mood: str = Field(..., min_length=1, max_length=40)
    motivation: int = Field(..., ge=0, le=10)
    suggestion: str = Field(default="", max_length=1000)


class MoodRecordResponse(BaseModel):
    saved: bool
