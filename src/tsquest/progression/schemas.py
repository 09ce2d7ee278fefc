"""Request/response models for progression endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class LessonCompletionRequest(BaseModel):
    used_hint: bool = False


class ChallengeSubmissionRequest(BaseModel):
    """Graded challenge attempt. The client grades; only correct answers complete."""

    is_correct: bool
    answer_data: dict[str, Any] = Field(default_factory=dict)
    used_hint: bool = False


class CompletionResponse(BaseModel):
    xp_earned: int
    already_completed: bool
    total_xp: int
    current_level: int
    level_up: bool = False
    badges_earned: list[str] = []


class ProgressEntry(BaseModel):
    id: str
    lesson_id: str | None = None
    challenge_id: str | None = None
    used_hint: bool
    completed_at: datetime


class ProgressListResponse(BaseModel):
    progress: list[ProgressEntry]
    total: int


class StatsResponse(BaseModel):
    total_xp: int
    current_level: int
    lessons_completed: int
    challenges_completed: int
    xp_into_level: int
    xp_for_level: int
    next_level_xp: int
    is_max_level: bool


class AnswerResponse(BaseModel):
    challenge_id: str
    answer_data: dict[str, Any]
    is_correct: bool
    submitted_at: datetime
