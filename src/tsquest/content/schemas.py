"""Pydantic response models for content and access endpoints."""

from __future__ import annotations

from pydantic import BaseModel


# --- Levels ---


class LevelResponse(BaseModel):
    id: str
    name: str
    description: str
    order: int
    xp_required: int


class LevelOverviewResponse(LevelResponse):
    is_locked: bool
    has_access: bool
    requires_subscription: bool
    completion_percent: int
    total_challenges: int
    completed_challenges: int


class LevelListResponse(BaseModel):
    levels: list[LevelOverviewResponse]


# --- Lessons ---


class LessonSummaryResponse(BaseModel):
    id: str
    level_id: str
    title: str
    description: str
    order: int
    xp_reward: int


class LessonResponse(LessonSummaryResponse):
    content: str


class LessonListResponse(BaseModel):
    lessons: list[LessonSummaryResponse]


# --- Challenges ---


class ChallengeResponse(BaseModel):
    """Challenge as shown to the learner. The correct answer is never exposed."""

    id: str
    lesson_id: str
    type: str
    prompt: str
    order: int
    xp_reward: int
    options: list[str] | None = None
    starter_code: str | None = None
    hint: str | None = None


class ChallengeListResponse(BaseModel):
    challenges: list[ChallengeResponse]


# --- Access ---


class AccessCheckResponse(BaseModel):
    level_id: str
    level_order: int
    has_access: bool
    requires_subscription: bool
    reason: str | None = None
    subscription_status: str | None = None
