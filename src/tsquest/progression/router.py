"""Progression API endpoints: completions, stats and stored answers."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.access.service import require_content_access
from tsquest.auth.dependencies import get_current_user
from tsquest.content.service import ContentService
from tsquest.database import get_session
from tsquest.db.models import User
from tsquest.progression import service
from tsquest.progression.levels import level_progress
from tsquest.progression.schemas import (
    AnswerResponse,
    ChallengeSubmissionRequest,
    CompletionResponse,
    LessonCompletionRequest,
    ProgressEntry,
    ProgressListResponse,
    StatsResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Progression"])


@router.get("/progress", response_model=ProgressListResponse)
async def list_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProgressListResponse:
    records = await service.list_progress(db, user.id)
    return ProgressListResponse(
        progress=[
            ProgressEntry(
                id=r.id,
                lesson_id=r.lesson_id,
                challenge_id=r.challenge_id,
                used_hint=r.used_hint,
                completed_at=r.completed_at,
            )
            for r in records
        ],
        total=len(records),
    )


@router.post("/progress/lessons/{lesson_id}", response_model=CompletionResponse)
async def complete_lesson(
    lesson_id: str,
    body: LessonCompletionRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompletionResponse:
    """Mark a lesson complete. Repeat calls return xp_earned=0."""
    svc = ContentService(db)
    lesson = await svc.get_lesson(lesson_id)
    await require_content_access(db, user.id, await svc.level_of_lesson(lesson))

    used_hint = body.used_hint if body else False
    result = await service.complete_lesson(db, user.id, lesson.id, used_hint=used_hint)
    return CompletionResponse(**asdict(result))


@router.post("/progress/challenges/{challenge_id}", response_model=CompletionResponse)
async def submit_challenge(
    challenge_id: str,
    body: ChallengeSubmissionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompletionResponse:
    """Store the answer; a correct one completes the challenge."""
    svc = ContentService(db)
    challenge = await svc.get_challenge(challenge_id)
    await require_content_access(db, user.id, await svc.level_of_challenge(challenge))

    result = await service.submit_challenge_answer(
        db,
        user.id,
        challenge.id,
        answer_data=body.answer_data,
        is_correct=body.is_correct,
        used_hint=body.used_hint,
    )
    return CompletionResponse(**asdict(result))


@router.get("/challenges/{challenge_id}/answer", response_model=AnswerResponse)
async def get_answer(
    challenge_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AnswerResponse:
    answer = await service.get_answer(db, user.id, challenge_id)
    return AnswerResponse(
        challenge_id=answer.challenge_id,
        answer_data=answer.answer_data,
        is_correct=answer.is_correct,
        submitted_at=answer.submitted_at,
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> StatsResponse:
    """XP, level and counters, plus progress toward the next level."""
    stats = await service.get_stats(db, user.id)
    progress = level_progress(stats.total_xp)
    return StatsResponse(
        total_xp=stats.total_xp,
        current_level=stats.current_level,
        lessons_completed=stats.lessons_completed,
        challenges_completed=stats.challenges_completed,
        xp_into_level=progress["xp_into_level"],
        xp_for_level=progress["xp_for_level"],
        next_level_xp=progress["next_level_xp"],
        is_max_level=progress["is_max_level"],
    )
