"""Content API endpoints: levels, lessons and challenges.

Lesson and challenge content is gated by ``require_content_access``; the
catalog of levels itself is always listable so the client can render locks.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.access.service import check_level_access, list_level_overview, require_content_access
from tsquest.auth.dependencies import get_current_user
from tsquest.content.schemas import (
    AccessCheckResponse,
    ChallengeListResponse,
    ChallengeResponse,
    LessonListResponse,
    LessonResponse,
    LessonSummaryResponse,
    LevelListResponse,
    LevelOverviewResponse,
    LevelResponse,
)
from tsquest.content.service import ContentService
from tsquest.database import get_session
from tsquest.db.models import Challenge, Lesson, Level, User

router = APIRouter(prefix="/api/v1", tags=["Content"])


def _level_response(level: Level) -> LevelResponse:
    return LevelResponse(
        id=level.id,
        name=level.name,
        description=level.description,
        order=level.order,
        xp_required=level.xp_required,
    )


def _lesson_summary(lesson: Lesson) -> LessonSummaryResponse:
    return LessonSummaryResponse(
        id=lesson.id,
        level_id=lesson.level_id,
        title=lesson.title,
        description=lesson.description,
        order=lesson.order,
        xp_reward=lesson.xp_reward,
    )


def _challenge_response(challenge: Challenge) -> ChallengeResponse:
    return ChallengeResponse(
        id=challenge.id,
        lesson_id=challenge.lesson_id,
        type=challenge.type,
        prompt=challenge.prompt,
        order=challenge.order,
        xp_reward=challenge.xp_reward,
        options=challenge.options,
        starter_code=challenge.starter_code,
        hint=challenge.hint,
    )


# ---- Levels ----


@router.get("/levels", response_model=LevelListResponse)
async def list_levels(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LevelListResponse:
    """All levels, annotated with lock, access and completion for the caller."""
    overview = await list_level_overview(db, user.id)
    return LevelListResponse(levels=[
        LevelOverviewResponse(
            **_level_response(entry["level"]).model_dump(),
            is_locked=entry["is_locked"],
            has_access=entry["access"].has_access,
            requires_subscription=entry["access"].requires_subscription,
            completion_percent=entry["completion"].percent,
            total_challenges=entry["completion"].total_challenges,
            completed_challenges=entry["completion"].completed_challenges,
        )
        for entry in overview
    ])


@router.get("/levels/{level_id}", response_model=LevelResponse)
async def get_level(
    level_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LevelResponse:
    level = await ContentService(db).get_level(level_id)
    return _level_response(level)


@router.get("/access/levels/{level_id}", response_model=AccessCheckResponse)
async def check_access(
    level_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AccessCheckResponse:
    """Paywall decision for a level. Never raises on denial."""
    level = await ContentService(db).get_level(level_id)
    result = await check_level_access(db, user.id, level.order)
    return AccessCheckResponse(
        level_id=level.id,
        level_order=level.order,
        has_access=result.has_access,
        requires_subscription=result.requires_subscription,
        reason=result.reason,
        subscription_status=result.subscription_status,
    )


@router.get("/levels/{level_id}/lessons", response_model=LessonListResponse)
async def list_lessons(
    level_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonListResponse:
    svc = ContentService(db)
    level = await svc.get_level(level_id)
    await require_content_access(db, user.id, level)
    lessons = await svc.list_lessons(level.id)
    return LessonListResponse(lessons=[_lesson_summary(lesson) for lesson in lessons])


# ---- Lessons ----


@router.get("/lessons/{lesson_id}", response_model=LessonResponse)
async def get_lesson(
    lesson_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonResponse:
    svc = ContentService(db)
    lesson = await svc.get_lesson(lesson_id)
    await require_content_access(db, user.id, await svc.level_of_lesson(lesson))
    return LessonResponse(**_lesson_summary(lesson).model_dump(), content=lesson.content)


@router.get("/lessons/{lesson_id}/challenges", response_model=ChallengeListResponse)
async def list_challenges(
    lesson_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ChallengeListResponse:
    svc = ContentService(db)
    lesson = await svc.get_lesson(lesson_id)
    await require_content_access(db, user.id, await svc.level_of_lesson(lesson))
    challenges = await svc.list_challenges(lesson.id)
    return ChallengeListResponse(challenges=[_challenge_response(c) for c in challenges])


# ---- Challenges ----


@router.get("/challenges/{challenge_id}", response_model=ChallengeResponse)
async def get_challenge(
    challenge_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ChallengeResponse:
    svc = ContentService(db)
    challenge = await svc.get_challenge(challenge_id)
    await require_content_access(db, user.id, await svc.level_of_challenge(challenge))
    return _challenge_response(challenge)
