"""Access control: loads stored state and applies the rules in tsquest.access.policy."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from tsquest.access.policy import (
    ADMIN_ACCESS,
    AccessCheckResult,
    LevelCompletion,
    evaluate_level_access,
    evaluate_level_lock,
)
from tsquest.config import get_settings
from tsquest.content.service import ContentService
from tsquest.db.models import Challenge, Lesson, Level, Subscription, User, UserProgress
from tsquest.errors import AccessDeniedError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def check_level_access(
    db: AsyncSession,
    user_id: str,
    level_order: int,
    now: datetime | None = None,
) -> AccessCheckResult:
    """Paywall decision for a level order. Read-only, safe to call repeatedly."""
    user = await db.get(User, user_id)
    settings = get_settings()

    subscription: Subscription | None = None
    needs_subscription = not (user is not None and (user.is_admin or user.has_premium_access)) and (
        level_order >= settings.paywall_starts_at_level
    )
    if needs_subscription:
        try:
            result = await db.execute(select(Subscription).where(Subscription.user_id == user_id))
            subscription = result.scalar_one_or_none()
        except SQLAlchemyError:
            # Fail closed: an unresolvable subscription never grants access
            logger.exception("subscription_lookup_failed", user_id=user_id, level_order=level_order)
            await db.rollback()
            return AccessCheckResult(
                has_access=False,
                requires_subscription=True,
                subscription_status="unavailable",
            )

    return evaluate_level_access(
        user,
        level_order,
        subscription,
        paywall_starts_at_level=settings.paywall_starts_at_level,
        now=now,
    )


async def get_level_completion(db: AsyncSession, user_id: str, level: Level) -> LevelCompletion:
    """Count the level's challenges and how many of them the user completed."""
    total_result = await db.execute(
        select(func.count(Challenge.id))
        .join(Lesson, Challenge.lesson_id == Lesson.id)
        .where(Lesson.level_id == level.id)
    )
    completed_result = await db.execute(
        select(func.count(UserProgress.id))
        .join(Challenge, UserProgress.challenge_id == Challenge.id)
        .join(Lesson, Challenge.lesson_id == Lesson.id)
        .where(Lesson.level_id == level.id, UserProgress.user_id == user_id)
    )
    return LevelCompletion(
        level_order=level.order,
        total_challenges=total_result.scalar() or 0,
        completed_challenges=completed_result.scalar() or 0,
    )


async def get_previous_level(db: AsyncSession, level: Level) -> Level | None:
    """The level immediately preceding ``level`` by order, if any."""
    result = await db.execute(
        select(Level).where(Level.order < level.order).order_by(Level.order.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def check_content_access(
    db: AsyncSession,
    user_id: str,
    level: Level,
    now: datetime | None = None,
) -> AccessCheckResult:
    """Sequential lock first, then the paywall. Admins bypass both."""
    user = await db.get(User, user_id)
    if user is not None and user.is_admin:
        return ADMIN_ACCESS

    previous = await get_previous_level(db, level)
    previous_completion = await get_level_completion(db, user_id, previous) if previous else None
    locked = evaluate_level_lock(user, level.order, previous_completion)
    if locked is not None:
        return locked

    return await check_level_access(db, user_id, level.order, now=now)


async def require_content_access(db: AsyncSession, user_id: str, level: Level) -> AccessCheckResult:
    """Like check_content_access but raises AccessDeniedError on denial."""
    result = await check_content_access(db, user_id, level)
    if not result.has_access:
        logger.info(
            "level_access_denied",
            user_id=user_id,
            level_order=level.order,
            reason=result.reason,
            subscription_status=result.subscription_status,
        )
        raise AccessDeniedError(result, level.order)
    return result


async def list_level_overview(db: AsyncSession, user_id: str) -> list[dict]:
    """Every level with completion, lock and paywall state for the user."""
    levels = await ContentService(db).list_levels()
    user = await db.get(User, user_id)

    overview = []
    previous_completion: LevelCompletion | None = None
    for level in levels:
        completion = await get_level_completion(db, user_id, level)
        locked = evaluate_level_lock(user, level.order, previous_completion)
        if locked is not None:
            access = locked
        else:
            access = await check_level_access(db, user_id, level.order)
        overview.append({
            "level": level,
            "completion": completion,
            "is_locked": locked is not None,
            "access": access,
        })
        previous_completion = completion
    return overview
