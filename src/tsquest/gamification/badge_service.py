"""Badge award service with duplicate prevention and rule evaluation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import Badge, UserBadge, UserStats
from tsquest.errors import NotFoundError
from tsquest.gamification.seed import FIRST_LESSON, FIVE_CHALLENGES, NO_HINTS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionContext:
    """What just happened, as seen by the badge rules."""

    kind: str  # "lesson" | "challenge"
    used_hint: bool
    lessons_completed_before: int


async def get_user_badge(db: AsyncSession, user_id: str, badge_id: str) -> UserBadge | None:
    result = await db.execute(
        select(UserBadge).where(
            UserBadge.user_id == user_id,
            UserBadge.badge_id == badge_id,
        )
    )
    return result.scalar_one_or_none()


async def has_badge(db: AsyncSession, user_id: str, badge_id: str) -> bool:
    """Check if user already has a specific badge."""
    return await get_user_badge(db, user_id, badge_id) is not None


async def award_badge(db: AsyncSession, user_id: str, badge_id: str) -> tuple[UserBadge, bool]:
    """Award a badge to a user.

    Returns (user_badge, created). An already-held badge is returned unchanged
    with created=False, so redundant calls from several code paths are safe.
    Raises NotFoundError for an id missing from the catalog.
    """
    existing = await get_user_badge(db, user_id, badge_id)
    if existing is not None:
        return existing, False

    badge = await db.get(Badge, badge_id)
    if badge is None:
        msg = f"Badge not found: {badge_id}"
        raise NotFoundError(msg)

    user_badge = UserBadge(
        user_id=user_id,
        badge_id=badge_id,
        earned_at=datetime.now(timezone.utc),
    )
    db.add(user_badge)
    await db.flush()

    logger.info("Badge %s awarded to user %s", badge_id, user_id)
    return user_badge, True


async def evaluate_badges(
    db: AsyncSession,
    user_id: str,
    stats: UserStats,
    context: CompletionContext,
) -> list[str]:
    """Check every badge rule against post-update stats.

    Returns the ids of badges newly awarded by this call (may be empty).
    """
    candidates: list[str] = []

    if context.kind == "lesson":
        if context.lessons_completed_before == 0:
            candidates.append(FIRST_LESSON)
        # First hint-free lesson ever, not every hint-free lesson
        if not context.used_hint:
            candidates.append(NO_HINTS)

    if context.kind == "challenge" and stats.challenges_completed >= 5:
        candidates.append(FIVE_CHALLENGES)

    awarded: list[str] = []
    for badge_id in candidates:
        if await has_badge(db, user_id, badge_id):
            continue
        _, created = await award_badge(db, user_id, badge_id)
        if created:
            awarded.append(badge_id)
    return awarded


async def get_badges(db: AsyncSession, user_id: str) -> list[dict]:
    """Full catalog annotated with earned / earned_at for the user."""
    badges = (await db.execute(select(Badge).order_by(Badge.sort_order))).scalars().all()
    earned_result = await db.execute(select(UserBadge).where(UserBadge.user_id == user_id))
    earned = {ub.badge_id: ub for ub in earned_result.scalars()}

    return [
        {
            "id": badge.id,
            "name": badge.name,
            "description": badge.description,
            "icon": badge.icon,
            "earned": badge.id in earned,
            "earned_at": earned[badge.id].earned_at if badge.id in earned else None,
        }
        for badge in badges
    ]
