"""Badge awarding and catalog listing."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import Badge, User, UserBadge, UserStats
from tsquest.errors import NotFoundError
from tsquest.gamification.badge_service import (
    CompletionContext,
    award_badge,
    evaluate_badges,
    get_badges,
    has_badge,
)
from tsquest.gamification.seed import BADGE_SEED_DATA, seed_badges


class TestAwardBadge:
    @pytest.mark.asyncio
    async def test_award_creates_row(self, db_session: AsyncSession, user: User):
        user_badge, created = await award_badge(db_session, user.id, "first-lesson")
        assert created is True
        assert user_badge.badge_id == "first-lesson"
        assert await has_badge(db_session, user.id, "first-lesson") is True

    @pytest.mark.asyncio
    async def test_award_twice_is_noop(self, db_session: AsyncSession, user: User):
        first, _ = await award_badge(db_session, user.id, "no-hints")
        await db_session.commit()
        second, created = await award_badge(db_session, user.id, "no-hints")

        assert created is False
        assert second.id == first.id
        assert second.earned_at == first.earned_at

        count = await db_session.execute(
            select(func.count(UserBadge.id)).where(UserBadge.user_id == user.id)
        )
        assert count.scalar() == 1

    @pytest.mark.asyncio
    async def test_unknown_badge(self, db_session: AsyncSession, user: User):
        with pytest.raises(NotFoundError):
            await award_badge(db_session, user.id, "not-a-badge")


class TestBadgeCatalog:
    @pytest.mark.asyncio
    async def test_catalog_annotated_with_earned(self, db_session: AsyncSession, user: User):
        await award_badge(db_session, user.id, "five-challenges")
        await db_session.commit()

        badges = await get_badges(db_session, user.id)
        assert [b["id"] for b in badges] == [b["id"] for b in BADGE_SEED_DATA]

        by_id = {b["id"]: b for b in badges}
        assert by_id["five-challenges"]["earned"] is True
        assert by_id["five-challenges"]["earned_at"] is not None
        assert by_id["first-lesson"]["earned"] is False
        assert by_id["first-lesson"]["earned_at"] is None

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(self, db_session: AsyncSession):
        await seed_badges(db_session)
        await seed_badges(db_session)
        count = await db_session.execute(select(func.count(Badge.id)))
        assert count.scalar() == len(BADGE_SEED_DATA)


class TestEvaluateBadges:
    @pytest.mark.asyncio
    async def test_held_badge_not_reported_again(self, db_session: AsyncSession, user: User):
        await award_badge(db_session, user.id, "first-lesson")
        await db_session.commit()

        stats = UserStats(user_id=user.id, total_xp=10, current_level=1, lessons_completed=1, challenges_completed=0)
        context = CompletionContext(kind="lesson", used_hint=True, lessons_completed_before=0)

        assert await evaluate_badges(db_session, user.id, stats, context) == []

    @pytest.mark.asyncio
    async def test_new_badge_reported(self, db_session: AsyncSession, user: User):
        stats = UserStats(user_id=user.id, total_xp=10, current_level=1, lessons_completed=1, challenges_completed=0)
        context = CompletionContext(kind="lesson", used_hint=False, lessons_completed_before=0)

        awarded = await evaluate_badges(db_session, user.id, stats, context)
        assert awarded == ["first-lesson", "no-hints"]
        assert await has_badge(db_session, user.id, "no-hints") is True
