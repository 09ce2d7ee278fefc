"""Access checks against stored users, subscriptions and progress."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import make_user
from tsquest.access.service import (
    check_content_access,
    check_level_access,
    get_level_completion,
    list_level_overview,
    require_content_access,
)
from tsquest.content.service import ContentService
from tsquest.db.models import User
from tsquest.errors import AccessDeniedError
from tsquest.progression.service import complete_challenge
from tsquest.subscriptions.service import activate, mark_past_due


def _in(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


async def _complete_level_one(db: AsyncSession, user_id: str, challenge_ids: list[str]) -> None:
    for challenge_id in challenge_ids:
        await complete_challenge(db, user_id, challenge_id)


class TestCheckLevelAccess:
    @pytest.mark.asyncio
    async def test_level_1_free(self, db_session: AsyncSession, user: User):
        result = await check_level_access(db_session, user.id, 1)
        assert result.has_access is True
        assert result.reason == "free_level"

    @pytest.mark.asyncio
    async def test_level_2_requires_subscription(self, db_session: AsyncSession, user: User):
        result = await check_level_access(db_session, user.id, 2)
        assert result.has_access is False
        assert result.requires_subscription is True
        assert result.subscription_status == "inactive"

    @pytest.mark.asyncio
    async def test_active_subscription_grants(self, db_session: AsyncSession, user: User):
        await activate(db_session, user.id, "monthly", _in(30), stripe_subscription_id="sub_1")
        await db_session.commit()

        result = await check_level_access(db_session, user.id, 3)
        assert result.has_access is True
        assert result.reason == "active_subscription"

    @pytest.mark.asyncio
    async def test_stale_active_status_expires(self, db_session: AsyncSession, user: User):
        await activate(db_session, user.id, "monthly", _in(-1 / 86400), stripe_subscription_id="sub_1")
        await db_session.commit()

        result = await check_level_access(db_session, user.id, 2)
        assert result.has_access is False
        assert result.subscription_status == "expired"

    @pytest.mark.asyncio
    async def test_past_due_blocks_immediately(self, db_session: AsyncSession, user: User):
        await activate(db_session, user.id, "annual", _in(200), stripe_subscription_id="sub_1")
        await mark_past_due(db_session, "sub_1")
        await db_session.commit()

        result = await check_level_access(db_session, user.id, 2)
        assert result.has_access is False
        assert result.subscription_status == "past_due"

    @pytest.mark.asyncio
    async def test_premium_and_admin(self, db_session: AsyncSession):
        premium = await make_user(db_session, "friend@example.com", has_premium_access=True)
        admin = await make_user(db_session, "admin@example.com", is_admin=True)

        assert (await check_level_access(db_session, premium.id, 4)).reason == "premium_access"
        assert (await check_level_access(db_session, admin.id, 4)).reason == "admin"

    @pytest.mark.asyncio
    async def test_unknown_user_has_no_flags(self, db_session: AsyncSession, database: None):
        assert (await check_level_access(db_session, "ghost", 1)).has_access is True
        assert (await check_level_access(db_session, "ghost", 2)).has_access is False

    @pytest.mark.asyncio
    async def test_lookup_failure_denies(self, db_session: AsyncSession, user: User, monkeypatch):
        uid = user.id

        async def broken_execute(*_args, **_kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "execute", broken_execute)
        result = await check_level_access(db_session, uid, 2)
        assert result.has_access is False
        assert result.requires_subscription is True
        assert result.subscription_status == "unavailable"

    @pytest.mark.asyncio
    async def test_lookup_failure_leaves_session_usable(self, db_session: AsyncSession, user: User, monkeypatch):
        uid = user.id
        real_execute = db_session.execute
        real_rollback = db_session.rollback
        rollbacks: list[bool] = []

        async def flaky_execute(*_args, **_kwargs):
            monkeypatch.setattr(db_session, "execute", real_execute)
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        async def tracking_rollback():
            rollbacks.append(True)
            await real_rollback()

        monkeypatch.setattr(db_session, "execute", flaky_execute)
        monkeypatch.setattr(db_session, "rollback", tracking_rollback)

        assert (await check_level_access(db_session, uid, 2)).subscription_status == "unavailable"
        assert rollbacks == [True]
        assert (await check_level_access(db_session, uid, 3)).subscription_status == "inactive"


class TestContentAccess:
    @pytest.mark.asyncio
    async def test_level_2_locked_until_level_1_complete(
        self, db_session: AsyncSession, level_one_challenges: list[str]
    ):
        premium = await make_user(db_session, "friend@example.com", has_premium_access=True)
        uid = premium.id
        level_2 = await ContentService(db_session).get_level("2")

        locked = await check_content_access(db_session, uid, level_2)
        assert locked.has_access is False
        assert locked.reason == "level_locked"
        assert locked.requires_subscription is False
        assert locked.locked_by_level_order == 1

        await _complete_level_one(db_session, uid, level_one_challenges[:-1])
        assert (await check_content_access(db_session, uid, level_2)).reason == "level_locked"

        await _complete_level_one(db_session, uid, level_one_challenges[-1:])
        unlocked = await check_content_access(db_session, uid, level_2)
        assert unlocked.has_access is True
        assert unlocked.reason == "premium_access"

    @pytest.mark.asyncio
    async def test_unlocked_level_still_paywalled(
        self, db_session: AsyncSession, user: User, level_one_challenges: list[str]
    ):
        uid = user.id
        await _complete_level_one(db_session, uid, level_one_challenges)
        level_2 = await ContentService(db_session).get_level("2")

        with pytest.raises(AccessDeniedError) as exc_info:
            await require_content_access(db_session, uid, level_2)
        assert exc_info.value.result.requires_subscription is True
        assert exc_info.value.level_order == 2

    @pytest.mark.asyncio
    async def test_admin_bypasses_lock_and_paywall(self, db_session: AsyncSession, admin: User):
        level_4 = await ContentService(db_session).get_level("4")
        result = await check_content_access(db_session, admin.id, level_4)
        assert result.has_access is True
        assert result.reason == "admin"

    @pytest.mark.asyncio
    async def test_level_completion_counts(
        self, db_session: AsyncSession, user: User, level_one_challenges: list[str]
    ):
        uid = user.id
        await _complete_level_one(db_session, uid, level_one_challenges[:2])
        level_1 = await ContentService(db_session).get_level("1")

        completion = await get_level_completion(db_session, uid, level_1)
        assert completion.total_challenges == 5
        assert completion.completed_challenges == 2
        assert completion.is_complete is False

    @pytest.mark.asyncio
    async def test_overview_for_new_user(self, db_session: AsyncSession, user: User):
        overview = await list_level_overview(db_session, user.id)
        assert [entry["level"].order for entry in overview] == [1, 2, 3, 4]
        assert overview[0]["is_locked"] is False
        assert overview[0]["access"].has_access is True
        assert all(entry["is_locked"] for entry in overview[1:])
