"""Subscription state transitions driven by billing events."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import User
from tsquest.errors import NotFoundError
from tsquest.subscriptions.service import (
    activate,
    apply_provider_update,
    deactivate,
    get_subscription,
    get_subscription_summary,
    map_provider_status,
    mark_past_due,
    request_cancellation,
)

PERIOD_END = datetime.now(timezone.utc) + timedelta(days=30)


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("provider_status", "expected"),
        [
            ("active", "active"),
            ("trialing", "active"),
            ("canceled", "canceled"),
            ("past_due", "past_due"),
            ("unpaid", "inactive"),
        ],
    )
    def test_mapping(self, provider_status: str, expected: str):
        assert map_provider_status(provider_status) == expected


class TestTransitions:
    @pytest.mark.asyncio
    async def test_default_summary(self, db_session: AsyncSession, user: User):
        summary = await get_subscription_summary(db_session, user.id)
        assert summary["status"] == "inactive"
        assert summary["plan_type"] == "free"
        assert summary["cancel_at_period_end"] is False
        assert summary["has_premium_access"] is False

    @pytest.mark.asyncio
    async def test_activate(self, db_session: AsyncSession, user: User):
        await activate(
            db_session, user.id, "annual", PERIOD_END,
            stripe_customer_id="cus_1", stripe_subscription_id="sub_1",
        )
        await db_session.commit()

        summary = await get_subscription_summary(db_session, user.id)
        assert summary["status"] == "active"
        assert summary["plan_type"] == "annual"

    @pytest.mark.asyncio
    async def test_activate_unknown_plan(self, db_session: AsyncSession, user: User):
        with pytest.raises(ValueError, match="Unknown plan type"):
            await activate(db_session, user.id, "lifetime", PERIOD_END)

    @pytest.mark.asyncio
    async def test_provider_update(self, db_session: AsyncSession, user: User):
        await activate(db_session, user.id, "monthly", PERIOD_END, stripe_subscription_id="sub_1")
        updated = await apply_provider_update(db_session, "sub_1", "unpaid", None, cancel_at_period_end=True)

        assert updated is not None
        assert updated.status == "inactive"
        assert updated.cancel_at_period_end is True

    @pytest.mark.asyncio
    async def test_deactivate_clears_provider_id(self, db_session: AsyncSession, user: User):
        await activate(db_session, user.id, "monthly", PERIOD_END, stripe_subscription_id="sub_1")
        await deactivate(db_session, "sub_1")

        subscription = await get_subscription(db_session, user.id)
        assert subscription is not None
        assert subscription.status == "inactive"
        assert subscription.stripe_subscription_id is None

    @pytest.mark.asyncio
    async def test_unknown_provider_id_ignored(self, db_session: AsyncSession, database: None):
        assert await mark_past_due(db_session, "sub_missing") is None
        assert await deactivate(db_session, "sub_missing") is None
        assert await apply_provider_update(db_session, "sub_missing", "active", None, False) is None


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_without_subscription(self, db_session: AsyncSession, user: User):
        with pytest.raises(NotFoundError):
            await request_cancellation(db_session, user.id)

    @pytest.mark.asyncio
    async def test_cancel_keeps_access_until_period_end(self, db_session: AsyncSession, user: User):
        await activate(db_session, user.id, "monthly", PERIOD_END, stripe_subscription_id="sub_1")
        subscription = await request_cancellation(db_session, user.id)

        assert subscription.cancel_at_period_end is True
        assert subscription.status == "active"
