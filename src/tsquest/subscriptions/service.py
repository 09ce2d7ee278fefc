"""Subscription state: read model plus transitions driven by billing events.

Billing provider calls (checkout, portal, webhook signature checks) happen
elsewhere; this module only records what the provider reported.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from tsquest.access.policy import as_utc
from tsquest.db.models import Subscription, User
from tsquest.errors import NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PLAN_TYPES = ("monthly", "annual")


def map_provider_status(provider_status: str) -> str:
    """Map a billing provider subscription status onto our four states."""
    if provider_status == "canceled":
        return "canceled"
    if provider_status == "past_due":
        return "past_due"
    if provider_status == "unpaid":
        return "inactive"
    return "active"


async def get_subscription(db: AsyncSession, user_id: str) -> Subscription | None:
    result = await db.execute(select(Subscription).where(Subscription.user_id == user_id))
    return result.scalar_one_or_none()


async def get_subscription_by_provider_id(db: AsyncSession, provider_subscription_id: str) -> Subscription | None:
    result = await db.execute(
        select(Subscription).where(Subscription.stripe_subscription_id == provider_subscription_id)
    )
    return result.scalar_one_or_none()


async def get_subscription_summary(db: AsyncSession, user_id: str) -> dict:
    """Subscription fields, or the free-plan defaults when the user never subscribed."""
    subscription = await get_subscription(db, user_id)
    user = await db.get(User, user_id)
    has_premium_access = bool(user and user.has_premium_access)

    if subscription is None:
        return {
            "status": "inactive",
            "plan_type": "free",
            "current_period_end": None,
            "cancel_at_period_end": False,
            "has_premium_access": has_premium_access,
        }
    return {
        "status": subscription.status,
        "plan_type": subscription.plan_type or "free",
        "current_period_end": as_utc(subscription.current_period_end) if subscription.current_period_end else None,
        "cancel_at_period_end": subscription.cancel_at_period_end,
        "has_premium_access": has_premium_access,
    }


async def activate(
    db: AsyncSession,
    user_id: str,
    plan_type: str,
    current_period_end: datetime,
    cancel_at_period_end: bool = False,
    *,
    stripe_customer_id: str | None = None,
    stripe_subscription_id: str | None = None,
    stripe_price_id: str | None = None,
) -> Subscription:
    """Record a completed checkout: the user's subscription becomes active."""
    if plan_type not in PLAN_TYPES:
        msg = f"Unknown plan type: {plan_type}"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    subscription = await get_subscription(db, user_id)
    if subscription is None:
        subscription = Subscription(user_id=user_id, created_at=now)
        db.add(subscription)

    subscription.status = "active"
    subscription.plan_type = plan_type
    subscription.current_period_end = current_period_end
    subscription.cancel_at_period_end = cancel_at_period_end
    if stripe_customer_id is not None:
        subscription.stripe_customer_id = stripe_customer_id
    if stripe_subscription_id is not None:
        subscription.stripe_subscription_id = stripe_subscription_id
    if stripe_price_id is not None:
        subscription.stripe_price_id = stripe_price_id
    subscription.updated_at = now

    await db.flush()
    logger.info("subscription_activated", user_id=user_id, plan_type=plan_type)
    return subscription


async def apply_provider_update(
    db: AsyncSession,
    provider_subscription_id: str,
    provider_status: str,
    current_period_end: datetime | None,
    cancel_at_period_end: bool,
) -> Subscription | None:
    """Apply a provider-side subscription update. Unknown ids are logged and ignored."""
    subscription = await get_subscription_by_provider_id(db, provider_subscription_id)
    if subscription is None:
        logger.error("subscription_not_found", provider_subscription_id=provider_subscription_id)
        return None

    subscription.status = map_provider_status(provider_status)
    if current_period_end is not None:
        subscription.current_period_end = current_period_end
    subscription.cancel_at_period_end = cancel_at_period_end
    subscription.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info(
        "subscription_updated",
        user_id=subscription.user_id,
        status=subscription.status,
        provider_status=provider_status,
    )
    return subscription


async def deactivate(db: AsyncSession, provider_subscription_id: str) -> Subscription | None:
    """Provider deleted the subscription."""
    subscription = await get_subscription_by_provider_id(db, provider_subscription_id)
    if subscription is None:
        logger.error("subscription_not_found", provider_subscription_id=provider_subscription_id)
        return None

    subscription.status = "inactive"
    subscription.stripe_subscription_id = None
    subscription.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("subscription_deactivated", user_id=subscription.user_id)
    return subscription


async def mark_past_due(db: AsyncSession, provider_subscription_id: str) -> Subscription | None:
    """Payment failed: block immediately."""
    subscription = await get_subscription_by_provider_id(db, provider_subscription_id)
    if subscription is None:
        logger.error("subscription_not_found", provider_subscription_id=provider_subscription_id)
        return None

    subscription.status = "past_due"
    subscription.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("subscription_past_due", user_id=subscription.user_id)
    return subscription


async def request_cancellation(db: AsyncSession, user_id: str) -> Subscription:
    """Cancel at period end; the user keeps access until current_period_end."""
    subscription = await get_subscription(db, user_id)
    if subscription is None or not subscription.stripe_subscription_id:
        msg = "No active subscription"
        raise NotFoundError(msg)

    subscription.cancel_at_period_end = True
    subscription.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("subscription_cancel_requested", user_id=user_id, cancel_at=subscription.current_period_end)
    return subscription
