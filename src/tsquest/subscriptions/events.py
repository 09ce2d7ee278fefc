"""Billing event dispatch.

Maps a verified provider event onto one subscription transition. Events for
ids we do not know are logged and acknowledged so the provider stops retrying.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from tsquest.db.models import User
from tsquest.subscriptions.schemas import (
    BillingEvent,
    CheckoutSessionObject,
    InvoiceObject,
    ProviderSubscriptionObject,
)
from tsquest.subscriptions.service import activate, apply_provider_update, deactivate, mark_past_due

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
PAYMENT_FAILED = "invoice.payment_failed"


async def _checkout_completed(db: AsyncSession, session: CheckoutSessionObject) -> None:
    user_id = session.metadata.user_id
    if not user_id:
        logger.error("checkout_missing_user_id", subscription=session.subscription)
        return
    if await db.get(User, user_id) is None:
        logger.error("checkout_unknown_user", user_id=user_id)
        return

    await activate(
        db,
        user_id,
        session.metadata.plan_type or "",
        session.current_period_end,
        session.cancel_at_period_end,
        stripe_customer_id=session.customer,
        stripe_subscription_id=session.subscription,
        stripe_price_id=session.price_id,
    )


async def handle_billing_event(db: AsyncSession, event: BillingEvent) -> bool:
    """
    Apply one billing event. Flushes, never commits.

    Returns:
        False when the event type is not one we act on.

    Raises:
        ValueError: Malformed event object or unknown plan type.
    """
    payload = event.data.get("object", {})

    if event.type == CHECKOUT_COMPLETED:
        await _checkout_completed(db, CheckoutSessionObject.model_validate(payload))
    elif event.type == SUBSCRIPTION_UPDATED:
        update = ProviderSubscriptionObject.model_validate(payload)
        await apply_provider_update(
            db, update.id, update.status, update.current_period_end, update.cancel_at_period_end
        )
    elif event.type == SUBSCRIPTION_DELETED:
        await deactivate(db, ProviderSubscriptionObject.model_validate(payload).id)
    elif event.type == PAYMENT_FAILED:
        invoice = InvoiceObject.model_validate(payload)
        if not invoice.subscription:
            return True
        await mark_past_due(db, invoice.subscription)
    else:
        logger.debug("billing_event_ignored", event_id=event.id, event_type=event.type)
        return False

    logger.info("billing_event_applied", event_id=event.id, event_type=event.type)
    return True
