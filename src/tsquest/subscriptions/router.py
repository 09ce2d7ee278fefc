"""Subscription API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.auth.dependencies import get_current_user
from tsquest.config import get_settings
from tsquest.database import get_session
from tsquest.db.models import User
from tsquest.subscriptions.dependencies import verify_billing_signature
from tsquest.subscriptions.events import handle_billing_event
from tsquest.subscriptions.schemas import (
    BillingEvent,
    BillingEventResponse,
    PlanPrice,
    SubscriptionConfigResponse,
    SubscriptionResponse,
)
from tsquest.subscriptions.service import get_subscription_summary, request_cancellation

router = APIRouter(prefix="/api/v1/subscription", tags=["Subscription"])


@router.get("", response_model=SubscriptionResponse)
async def get_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SubscriptionResponse:
    return SubscriptionResponse(**await get_subscription_summary(db, user.id))


@router.get("/config", response_model=SubscriptionConfigResponse)
async def get_config() -> SubscriptionConfigResponse:
    """Public pricing table and paywall position."""
    settings = get_settings()
    return SubscriptionConfigResponse(
        paywall_starts_at_level=settings.paywall_starts_at_level,
        publishable_key=settings.stripe_publishable_key,
        plans=[
            PlanPrice(
                plan_type="monthly",
                price_cents=settings.monthly_price_cents,
                interval="month",
                price_id=settings.stripe_monthly_price_id,
            ),
            PlanPrice(
                plan_type="annual",
                price_cents=settings.annual_price_cents,
                interval="year",
                price_id=settings.stripe_annual_price_id,
            ),
        ],
    )


@router.post("/cancel", response_model=SubscriptionResponse)
async def cancel(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SubscriptionResponse:
    """Cancel at the end of the current billing period."""
    await request_cancellation(db, user.id)
    await db.commit()
    return SubscriptionResponse(**await get_subscription_summary(db, user.id))


@router.post("/events", response_model=BillingEventResponse, dependencies=[Depends(verify_billing_signature)])
async def ingest_billing_event(
    event: BillingEvent,
    db: AsyncSession = Depends(get_session),
) -> BillingEventResponse:
    """Signed billing provider events: checkout, renewal, deletion, failed payment."""
    try:
        handled = await handle_billing_event(db, event)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return BillingEventResponse(handled=handled)
