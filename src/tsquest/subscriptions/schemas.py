"""Request and response models for subscription endpoints and billing events."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SubscriptionResponse(BaseModel):
    status: str
    plan_type: str
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    has_premium_access: bool = False


class PlanPrice(BaseModel):
    plan_type: str
    price_cents: int
    interval: str
    price_id: str


class SubscriptionConfigResponse(BaseModel):
    paywall_starts_at_level: int
    publishable_key: str
    plans: list[PlanPrice]


class BillingEvent(BaseModel):
    """Signed billing provider event envelope."""

    id: str | None = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class BillingEventResponse(BaseModel):
    received: bool = True
    handled: bool


class CheckoutMetadata(BaseModel):
    user_id: str | None = None
    plan_type: str | None = None


class CheckoutSessionObject(BaseModel):
    """``checkout.session.completed`` payload."""

    customer: str | None = None
    subscription: str | None = None
    price_id: str | None = None
    current_period_end: datetime
    cancel_at_period_end: bool = False
    metadata: CheckoutMetadata = Field(default_factory=CheckoutMetadata)


class ProviderSubscriptionObject(BaseModel):
    """``customer.subscription.*`` payload. Timestamps may be unix seconds."""

    id: str
    status: str = "active"
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False


class InvoiceObject(BaseModel):
    subscription: str | None = None
