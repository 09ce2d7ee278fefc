"""Pure access rules: paywall and sequential level lock.

No I/O here: callers load the user flags, subscription and completion counts
and pass them in, so every rule can be checked in isolation.

Access is granted if ANY of the following are true (first match wins):
1. User is an admin
2. User has premium access (friends/testers)
3. Level is below the paywall (free tier)
4. User has an active, unexpired subscription

There is no grace period: once the active window ends, access is blocked.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Protocol

AccessReason = Literal["admin", "premium_access", "free_level", "active_subscription", "level_locked"]


class UserFlags(Protocol):
    is_admin: bool
    has_premium_access: bool


class SubscriptionState(Protocol):
    status: str
    current_period_end: datetime | None


@dataclass(frozen=True)
class AccessCheckResult:
    has_access: bool
    requires_subscription: bool
    reason: AccessReason | None = None
    subscription_status: str | None = None
    locked_by_level_order: int | None = None


@dataclass(frozen=True)
class LevelCompletion:
    """Challenge completion counts for a single level."""

    level_order: int
    total_challenges: int
    completed_challenges: int

    @property
    def is_complete(self) -> bool:
        # A level with no challenges never counts as complete
        return self.total_challenges > 0 and self.completed_challenges >= self.total_challenges

    @property
    def percent(self) -> int:
        if self.total_challenges == 0:
            return 0
        return round(self.completed_challenges / self.total_challenges * 100)


ADMIN_ACCESS = AccessCheckResult(has_access=True, requires_subscription=False, reason="admin")


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_subscription_expired(subscription: SubscriptionState, now: datetime) -> bool:
    end = subscription.current_period_end
    return end is not None and as_utc(now) > as_utc(end)


def evaluate_level_access(
    user: UserFlags | None,
    level_order: int,
    subscription: SubscriptionState | None,
    *,
    paywall_starts_at_level: int,
    now: datetime | None = None,
) -> AccessCheckResult:
    """Decide paywall access for ``level_order``. A missing user has no flags."""
    if user is not None and user.is_admin:
        return ADMIN_ACCESS

    if user is not None and user.has_premium_access:
        return AccessCheckResult(has_access=True, requires_subscription=False, reason="premium_access")

    if level_order < paywall_starts_at_level:
        return AccessCheckResult(has_access=True, requires_subscription=False, reason="free_level")

    if subscription is None or subscription.status == "inactive":
        return AccessCheckResult(has_access=False, requires_subscription=True, subscription_status="inactive")

    if subscription.status == "active":
        # Stored status may be stale; the period end is authoritative
        if is_subscription_expired(subscription, now or datetime.now(timezone.utc)):
            return AccessCheckResult(has_access=False, requires_subscription=True, subscription_status="expired")
        return AccessCheckResult(
            has_access=True,
            requires_subscription=True,
            reason="active_subscription",
            subscription_status="active",
        )

    # past_due, canceled, or anything else
    return AccessCheckResult(
        has_access=False,
        requires_subscription=True,
        subscription_status=subscription.status,
    )


def evaluate_level_lock(
    user: UserFlags | None,
    level_order: int,
    previous_level: LevelCompletion | None,
) -> AccessCheckResult | None:
    """Sequential lock: level N > 1 needs the preceding level fully completed.

    Returns a denial when locked, ``None`` when the lock does not apply.
    """
    if user is not None and user.is_admin:
        return None
    if level_order <= 1 or previous_level is None:
        return None
    if previous_level.is_complete:
        return None
    return AccessCheckResult(
        has_access=False,
        requires_subscription=False,
        reason="level_locked",
        locked_by_level_order=previous_level.level_order,
    )
