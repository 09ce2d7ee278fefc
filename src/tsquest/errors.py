"""Domain exceptions.

Services raise these for business rule outcomes the caller must be able to
tell apart (missing entity vs. paywall vs. broken invariant). The HTTP layer
maps them to status codes in ``tsquest.middleware.error_handler``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tsquest.access.policy import AccessCheckResult


class DomainError(Exception):
    """Base class for all domain errors."""

    error_code = "domain_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Referenced lesson, challenge, level, badge or subscription does not exist."""

    error_code = "not_found"


class AccessDeniedError(DomainError):
    """User may not access the requested level (paywall or sequential lock)."""

    error_code = "access_denied"

    def __init__(self, result: AccessCheckResult, level_order: int) -> None:
        message = "Level locked" if result.reason == "level_locked" else "Subscription required"
        super().__init__(message, details={"level_order": level_order})
        self.result = result
        self.level_order = level_order


class ConflictError(DomainError):
    """Unique resource already exists (e.g. email already registered)."""

    error_code = "conflict"


class AuthenticationError(DomainError):
    """Credentials are missing or invalid."""

    error_code = "unauthorized"


class InconsistentStateError(DomainError):
    """Stored data violates an invariant and could not be repaired."""

    error_code = "inconsistent_state"
