"""
Authentication business logic.

Handles user creation, credential checks and password reset tokens. Every
new user gets a zeroed stats row in the same transaction.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from tsquest.access.policy import as_utc
from tsquest.auth.password import hash_password, validate_password_strength, verify_password
from tsquest.config import get_settings
from tsquest.db.models import PasswordResetToken, User, UserStats
from tsquest.errors import AuthenticationError, ConflictError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID."""
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    display_name: str,
) -> User:
    """
    Register a new user with email + password.

    Raises:
        PasswordStrengthError: If the password is too weak.
        ConflictError: If the email is already registered.
    """
    validate_password_strength(password)

    email = email.lower().strip()
    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise ConflictError(msg)

    now = datetime.now(timezone.utc)
    user = User(
        email=email,
        password_hash=hash_password(password),
        display_name=display_name,
        created_at=now,
    )
    db.add(user)

    try:
        await db.flush()
        db.add(UserStats(
            user_id=user.id,
            total_xp=0,
            current_level=1,
            lessons_completed=0,
            challenges_completed=0,
            updated_at=now,
        ))
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        msg = "Email already registered"
        raise ConflictError(msg) from e

    logger.info("user_created", user_id=user.id)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Verify email + password.

    Raises:
        AuthenticationError: Unknown email or wrong password (same message for both).
    """
    user = await get_user_by_email(db, email)
    if user is None or not user.password_hash or not verify_password(password, user.password_hash):
        logger.info("login_failed", email=email)
        msg = "Invalid email or password"
        raise AuthenticationError(msg)
    return user


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


def _hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


async def create_reset_token(db: AsyncSession, user_id: str) -> str:
    """
    Create a password reset token, invalidating any earlier unused ones.

    Returns the raw token to send to the user. Flushes, does not commit.
    """
    settings = get_settings()
    raw_token = secrets.token_urlsafe(48)
    now = datetime.now(timezone.utc)

    await db.execute(
        update(PasswordResetToken)
        .where(PasswordResetToken.user_id == user_id)
        .where(PasswordResetToken.used_at.is_(None))
        .values(used_at=now)
    )

    db.add(PasswordResetToken(
        user_id=user_id,
        token_hash=_hash_reset_token(raw_token),
        created_at=now,
        expires_at=now + timedelta(minutes=settings.password_reset_token_ttl_minutes),
    ))
    await db.flush()
    return raw_token


async def verify_reset_token(db: AsyncSession, raw_token: str) -> str:
    """
    Consume a password reset token and return its user_id.

    Raises:
        ValueError: If the token is unknown, expired, or already used.
    """
    result = await db.execute(
        select(PasswordResetToken).where(PasswordResetToken.token_hash == _hash_reset_token(raw_token))
    )
    token = result.scalar_one_or_none()

    if token is None:
        msg = "Invalid or expired reset token"
        raise ValueError(msg)
    if token.used_at is not None:
        msg = "Reset token has already been used"
        raise ValueError(msg)
    now = datetime.now(timezone.utc)
    if as_utc(token.expires_at) < now:
        msg = "Reset token has expired"
        raise ValueError(msg)

    token.used_at = now
    await db.flush()
    return token.user_id


async def reset_password(db: AsyncSession, raw_token: str, new_password: str) -> User:
    """
    Set a new password using a reset token, then commit.

    The strength check runs first so a rejected password does not burn the token.

    Raises:
        PasswordStrengthError: If the new password is too weak.
        ValueError: If the token is unusable.
    """
    validate_password_strength(new_password)
    user_id = await verify_reset_token(db, raw_token)

    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "Invalid or expired reset token"
        raise ValueError(msg)

    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info("password_reset_completed", user_id=user_id)
    return user
