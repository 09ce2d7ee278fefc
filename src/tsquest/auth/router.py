"""Authentication router: /api/v1/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.auth.dependencies import get_current_user
from tsquest.auth.jwt import create_access_token
from tsquest.auth.password import PasswordStrengthError
from tsquest.auth.schemas import (
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from tsquest.auth.service import (
    authenticate_user,
    create_reset_token,
    get_user_by_email,
    register_user,
    reset_password,
)
from tsquest.config import get_settings
from tsquest.database import get_session
from tsquest.db.models import User

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _user_response(user: User) -> UserResponse:
    """Build a UserResponse from a User model."""
    return UserResponse(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        is_admin=user.is_admin,
        has_premium_access=user.has_premium_access,
        created_at=user.created_at,
    )


def _issue_token(user: User) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(user.id, user.email),
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=_user_response(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Register a new account and return an access token."""
    try:
        user = await register_user(db, body.email, body.password, body.display_name)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return _issue_token(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Log in with email + password."""
    user = await authenticate_user(db, body.email, body.password)
    logger.info("user_logged_in", user_id=user.id)
    return _issue_token(user)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user."""
    return _user_response(user)


@router.post("/reset-password/request")
async def request_password_reset(
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Start a password reset. Same response whether or not the email exists."""
    user = await get_user_by_email(db, body.email)
    if user is not None:
        raw_token = await create_reset_token(db, user.id)
        await db.commit()
        logger.info("password_reset_requested", user_id=user.id)
        # No mail delivery yet; expose the link only in local development
        if get_settings().debug:
            logger.debug("password_reset_link", reset_path=f"/reset-password?token={raw_token}")

    return {"status": "If that email exists, a reset link has been sent."}


@router.post("/reset-password/confirm")
async def confirm_password_reset(
    body: PasswordResetConfirm,
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Set a new password with a single-use reset token."""
    try:
        await reset_password(db, body.token, body.new_password)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"status": "password_reset_complete"}
