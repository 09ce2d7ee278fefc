"""Badge API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.auth.dependencies import get_current_user
from tsquest.database import get_session
from tsquest.db.models import User
from tsquest.gamification.badge_service import get_badges
from tsquest.gamification.schemas import BadgeListResponse, BadgeResponse

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/badges", response_model=BadgeListResponse)
async def list_badges(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BadgeListResponse:
    """Full badge catalog with the caller's earned state."""
    badges = [BadgeResponse(**b) for b in await get_badges(db, user.id)]
    return BadgeListResponse(
        badges=badges,
        total_available=len(badges),
        total_earned=sum(1 for b in badges if b.earned),
    )
