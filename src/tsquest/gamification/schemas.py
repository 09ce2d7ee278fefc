"""Pydantic response models for badge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class BadgeResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    earned: bool = False
    earned_at: datetime | None = None


class BadgeListResponse(BaseModel):
    badges: list[BadgeResponse]
    total_available: int
    total_earned: int
