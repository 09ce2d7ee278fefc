"""ORM models for users, password resets, content, progression, badges and subscriptions.

Primary keys are string ids: uuid4 for user-owned rows, stable slugs for
seeded content ("1", "1-1", "1-1-2") and badges ("first-lesson").
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tsquest.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Account with the two access override flags."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    has_premium_access: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    stats: Mapped[UserStats | None] = relationship("UserStats", back_populates="user", uselist=False)
    subscription: Mapped[Subscription | None] = relationship(
        "Subscription", back_populates="user", uselist=False
    )


class PasswordResetToken(Base):
    """Single-use password reset token. Only the SHA-256 of the raw token is stored."""

    __tablename__ = "password_reset_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User")


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class Level(Base):
    """Ordered content tier. ``xp_required`` is informational, never used for gating."""

    __tablename__ = "levels"

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    xp_required: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    lessons: Mapped[list[Lesson]] = relationship(
        "Lesson", back_populates="level", order_by="Lesson.order"
    )


class Lesson(Base):
    __tablename__ = "lessons"
    __table_args__ = (UniqueConstraint("level_id", "order", name="uq_lesson_level_order"),)

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    level_id: Mapped[str] = mapped_column(String(16), ForeignKey("levels.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=20, server_default="20")

    level: Mapped[Level] = relationship("Level", back_populates="lessons")
    challenges: Mapped[list[Challenge]] = relationship(
        "Challenge", back_populates="lesson", order_by="Challenge.order"
    )


class Challenge(Base):
    """Multiple-choice or code challenge attached to a lesson."""

    __tablename__ = "challenges"
    __table_args__ = (UniqueConstraint("lesson_id", "order", name="uq_challenge_lesson_order"),)

    id: Mapped[str] = mapped_column(String(16), primary_key=True)
    lesson_id: Mapped[str] = mapped_column(
        String(16), ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=30, server_default="30")

    # Multiple choice
    options: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    correct_answer: Mapped[int | None] = mapped_column(Integer, nullable=True)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Code
    starter_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    validation_patterns: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)

    lesson: Mapped[Lesson] = relationship("Lesson", back_populates="challenges")


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


class UserProgress(Base):
    """Immutable completion record. Exactly one of lesson_id / challenge_id is set."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_user_progress_lesson"),
        UniqueConstraint("user_id", "challenge_id", name="uq_user_progress_challenge"),
        CheckConstraint(
            "(lesson_id IS NULL) <> (challenge_id IS NULL)",
            name="exactly_one_target",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    lesson_id: Mapped[str | None] = mapped_column(String(16), ForeignKey("lessons.id"), nullable=True)
    challenge_id: Mapped[str | None] = mapped_column(String(16), ForeignKey("challenges.id"), nullable=True)
    used_hint: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class UserAnswer(Base):
    """Latest submitted answer per (user, challenge), correct or not."""

    __tablename__ = "user_answers"
    __table_args__ = (UniqueConstraint("user_id", "challenge_id", name="uq_user_answer_challenge"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    challenge_id: Mapped[str] = mapped_column(String(16), ForeignKey("challenges.id"), nullable=False)
    answer_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class UserStats(Base):
    """Denormalized per-user aggregate; current_level is always level_for(total_xp)."""

    __tablename__ = "user_stats"
    __table_args__ = (CheckConstraint("total_xp >= 0", name="total_xp_non_negative"),)

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    challenges_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="stats")


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class Badge(Base):
    """Static badge catalog entry, keyed by slug."""

    __tablename__ = "badges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(64), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[str] = mapped_column(String(64), ForeignKey("badges.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class Subscription(Base):
    """One row per user. Only status 'active' with a future period end grants access."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'canceled', 'past_due', 'inactive')",
            name="status_valid",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="inactive", server_default="inactive")
    plan_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    stripe_price_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="subscription")
