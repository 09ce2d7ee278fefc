"""Baseline schema.

Creates users, course content, progression, badges and subscriptions.
Content and badge catalog rows are seeded by the application on startup.

Revision ID: 001_baseline
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op
from tsquest.gamification.seed import BADGE_SEED_DATA

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(320) NOT NULL,
            password_hash VARCHAR(256),
            display_name VARCHAR(64) NOT NULL,
            is_admin BOOLEAN NOT NULL DEFAULT false,
            has_premium_access BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_email UNIQUE (email)
        )
    """)

    # --- Content ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS levels (
            id VARCHAR(16) PRIMARY KEY,
            name VARCHAR(200) NOT NULL,
            description TEXT NOT NULL,
            "order" INTEGER NOT NULL,
            xp_required INTEGER NOT NULL DEFAULT 0,
            CONSTRAINT uq_levels_order UNIQUE ("order")
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS lessons (
            id VARCHAR(16) PRIMARY KEY,
            level_id VARCHAR(16) NOT NULL REFERENCES levels(id) ON DELETE CASCADE,
            title VARCHAR(200) NOT NULL,
            description TEXT NOT NULL,
            content TEXT NOT NULL,
            "order" INTEGER NOT NULL,
            xp_reward INTEGER NOT NULL DEFAULT 20,
            CONSTRAINT uq_lesson_level_order UNIQUE (level_id, "order")
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenges (
            id VARCHAR(16) PRIMARY KEY,
            lesson_id VARCHAR(16) NOT NULL REFERENCES lessons(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL,
            prompt TEXT NOT NULL,
            "order" INTEGER NOT NULL,
            xp_reward INTEGER NOT NULL DEFAULT 30,
            options JSONB,
            correct_answer INTEGER,
            explanation TEXT,
            starter_code TEXT,
            validation_patterns JSONB,
            hint TEXT,
            CONSTRAINT uq_challenge_lesson_order UNIQUE (lesson_id, "order")
        )
    """)

    # --- Progression ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_progress (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            lesson_id VARCHAR(16) REFERENCES lessons(id),
            challenge_id VARCHAR(16) REFERENCES challenges(id),
            used_hint BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_progress_lesson UNIQUE (user_id, lesson_id),
            CONSTRAINT uq_user_progress_challenge UNIQUE (user_id, challenge_id),
            CONSTRAINT ck_user_progress_exactly_one_target
                CHECK ((lesson_id IS NULL) <> (challenge_id IS NULL))
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_progress_user_completed
        ON user_progress(user_id, completed_at DESC)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_answers (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            challenge_id VARCHAR(16) NOT NULL REFERENCES challenges(id),
            answer_data JSONB NOT NULL DEFAULT '{}',
            is_correct BOOLEAN NOT NULL,
            submitted_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_answer_challenge UNIQUE (user_id, challenge_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id VARCHAR(36) PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            total_xp INTEGER NOT NULL DEFAULT 0,
            current_level INTEGER NOT NULL DEFAULT 1,
            lessons_completed INTEGER NOT NULL DEFAULT 0,
            challenges_completed INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_user_stats_total_xp_non_negative CHECK (total_xp >= 0)
        )
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            icon VARCHAR(64) NOT NULL,
            sort_order INTEGER NOT NULL DEFAULT 0
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            badge_id VARCHAR(64) NOT NULL REFERENCES badges(id),
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_user_badges_user_badge UNIQUE (user_id, badge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_badges_user
        ON user_badges(user_id)
    """)

    badges = sa.table(
        "badges",
        sa.column("id", sa.String),
        sa.column("name", sa.String),
        sa.column("description", sa.Text),
        sa.column("icon", sa.String),
        sa.column("sort_order", sa.Integer),
    )
    op.bulk_insert(badges, BADGE_SEED_DATA)

    # --- Subscriptions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS subscriptions (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'inactive',
            plan_type VARCHAR(16),
            current_period_end TIMESTAMPTZ,
            cancel_at_period_end BOOLEAN NOT NULL DEFAULT false,
            stripe_customer_id VARCHAR(64),
            stripe_subscription_id VARCHAR(64),
            stripe_price_id VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_subscriptions_user_id UNIQUE (user_id),
            CONSTRAINT uq_subscriptions_stripe_subscription_id UNIQUE (stripe_subscription_id),
            CONSTRAINT ck_subscriptions_status_valid
                CHECK (status IN ('active', 'canceled', 'past_due', 'inactive'))
        )
    """)


def downgrade() -> None:
    for table in (
        "subscriptions",
        "user_badges",
        "badges",
        "user_stats",
        "user_answers",
        "user_progress",
        "challenges",
        "lessons",
        "levels",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
