"""Progression recorder: idempotent completions with stats and badge updates.

A completion is one unit of work per user:
1. Lock the user's stats row (serializes that user's completions)
2. Return xp_earned=0 if the completion record already exists
3. Insert the immutable completion record
4. Add XP, recompute level, bump the matching counter
5. Evaluate badges against the post-update stats
6. Commit once; any failure rolls everything back
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import Challenge, Lesson, UserAnswer, UserProgress, UserStats
from tsquest.errors import InconsistentStateError, NotFoundError
from tsquest.gamification.badge_service import CompletionContext, evaluate_badges
from tsquest.progression.levels import level_for

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    xp_earned: int
    already_completed: bool
    total_xp: int
    current_level: int
    level_up: bool = False
    badges_earned: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


async def _ensure_stats(db: AsyncSession, user_id: str) -> None:
    """Create the zeroed stats row if missing. Safe against a concurrent insert."""
    existing = await db.execute(select(UserStats.user_id).where(UserStats.user_id == user_id))
    if existing.scalar_one_or_none() is not None:
        return

    db.add(UserStats(
        user_id=user_id,
        total_xp=0,
        current_level=1,
        lessons_completed=0,
        challenges_completed=0,
        updated_at=datetime.now(timezone.utc),
    ))
    try:
        await db.commit()
    except IntegrityError:
        # Another request created it between our check and insert
        await db.rollback()
        logger.info("Stats row for user %s created concurrently", user_id)


async def _load_stats(db: AsyncSession, user_id: str, *, for_update: bool = False) -> UserStats:
    stmt = select(UserStats).where(UserStats.user_id == user_id).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    stats = (await db.execute(stmt)).scalar_one_or_none()
    if stats is None:
        logger.error("Stats row missing for user %s after lazy creation", user_id)
        msg = "User stats could not be initialized"
        raise InconsistentStateError(msg, details={"user_id": user_id})
    return stats


async def get_stats(db: AsyncSession, user_id: str) -> UserStats:
    """Return the user's stats, creating a zeroed row on first access.

    Also repairs current_level if it drifted from level_for(total_xp).
    """
    await _ensure_stats(db, user_id)
    stats = await _load_stats(db, user_id)

    expected_level = level_for(stats.total_xp)
    if stats.current_level != expected_level:
        logger.warning(
            "Repairing current_level for user %s: %d -> %d",
            user_id, stats.current_level, expected_level,
        )
        stats.current_level = expected_level
        stats.updated_at = datetime.now(timezone.utc)
        await db.commit()
    return stats


# ---------------------------------------------------------------------------
# Completions
# ---------------------------------------------------------------------------


async def _has_completed(db: AsyncSession, user_id: str, kind: str, target_id: str) -> bool:
    column = UserProgress.lesson_id if kind == "lesson" else UserProgress.challenge_id
    result = await db.execute(
        select(UserProgress.id).where(UserProgress.user_id == user_id, column == target_id)
    )
    return result.scalar_one_or_none() is not None


async def _apply_completion(
    db: AsyncSession,
    user_id: str,
    kind: str,
    target_id: str,
    used_hint: bool,
) -> CompletionResult:
    """Record one completion inside the caller's transaction. Does not commit."""
    stats = await _load_stats(db, user_id, for_update=True)

    if await _has_completed(db, user_id, kind, target_id):
        return CompletionResult(
            xp_earned=0,
            already_completed=True,
            total_xp=stats.total_xp,
            current_level=stats.current_level,
        )

    model = Lesson if kind == "lesson" else Challenge
    target = await db.get(model, target_id)
    if target is None:
        msg = f"{kind.capitalize()} not found"
        raise NotFoundError(msg, details={f"{kind}_id": target_id})

    now = datetime.now(timezone.utc)
    db.add(UserProgress(
        user_id=user_id,
        lesson_id=target_id if kind == "lesson" else None,
        challenge_id=target_id if kind == "challenge" else None,
        used_hint=used_hint,
        completed_at=now,
    ))

    lessons_before = stats.lessons_completed
    old_level = stats.current_level

    stats.total_xp += target.xp_reward
    stats.current_level = level_for(stats.total_xp)
    if kind == "lesson":
        stats.lessons_completed += 1
    else:
        stats.challenges_completed += 1
    stats.updated_at = now
    await db.flush()

    awarded = await evaluate_badges(
        db,
        user_id,
        stats,
        CompletionContext(kind=kind, used_hint=used_hint, lessons_completed_before=lessons_before),
    )

    logger.info(
        "User %s completed %s %s: +%d XP (total %d, level %d)",
        user_id, kind, target_id, target.xp_reward, stats.total_xp, stats.current_level,
    )
    return CompletionResult(
        xp_earned=target.xp_reward,
        already_completed=False,
        total_xp=stats.total_xp,
        current_level=stats.current_level,
        level_up=stats.current_level > old_level,
        badges_earned=awarded,
    )


async def _complete(
    db: AsyncSession,
    user_id: str,
    kind: str,
    target_id: str,
    used_hint: bool,
) -> CompletionResult:
    await _ensure_stats(db, user_id)
    try:
        result = await _apply_completion(db, user_id, kind, target_id, used_hint)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return result


async def complete_lesson(
    db: AsyncSession,
    user_id: str,
    lesson_id: str,
    used_hint: bool = False,
) -> CompletionResult:
    """Mark a lesson complete. Repeat calls award 0 XP."""
    return await _complete(db, user_id, "lesson", lesson_id, used_hint)


async def complete_challenge(
    db: AsyncSession,
    user_id: str,
    challenge_id: str,
    used_hint: bool = False,
) -> CompletionResult:
    """Mark a challenge complete. Repeat calls award 0 XP."""
    return await _complete(db, user_id, "challenge", challenge_id, used_hint)


async def submit_challenge_answer(
    db: AsyncSession,
    user_id: str,
    challenge_id: str,
    answer_data: dict[str, Any],
    is_correct: bool,
    used_hint: bool = False,
) -> CompletionResult:
    """Store the user's latest answer; only a correct answer completes the challenge."""
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        msg = "Challenge not found"
        raise NotFoundError(msg, details={"challenge_id": challenge_id})

    await _ensure_stats(db, user_id)
    try:
        existing = await db.execute(
            select(UserAnswer).where(
                UserAnswer.user_id == user_id,
                UserAnswer.challenge_id == challenge_id,
            )
        )
        answer = existing.scalar_one_or_none()
        now = datetime.now(timezone.utc)
        if answer is None:
            db.add(UserAnswer(
                user_id=user_id,
                challenge_id=challenge_id,
                answer_data=answer_data,
                is_correct=is_correct,
                submitted_at=now,
            ))
        else:
            answer.answer_data = answer_data
            answer.is_correct = is_correct
            answer.submitted_at = now

        if is_correct:
            result = await _apply_completion(db, user_id, "challenge", challenge_id, used_hint)
        else:
            stats = await _load_stats(db, user_id)
            result = CompletionResult(
                xp_earned=0,
                already_completed=False,
                total_xp=stats.total_xp,
                current_level=stats.current_level,
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return result


async def get_answer(db: AsyncSession, user_id: str, challenge_id: str) -> UserAnswer:
    """Latest stored answer for a challenge."""
    result = await db.execute(
        select(UserAnswer).where(
            UserAnswer.user_id == user_id,
            UserAnswer.challenge_id == challenge_id,
        )
    )
    answer = result.scalar_one_or_none()
    if answer is None:
        msg = "No answer found"
        raise NotFoundError(msg, details={"challenge_id": challenge_id})
    return answer


async def list_progress(db: AsyncSession, user_id: str) -> list[UserProgress]:
    """All completion records for the user, newest first."""
    result = await db.execute(
        select(UserProgress)
        .where(UserProgress.user_id == user_id)
        .order_by(UserProgress.completed_at.desc())
    )
    return list(result.scalars().all())
