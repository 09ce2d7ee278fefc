"""Badge catalog seed data. Ids match the frontend badge icons."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import Badge

logger = logging.getLogger(__name__)

FIRST_LESSON = "first-lesson"
FIVE_CHALLENGES = "five-challenges"
NO_HINTS = "no-hints"

BADGE_SEED_DATA: list[dict] = [
    {
        "id": FIRST_LESSON,
        "name": "First Steps",
        "description": "Complete your first lesson",
        "icon": "book",
        "sort_order": 1,
    },
    {
        "id": FIVE_CHALLENGES,
        "name": "Problem Solver",
        "description": "Solve 5 challenges",
        "icon": "zap",
        "sort_order": 2,
    },
    {
        "id": NO_HINTS,
        "name": "Pure Skill",
        "description": "Complete a lesson without using hints",
        "icon": "trophy",
        "sort_order": 3,
    },
    # Catalog only, no awarding rule yet
    {
        "id": "perfect-score",
        "name": "Perfectionist",
        "description": "Get 100% on all challenges in a lesson",
        "icon": "star",
        "sort_order": 4,
    },
    {
        "id": "speed-demon",
        "name": "Speed Demon",
        "description": "Complete a challenge quickly",
        "icon": "target",
        "sort_order": 5,
    },
    {
        "id": "level-master",
        "name": "Level Master",
        "description": "Complete all lessons in a level",
        "icon": "trophy",
        "sort_order": 6,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Upsert the badge catalog. Returns number of badges seeded."""
    seeded = 0
    for badge_data in BADGE_SEED_DATA:
        badge = await db.get(Badge, badge_data["id"])
        if badge is None:
            db.add(Badge(**badge_data))
        else:
            for field, value in badge_data.items():
                setattr(badge, field, value)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d badge definitions", seeded)
    return seeded
