"""Read access to levels, lessons and challenges."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import Challenge, Lesson, Level
from tsquest.errors import NotFoundError


class ContentService:
    """Read access to the seeded course content. Raises NotFoundError for unknown ids."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_levels(self) -> list[Level]:
        result = await self.db.execute(select(Level).order_by(Level.order))
        return list(result.scalars().all())

    async def get_level(self, level_id: str) -> Level:
        level = await self.db.get(Level, level_id)
        if level is None:
            msg = "Level not found"
            raise NotFoundError(msg, details={"level_id": level_id})
        return level

    async def list_lessons(self, level_id: str) -> list[Lesson]:
        result = await self.db.execute(
            select(Lesson).where(Lesson.level_id == level_id).order_by(Lesson.order)
        )
        return list(result.scalars().all())

    async def get_lesson(self, lesson_id: str) -> Lesson:
        lesson = await self.db.get(Lesson, lesson_id)
        if lesson is None:
            msg = "Lesson not found"
            raise NotFoundError(msg, details={"lesson_id": lesson_id})
        return lesson

    async def list_challenges(self, lesson_id: str) -> list[Challenge]:
        result = await self.db.execute(
            select(Challenge).where(Challenge.lesson_id == lesson_id).order_by(Challenge.order)
        )
        return list(result.scalars().all())

    async def get_challenge(self, challenge_id: str) -> Challenge:
        challenge = await self.db.get(Challenge, challenge_id)
        if challenge is None:
            msg = "Challenge not found"
            raise NotFoundError(msg, details={"challenge_id": challenge_id})
        return challenge

    async def level_of_lesson(self, lesson: Lesson) -> Level:
        return await self.get_level(lesson.level_id)

    async def level_of_challenge(self, challenge: Challenge) -> Level:
        lesson = await self.get_lesson(challenge.lesson_id)
        return await self.get_level(lesson.level_id)
