"""Progression, stats, badge and subscription endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tsquest.db.models import User
from tsquest.gamification.seed import BADGE_SEED_DATA


class TestCompletionEndpoints:
    @pytest.mark.asyncio
    async def test_correct_answer_awards_xp_once(self, authed_client: AsyncClient):
        body = {"is_correct": True, "answer_data": {"selected": 1}}
        first = await authed_client.post("/api/v1/progress/challenges/1-1-1", json=body)
        assert first.status_code == 200
        assert first.json()["xp_earned"] == 30
        assert first.json()["current_level"] == 1

        again = await authed_client.post("/api/v1/progress/challenges/1-1-1", json=body)
        assert again.json()["xp_earned"] == 0
        assert again.json()["already_completed"] is True

    @pytest.mark.asyncio
    async def test_incorrect_answer_stored(self, authed_client: AsyncClient):
        response = await authed_client.post(
            "/api/v1/progress/challenges/1-1-1",
            json={"is_correct": False, "answer_data": {"selected": 3}},
        )
        assert response.json()["xp_earned"] == 0

        answer = await authed_client.get("/api/v1/challenges/1-1-1/answer")
        assert answer.status_code == 200
        assert answer.json()["is_correct"] is False
        assert answer.json()["answer_data"] == {"selected": 3}

    @pytest.mark.asyncio
    async def test_missing_answer_is_404(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/challenges/1-1-1/answer")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_lesson_completion_badges(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/progress/lessons/1-1", json={"used_hint": False})
        assert response.status_code == 200
        data = response.json()
        assert data["xp_earned"] == 20
        assert sorted(data["badges_earned"]) == ["first-lesson", "no-hints"]

    @pytest.mark.asyncio
    async def test_lesson_completion_without_body(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/progress/lessons/1-2")
        assert response.status_code == 200
        assert response.json()["xp_earned"] == 20

    @pytest.mark.asyncio
    async def test_locked_lesson_awards_nothing(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/progress/lessons/2-1", json={})
        assert response.status_code == 403

        stats = (await authed_client.get("/api/v1/stats")).json()
        assert stats["total_xp"] == 0
        assert stats["lessons_completed"] == 0

    @pytest.mark.asyncio
    async def test_unknown_lesson_is_404(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/progress/lessons/nope", json={})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_progress_list(self, authed_client: AsyncClient):
        await authed_client.post("/api/v1/progress/lessons/1-1", json={})
        await authed_client.post("/api/v1/progress/challenges/1-1-1", json={"is_correct": True})

        data = (await authed_client.get("/api/v1/progress")).json()
        assert data["total"] == 2


class TestStatsAndBadges:
    @pytest.mark.asyncio
    async def test_stats_for_new_learner(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["total_xp"] == 0
        assert data["current_level"] == 1
        assert data["next_level_xp"] == 200
        assert data["is_max_level"] is False

    @pytest.mark.asyncio
    async def test_five_challenges_badge_via_api(
        self, authed_client: AsyncClient, level_one_challenges: list[str]
    ):
        earned: list[str] = []
        for challenge_id in level_one_challenges:
            response = await authed_client.post(
                f"/api/v1/progress/challenges/{challenge_id}", json={"is_correct": True}
            )
            earned.extend(response.json()["badges_earned"])
        assert earned == ["five-challenges"]

        badges = (await authed_client.get("/api/v1/badges")).json()
        assert badges["total_available"] == len(BADGE_SEED_DATA)
        assert badges["total_earned"] == 1
        by_id = {b["id"]: b for b in badges["badges"]}
        assert by_id["five-challenges"]["earned"] is True

        stats = (await authed_client.get("/api/v1/stats")).json()
        assert stats["total_xp"] == 150
        assert stats["challenges_completed"] == 5


class TestSubscriptionEndpoints:
    @pytest.mark.asyncio
    async def test_default_subscription(self, authed_client: AsyncClient):
        data = (await authed_client.get("/api/v1/subscription")).json()
        assert data["status"] == "inactive"
        assert data["plan_type"] == "free"

    @pytest.mark.asyncio
    async def test_config(self, client: AsyncClient):
        response = await client.get("/api/v1/subscription/config")
        assert response.status_code == 200
        data = response.json()
        assert data["paywall_starts_at_level"] == 2
        assert {p["plan_type"] for p in data["plans"]} == {"monthly", "annual"}

    @pytest.mark.asyncio
    async def test_cancel_without_subscription(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/subscription/cancel")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_premium_flag_reported(self, client: AsyncClient, db_session: AsyncSession):
        from tests.conftest import auth_headers, make_user

        friend: User = await make_user(db_session, "friend@example.com", has_premium_access=True)
        data = (await client.get("/api/v1/subscription", headers=auth_headers(friend))).json()
        assert data["has_premium_access"] is True
