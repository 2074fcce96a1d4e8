"""
Tadoku Backend — HTTP Endpoint Tests
=====================================

What:  The FastAPI app end to end over httpx + ASGITransport, backed by an
       in-memory SQLite database. Gemini is patched out; "now" is pinned
       through the get_now dependency.

What we test:
    ✅ Identity header is required
    ✅ Generate → read → stats → undo flow
    ✅ 429 body when the daily limit is reached, and no story is created
    ✅ 404 for other users' stories and for undo with nothing to undo
    ✅ 400 for out-of-range days, 503 with a generic body for store outages
    ✅ Pagination metadata and X-Total-Count
    ✅ Health check
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
import pytz
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tadoku.exceptions import LLMServiceError, StoreUnavailableError
from tadoku.models import User
from tadoku.routes.deps import get_now
from tadoku.services.statistics import statistics_engine
from tadoku.services.story_service import story_service

NOW = pytz.timezone("Asia/Tokyo").localize(datetime(2024, 3, 15, 10, 0))


async def create_user(engine, email, generation_count=0, last_generation_at=None) -> int:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        user = User(
            email=email,
            generation_count=generation_count,
            last_generation_at=last_generation_at,
        )
        session.add(user)
        await session.commit()
        return user.id


@pytest_asyncio.fixture
async def client(test_client):
    from tadoku.main import app

    app.dependency_overrides[get_now] = lambda: NOW
    yield test_client


@pytest_asyncio.fixture
async def user_id(sqlite_engine):
    return await create_user(sqlite_engine, "reader@example.com")


def headers(uid):
    return {"X-User-ID": str(uid)}


@pytest.fixture
def generator():
    mock = AsyncMock(return_value="Neko wa Kyoto ni sunde imasu")
    with patch.object(story_service.generator, "generate_story", mock):
        yield mock


class TestIdentity:

    @pytest.mark.asyncio
    async def test_missing_user_header(self, client):
        response = await client.get("/api/v1/users/me/stats")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_numeric_user_header(self, client):
        response = await client.get("/api/v1/users/me/stats", headers={"X-User-ID": "abc"})
        assert response.status_code == 401


class TestReadingFlow:

    @pytest.mark.asyncio
    async def test_generate_read_stats_undo(self, client, user_id, generator):
        created = await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(user_id))
        assert created.status_code == 201
        story = created.json()
        assert story["word_count"] == 6
        assert story["title"] == "a cat"

        read = await client.post(f"/api/v1/stories/{story['id']}/read", headers=headers(user_id))
        assert read.status_code == 201
        assert read.json()["read_count"] == 1
        assert read.json()["word_count"] == 6

        stats = (await client.get("/api/v1/users/me/stats", headers=headers(user_id))).json()
        assert stats["today_word_count"] == 6
        assert stats["total_word_count"] == 6
        assert len(stats["daily_word_count_last_n_days"]) == 7
        assert stats["daily_word_count_last_n_days"]["2024-03-15"] == 6

        undo = await client.delete(f"/api/v1/stories/{story['id']}/read/latest", headers=headers(user_id))
        assert undo.status_code == 200
        assert undo.json()["read_count"] == 0

        stats = (await client.get("/api/v1/users/me/stats", headers=headers(user_id))).json()
        assert stats["today_word_count"] == 0

        status = (await client.get("/api/v1/users/me/generation-status", headers=headers(user_id))).json()
        assert status == {"current_count": 1, "limit": 10, "remaining": 9}

    @pytest.mark.asyncio
    async def test_partial_read_word_count(self, client, user_id, generator):
        story = (await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(user_id))).json()

        read = await client.post(
            f"/api/v1/stories/{story['id']}/read",
            json={"word_count": 2},
            headers=headers(user_id),
        )

        assert read.json()["word_count"] == 2

    @pytest.mark.asyncio
    async def test_undo_without_reading(self, client, user_id, generator):
        story = (await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(user_id))).json()

        response = await client.delete(f"/api/v1/stories/{story['id']}/read/latest", headers=headers(user_id))

        assert response.status_code == 404
        assert response.json()["error"] == "no_reading_record"

    @pytest.mark.asyncio
    async def test_other_users_story_is_not_found(self, client, sqlite_engine, user_id, generator):
        story = (await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(user_id))).json()
        intruder = await create_user(sqlite_engine, "intruder@example.com")

        read = await client.post(f"/api/v1/stories/{story['id']}/read", headers=headers(intruder))
        detail = await client.get(f"/api/v1/stories/{story['id']}", headers=headers(intruder))

        assert read.status_code == 404
        assert detail.status_code == 404


class TestGenerationLimit:

    @pytest.mark.asyncio
    async def test_limit_reached(self, client, sqlite_engine, generator):
        uid = await create_user(
            sqlite_engine,
            "busy@example.com",
            generation_count=10,
            last_generation_at=pytz.utc.localize(datetime(2024, 3, 15, 0, 30)),
        )

        response = await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(uid))

        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "generation_limit_exceeded"
        assert body["details"] == {"limit": 10, "current_count": 10}
        generator.assert_not_awaited()

        listing = (await client.get("/api/v1/stories", headers=headers(uid))).json()
        assert listing["total_count"] == 0

    @pytest.mark.asyncio
    async def test_yesterdays_counter_does_not_block(self, client, sqlite_engine, generator):
        uid = await create_user(
            sqlite_engine,
            "yesterday@example.com",
            generation_count=10,
            # 23:00 on the 14th in Tokyo
            last_generation_at=pytz.utc.localize(datetime(2024, 3, 14, 14, 0)),
        )

        response = await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(uid))

        assert response.status_code == 201
        status = (await client.get("/api/v1/users/me/generation-status", headers=headers(uid))).json()
        assert status["current_count"] == 1

    @pytest.mark.asyncio
    async def test_exhausted_generator_is_503_with_retry_after(self, client, user_id, generator):
        generator.side_effect = LLMServiceError(
            message="Story generation failed after multiple attempts. Please try again later.",
            retry_after=60,
        )

        response = await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(user_id))

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "60"
        assert response.json()["error"] == "llm_service_error"
        status = (await client.get("/api/v1/users/me/generation-status", headers=headers(user_id))).json()
        assert status["current_count"] == 0

    @pytest.mark.asyncio
    async def test_blank_prompt(self, client, user_id, generator):
        response = await client.post("/api/v1/stories", json={"prompt": "  "}, headers=headers(user_id))

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestListing:

    @pytest.mark.asyncio
    async def test_pagination(self, client, user_id, generator):
        for i in range(3):
            await client.post("/api/v1/stories", json={"prompt": f"story {i}"}, headers=headers(user_id))

        response = await client.get("/api/v1/stories?page=2&limit=2", headers=headers(user_id))

        body = response.json()
        assert response.headers["X-Total-Count"] == "3"
        assert (body["total_pages"], body["current_page"], body["limit"]) == (2, 2, 2)
        assert len(body["stories"]) == 1

    @pytest.mark.asyncio
    async def test_page_past_the_end(self, client, user_id):
        response = await client.get("/api/v1/stories?page=5", headers=headers(user_id))

        body = response.json()
        assert response.status_code == 200
        assert body["stories"] == []
        assert body["total_pages"] == 0

    @pytest.mark.asyncio
    async def test_detail_includes_read_count(self, client, user_id, generator):
        story = (await client.post("/api/v1/stories", json={"prompt": "a cat"}, headers=headers(user_id))).json()
        await client.post(f"/api/v1/stories/{story['id']}/read", headers=headers(user_id))
        await client.post(f"/api/v1/stories/{story['id']}/read", headers=headers(user_id))

        detail = (await client.get(f"/api/v1/stories/{story['id']}", headers=headers(user_id))).json()

        assert detail["read_count"] == 2


class TestStatsErrors:

    @pytest.mark.asyncio
    async def test_days_out_of_range(self, client, user_id):
        response = await client.get("/api/v1/users/me/stats?days=0", headers=headers(user_id))

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "days"

    @pytest.mark.asyncio
    async def test_custom_days(self, client, user_id):
        response = await client.get("/api/v1/users/me/stats?days=30", headers=headers(user_id))

        series = response.json()["daily_word_count_last_n_days"]
        assert len(series) == 30
        assert list(series)[-1] == "2024-03-15"

    @pytest.mark.asyncio
    async def test_store_outage_is_generic_503(self, client, user_id):
        failure = StoreUnavailableError(context={"operation": "sum_word_counts", "error_type": "OperationalError"})
        with patch.object(statistics_engine, "compute_stats", AsyncMock(side_effect=failure)):
            response = await client.get("/api/v1/users/me/stats", headers=headers(user_id))

        body = response.json()
        assert response.status_code == 503
        assert body["error"] == "store_unavailable"
        assert "details" not in body
        assert "X-Request-ID" in response.headers


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client, sqlite_engine):
        from tadoku.services.gemini_service import gemini_service

        with patch("tadoku.routes.health.engine", sqlite_engine), \
             patch.object(gemini_service, "health_check", AsyncMock(return_value=True)):
            response = await client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["generator"] == "available"
