"""Tests for the Redis sliding-window rate limiter."""

from __future__ import annotations

import pytest
import redis.asyncio as redis
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.middleware.rate_limiter import RateLimiterMiddleware


class FakePipeline:
    def __init__(self, store: dict[str, dict[str, float]]):
        self.store = store
        self.ops = []

    def zremrangebyscore(self, key, low, high):
        self.ops.append(("zrem", key, low, high))

    def zcard(self, key):
        self.ops.append(("zcard", key))

    def zadd(self, key, mapping):
        self.ops.append(("zadd", key, mapping))

    def expire(self, key, seconds):
        self.ops.append(("expire", key))

    async def execute(self):
        results = []
        for op in self.ops:
            entries = self.store.setdefault(op[1], {})
            if op[0] == "zrem":
                for member, score in list(entries.items()):
                    if op[2] <= score <= op[3]:
                        del entries[member]
                results.append(None)
            elif op[0] == "zcard":
                results.append(len(entries))
            elif op[0] == "zadd":
                entries.update(op[2])
                results.append(1)
            else:
                results.append(True)
        return results


class FakeRedis:
    def __init__(self):
        self.store: dict[str, dict[str, float]] = {}

    def pipeline(self):
        return FakePipeline(self.store)


class DownRedis:
    def pipeline(self):
        raise redis.ConnectionError("redis unavailable")


def _app(redis_client, **limits) -> FastAPI:
    app = FastAPI()

    @app.get("/api/books")
    async def books():
        return {"books": []}

    @app.post("/api/books")
    async def create():
        return {"ok": True}

    @app.get("/api/health")
    async def health():
        return {"success": True}

    app.add_middleware(RateLimiterMiddleware, redis_client=redis_client, enabled=True, **limits)
    return app


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_general_limit(self):
        app = _app(FakeRedis(), per_ip_limit=2)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/api/books")).status_code == 200
            assert (await client.get("/api/books")).status_code == 200
            response = await client.get("/api/books")
            assert response.status_code == 429
            assert response.headers["Retry-After"]

    @pytest.mark.asyncio
    async def test_write_limit_is_stricter(self):
        app = _app(FakeRedis(), per_ip_limit=100, writes_per_ip_limit=1)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.post("/api/books")).status_code == 200
            response = await client.post("/api/books")
            assert response.status_code == 429
            assert "modification" in response.json()["error"]
            assert (await client.get("/api/books")).status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_exempt(self):
        app = _app(FakeRedis(), per_ip_limit=1)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            for _ in range(3):
                assert (await client.get("/api/health")).status_code == 200

    @pytest.mark.asyncio
    async def test_fails_open_when_redis_is_down(self):
        app = _app(DownRedis(), per_ip_limit=1)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            for _ in range(3):
                assert (await client.get("/api/books")).status_code == 200
