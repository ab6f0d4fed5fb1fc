import pytest
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from unittest.mock import AsyncMock

from contentdesk.main import create_app
from contentdesk.services.container import build_services
from contentdesk.storage.redis_store import RedisDocumentStore

from conftest import FakeRedis


@pytest.mark.asyncio
async def test_backend_test_endpoint(client):
    response = await client.get("/api/test")

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Backend is working!"
    assert data["timestamp"].endswith("Z")


@pytest.mark.asyncio
async def test_db_health_success(client):
    """Health check returns healthy status when the database is reachable."""
    response = await client.get("/api/db-health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["message"] == "Database connection successful"
    assert "error" not in data


@pytest.mark.asyncio
async def test_db_health_database_failure_hides_internals(client, services, monkeypatch):
    """A failing ping is reported as 503 without the driver's error text."""
    monkeypatch.setattr(
        services.store.database,
        "ping",
        AsyncMock(side_effect=ConnectionRefusedError("Connection refused: 10.0.0.5:5432 password=secret")),
    )

    response = await client.get("/api/db-health")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["error"] == "Database connection failed"
    assert "secret" not in response.text
    assert "stack" not in data


@pytest.mark.asyncio
async def test_db_health_with_redis_backend(settings):
    redis_settings = settings.model_copy(update={"storage_backend": "redis"})
    fake = FakeRedis()
    services = build_services(redis_settings, store=RedisDocumentStore(fake, prefix="test"))
    app = create_app(redis_settings, services)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/db-health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

        fake.ping = AsyncMock(side_effect=RedisConnectionError("Error 111 connecting to redis:6379"))
        response = await client.get("/api/db-health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
