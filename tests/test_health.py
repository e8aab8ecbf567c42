"""Tests for health check endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_root(plain_client: AsyncClient) -> None:
    """Test root endpoint returns API info."""
    response = await plain_client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Open Letter API"
    assert "version" in data
    assert "docs" in data


@pytest.mark.asyncio
async def test_liveness(plain_client: AsyncClient) -> None:
    """Test liveness probe endpoint."""
    response = await plain_client.get("/api/v1/health/live")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "alive"


@pytest.mark.asyncio
async def test_readiness(client: AsyncClient) -> None:
    """Readiness only needs the database."""
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


@pytest.mark.asyncio
async def test_health_reports_database(client: AsyncClient) -> None:
    """Full health check lists every dependency it probed."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    checks = response.json()["checks"]
    assert checks["database"] == "healthy"
    assert "broker" in checks


@pytest.mark.asyncio
async def test_request_id_echoed(plain_client: AsyncClient) -> None:
    """A client-supplied request id is returned for log correlation."""
    response = await plain_client.get("/api/v1/health/live", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.asyncio
async def test_request_id_generated(plain_client: AsyncClient) -> None:
    response = await plain_client.get("/api/v1/health/live")
    assert len(response.headers["X-Request-ID"]) == 16


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(plain_client: AsyncClient) -> None:
    response = await plain_client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == 404
