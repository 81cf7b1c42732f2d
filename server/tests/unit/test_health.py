"""Unit tests for health and operational endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check(test_client):
    response = await test_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "service" in data
    assert "version" in data


@pytest.mark.asyncio
async def test_ready_check_reports_database(test_client):
    response = await test_client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] == "ok"


@pytest.mark.asyncio
async def test_info_endpoint_lists_policy(test_client):
    response = await test_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert "features" in data
    assert data["policy"]["late_grace_minutes"] == 0
    assert data["policy"]["max_rental_days"] == 90


@pytest.mark.asyncio
async def test_health_ping_rpc(test_client):
    """The RPC-style ping echoes the request id it was given."""
    response = await test_client.post("/v1/health/ping", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_request_id_generated_when_missing(test_client):
    response = await test_client.post("/v1/health/ping")
    assert response.headers.get("X-Request-ID")
