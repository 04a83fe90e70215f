from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from australis.common import ServiceSettings
from australis.lead_service.app.main import create_app


@pytest.mark.asyncio
@pytest.mark.parametrize("environment", ["development", "production"])
async def test_health_endpoint_returns_ok(environment: str) -> None:
    app = create_app(ServiceSettings(environment=environment, enable_metrics=False))

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_metrics_endpoint_is_exposed_when_enabled() -> None:
    app = create_app(ServiceSettings(app_name="Metrics Exposure Test", enable_metrics=True))

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/metrics")

    assert response.status_code == 200
    assert "lead_notification_attempts_total" in response.text


@pytest.mark.asyncio
async def test_communications_health_reports_unconfigured() -> None:
    app = create_app(ServiceSettings(enable_metrics=False, communications_function_url=""))

    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/communications/health")

    assert response.status_code == 200
    assert response.json()["status"] == "unconfigured"


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield
