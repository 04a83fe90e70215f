import json
from contextlib import asynccontextmanager
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient, MockTransport, Request, Response

from australis.common import ServiceSettings
from australis.lead_service.app.geo import (
    GeoServicesClient,
    GeoServicesError,
    GeoServicesNotConfigured,
    GeoServicesTimeout,
)
from australis.lead_service.app.main import create_app

GEO_URL = "https://geo.test/"
POLYGON = {"type": "Polygon", "coordinates": [[[0, 51], [1, 51], [1, 52], [0, 51]]]}


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _geo_client(handler, *, base_url: str | None = GEO_URL, sleep: _RecordingSleep | None = None) -> GeoServicesClient:
    return GeoServicesClient(
        client=AsyncClient(transport=MockTransport(handler)),
        base_url=base_url,
        function_key="geo-key",
        sleep=sleep or _RecordingSleep(),
    )


@pytest.mark.asyncio
async def test_requests_carry_function_key_header() -> None:
    seen: list[Request] = []

    def handler(request: Request) -> Response:
        seen.append(request)
        return Response(200, json={"valid": True})

    client = _geo_client(handler)
    result = await client.validate_geometry(POLYGON)
    await client.close()

    assert result == {"valid": True}
    assert str(seen[0].url) == "https://geo.test/api/validate-geometry"
    assert seen[0].headers["x-functions-key"] == "geo-key"
    assert json.loads(seen[0].content) == {"geometry": POLYGON}


@pytest.mark.asyncio
async def test_unconfigured_client_raises_without_network() -> None:
    calls = 0

    def handler(_: Request) -> Response:
        nonlocal calls
        calls += 1
        return Response(200, json={})

    client = _geo_client(handler, base_url=None)
    with pytest.raises(GeoServicesNotConfigured):
        await client.get_calculation_types()
    await client.close()

    assert client.configured is False
    assert calls == 0


@pytest.mark.asyncio
async def test_error_status_raises_with_code() -> None:
    client = _geo_client(lambda _: Response(404, text="no such execution"))

    with pytest.raises(GeoServicesError) as excinfo:
        await client.get_calculation_status("exec-1")
    await client.close()

    assert excinfo.value.status_code == 404
    assert "404 - no such execution" in str(excinfo.value)


@pytest.mark.asyncio
async def test_poll_returns_on_terminal_status() -> None:
    statuses = iter(["queued", "running", "Completed"])

    def handler(request: Request) -> Response:
        assert request.url.path == "/api/status/exec-1"
        return Response(200, json={"executionId": "exec-1", "status": next(statuses)})

    sleep = _RecordingSleep()
    client = _geo_client(handler, sleep=sleep)
    result = await client.poll_for_completion("exec-1", interval=0.5)
    await client.close()

    assert result["status"] == "Completed"
    assert sleep.delays == [0.5, 0.5]


@pytest.mark.asyncio
async def test_poll_times_out_without_trailing_sleep() -> None:
    sleep = _RecordingSleep()
    client = _geo_client(lambda _: Response(200, json={"status": "running"}), sleep=sleep)

    with pytest.raises(GeoServicesTimeout):
        await client.poll_for_completion("exec-1", max_attempts=3, interval=1.0)
    await client.close()

    assert sleep.delays == [1.0, 1.0]


@pytest.mark.asyncio
async def test_poll_rejects_non_object_status_payload() -> None:
    client = _geo_client(lambda _: Response(200, json=["x"]))

    with pytest.raises(GeoServicesError, match="unexpected status payload"):
        await client.poll_for_completion("e1")
    await client.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with app.router.lifespan_context(app):
        yield


def _app(handler, **overrides: Any) -> FastAPI:
    values: dict[str, Any] = {
        "app_name": "Geo Routes Test",
        "enable_metrics": False,
        "enable_tracing": False,
        "geoservices_function_url": GEO_URL,
        "geoservices_function_key": "geo-key",
    }
    values.update(overrides)
    return create_app(ServiceSettings(**values), http_transport=MockTransport(handler))


@pytest.mark.asyncio
async def test_calculation_route_forwards_wire_payload() -> None:
    seen: list[dict[str, Any]] = []

    def handler(request: Request) -> Response:
        seen.append(json.loads(request.content))
        return Response(202, json={"executionId": "exec-9", "status": "queued"})

    app = _app(handler)
    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/geo/calculations",
                json={"projectId": "proj-1", "siteGeometry": POLYGON, "calculationType": "solar"},
            )

    assert response.status_code == 202
    assert response.json()["executionId"] == "exec-9"
    assert seen == [{"projectId": "proj-1", "siteGeometry": POLYGON, "calculationType": "solar"}]


@pytest.mark.asyncio
async def test_geo_routes_map_failures_to_gateway_errors() -> None:
    failing = _app(lambda _: Response(500, text="crashed"))
    unconfigured = _app(lambda _: Response(200, json={}), geoservices_function_url=None)

    async with lifespan(failing):
        transport = ASGITransport(app=failing)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            bad_gateway = await client.get("/geo/calculation-types")

    async with lifespan(unconfigured):
        transport = ASGITransport(app=unconfigured)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            unavailable = await client.get("/geo/health")

    assert bad_gateway.status_code == 502
    assert unavailable.status_code == 503
    assert unavailable.json()["detail"] == "GeoServices function URL is not configured"
