"""Client for the geoservices function (remote geospatial calculations)."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import httpx

from .metrics import GEO_REQUESTS_TOTAL

TERMINAL_STATUSES = frozenset({"completed", "failed"})


class GeoServicesError(Exception):
    """Raised when the geoservices function cannot be reached or answers badly."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GeoServicesNotConfigured(GeoServicesError):
    """Raised when no geoservices function URL is configured."""


class GeoServicesTimeout(GeoServicesError):
    """Raised when a calculation does not settle within the polling budget."""


def _normalize_base(url: str | None) -> str | None:
    if not url:
        return None
    return url.rstrip("/")


class GeoServicesClient:
    """Thin pass-through to the geoservices function; no geospatial logic lives here."""

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        base_url: str | None,
        function_key: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._base_url = _normalize_base(base_url)
        self._function_key = function_key
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self._base_url is not None

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._function_key:
            headers["x-functions-key"] = self._function_key
        return headers

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: Any | None = None,
    ) -> Any:
        if self._base_url is None:
            GEO_REQUESTS_TOTAL.labels(operation=operation, outcome="unconfigured").inc()
            raise GeoServicesNotConfigured("GeoServices function URL is not configured")
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._client.request(method, url, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            GEO_REQUESTS_TOTAL.labels(operation=operation, outcome="network_error").inc()
            raise GeoServicesError(f"GeoServices request failed for {path}: {exc}") from exc
        if not response.is_success:
            GEO_REQUESTS_TOTAL.labels(operation=operation, outcome="http_error").inc()
            raise GeoServicesError(
                f"GeoServices request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            GEO_REQUESTS_TOTAL.labels(operation=operation, outcome="decode_error").inc()
            raise GeoServicesError(f"GeoServices returned an unreadable response for {path}") from exc
        GEO_REQUESTS_TOTAL.labels(operation=operation, outcome="ok").inc()
        return payload

    async def start_calculation(self, request: dict[str, Any]) -> dict[str, Any]:
        return await self._request("calculate", "POST", "/api/calculate", json=request)

    async def get_calculation_status(self, execution_id: str) -> dict[str, Any]:
        return await self._request("status", "GET", f"/api/status/{execution_id}")

    async def get_calculation_types(self) -> list[dict[str, Any]]:
        return await self._request("calculation_types", "GET", "/api/calculation-types")

    async def validate_geometry(self, geometry: dict[str, Any]) -> dict[str, Any]:
        return await self._request("validate_geometry", "POST", "/api/validate-geometry", json={"geometry": geometry})

    async def get_constraints(self, geometry: dict[str, Any]) -> dict[str, Any]:
        return await self._request("constraints", "POST", "/api/constraints", json={"geometry": geometry})

    async def health_check(self) -> dict[str, Any]:
        return await self._request("health", "GET", "/api/health")

    async def poll_for_completion(
        self,
        execution_id: str,
        *,
        max_attempts: int = 30,
        interval: float = 2.0,
    ) -> dict[str, Any]:
        """Poll a calculation until it completes or fails."""

        for attempt in range(1, max_attempts + 1):
            status = await self.get_calculation_status(execution_id)
            if not isinstance(status, dict):
                raise GeoServicesError(f"GeoServices returned an unexpected status payload for {execution_id}")
            if str(status.get("status", "")).lower() in TERMINAL_STATUSES:
                return status
            if attempt < max_attempts:
                await self._sleep(interval)
        raise GeoServicesTimeout(f"Calculation {execution_id} timed out after {max_attempts} polls")
