"""Single-attempt client for the communications (email delivery) function."""

from __future__ import annotations

from datetime import datetime, timezone
from time import perf_counter
from typing import Any

import httpx

from australis.common.config import CommunicationsEndpoint
from australis.common.tracing import dispatch_span

from .errors import ConfigurationError, RemoteRejection, TransportError
from .metrics import LEAD_NOTIFICATION_SEND_LATENCY_SECONDS
from .models import DispatchResult, NotificationRequest

_JSON_HEADERS = {"Content-Type": "application/json"}


class CommunicationsTransport:
    """Posts one notification to the communications function and translates the reply.

    The function key travels as the ``code`` query parameter, which is how
    the function host authorises function-level calls. The transport never
    retries; callers that want retries schedule them themselves.
    """

    def __init__(self, *, client: httpx.AsyncClient, endpoint: CommunicationsEndpoint) -> None:
        self._client = client
        self._endpoint = endpoint

    @property
    def configured(self) -> bool:
        return bool(self._endpoint.url)

    async def close(self) -> None:
        await self._client.aclose()

    def ensure_configured(self) -> str:
        if not self._endpoint.url:
            raise ConfigurationError("Communications function URL is not configured")
        return self._endpoint.url

    def _params(self) -> dict[str, str]:
        if not self._endpoint.key:
            return {}
        return {"code": self._endpoint.key}

    async def send(self, request: NotificationRequest) -> DispatchResult:
        url = self.ensure_configured()
        category = request.category.value
        start = perf_counter()
        with dispatch_span("communications.send", **{"notification.category": category}) as span:
            try:
                response = await self._client.post(
                    url,
                    params=self._params(),
                    json=request.to_wire(),
                    headers=_JSON_HEADERS,
                )
            except httpx.HTTPError as exc:
                raise TransportError(str(exc) or exc.__class__.__name__) from exc
            finally:
                LEAD_NOTIFICATION_SEND_LATENCY_SECONDS.labels(category=category).observe(perf_counter() - start)
            span.set_attribute("http.status_code", response.status_code)
            return self._translate(response)

    @staticmethod
    def _translate(response: httpx.Response) -> DispatchResult:
        if not response.is_success:
            raise TransportError(
                f"Communications function request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        try:
            data: Any = response.json()
        except ValueError as exc:
            raise TransportError(
                "Communications function returned an unreadable response",
                status_code=response.status_code,
            ) from exc
        if not isinstance(data, dict) or not isinstance(data.get("ok"), bool):
            raise TransportError(
                "Communications function response is missing the acknowledgement flag",
                status_code=response.status_code,
            )
        if not data["ok"]:
            reason = data.get("error")
            raise RemoteRejection(str(reason) if reason else "Communications function rejected the notification")

        operation_id = data.get("operationId")
        if operation_id:
            return DispatchResult.delivered(
                f"Notification accepted (operation {operation_id})",
                operation_id=str(operation_id),
            )
        return DispatchResult.delivered("Notification accepted")

    async def health_check(self) -> dict[str, str]:
        """Probe connectivity to the function; the function has no health route of its own."""

        timestamp = datetime.now(timezone.utc).isoformat()
        if not self._endpoint.url:
            return {"status": "unconfigured", "timestamp": timestamp}
        try:
            response = await self._client.get(self._endpoint.url, params=self._params())
        except httpx.HTTPError:
            return {"status": "error", "timestamp": timestamp}
        return {
            "status": "healthy" if response.is_success else "unhealthy",
            "timestamp": timestamp,
        }
