"""Operator diagnostics; mounted only outside production when enabled."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from australis.common.config import ServiceSettings

from ..dependencies import get_dispatch_client, get_settings
from ..dispatch import NotificationDispatchClient

router = APIRouter(prefix="/debug", tags=["debug"])

_SECRET_SETTINGS = ("communications_function_key", "geoservices_function_key")
_VISIBLE_SETTINGS = (
    "communications_function_url",
    "geoservices_function_url",
    "recaptcha_site_key",
    "environment",
    "challenge_bypass",
)


@router.get("/config")
async def config_report(settings: ServiceSettings = Depends(get_settings)) -> dict[str, Any]:
    """Report which settings are present without echoing secrets."""

    values: dict[str, Any] = {}
    for name in _VISIBLE_SETTINGS:
        value = getattr(settings, name)
        values[name] = value if value not in (None, "") else "[MISSING]"
    for name in _SECRET_SETTINGS:
        values[name] = "[SET]" if getattr(settings, name) else "[MISSING]"
    return {"settings": values, "missing": settings.missing_required_settings()}


@router.get("/dispatch")
async def dispatch_report(
    request: Request,
    client: NotificationDispatchClient = Depends(get_dispatch_client),
) -> dict[str, Any]:
    recorder = getattr(request.app.state, "exhausted_recorder", None)
    recent = [envelope for _, envelope in recorder.events] if recorder is not None else []
    return {
        "inFlight": client.scheduler.in_flight,
        "successCount": client.success_count,
        "recentExhausted": recent,
    }
