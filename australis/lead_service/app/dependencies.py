"""Dependency helpers for the lead service."""

from __future__ import annotations

from typing import Any, cast

from fastapi import HTTPException, Request, status

from australis.common.config import ServiceSettings

from .dispatch import NotificationDispatchClient
from .geo import GeoServicesClient


def get_settings(request: Request) -> ServiceSettings:
    return cast(Any, request.app.state).settings


def get_dispatch_client(request: Request) -> NotificationDispatchClient:
    client = getattr(request.app.state, "dispatch_client", None)
    if client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="dispatch_unavailable")
    return client


def get_geo_client(request: Request) -> GeoServicesClient:
    client = getattr(request.app.state, "geo_client", None)
    if client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="geoservices_unavailable")
    return client
