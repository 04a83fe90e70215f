"""Pass-through routes to the geoservices function."""

from __future__ import annotations

from typing import Any, Awaitable

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_geo_client
from ..geo import GeoServicesClient, GeoServicesError, GeoServicesNotConfigured
from ..schemas import CalculationRequest, GeometryRequest

router = APIRouter(prefix="/geo", tags=["geo"])


async def _proxy(call: Awaitable[Any]) -> Any:
    try:
        return await call
    except GeoServicesNotConfigured as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except GeoServicesError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.post("/calculations", status_code=status.HTTP_202_ACCEPTED)
async def start_calculation(
    payload: CalculationRequest,
    client: GeoServicesClient = Depends(get_geo_client),
) -> Any:
    return await _proxy(client.start_calculation(payload.to_wire()))


@router.get("/calculations/{execution_id}")
async def get_calculation_status(
    execution_id: str,
    client: GeoServicesClient = Depends(get_geo_client),
) -> Any:
    return await _proxy(client.get_calculation_status(execution_id))


@router.get("/calculation-types")
async def list_calculation_types(client: GeoServicesClient = Depends(get_geo_client)) -> Any:
    return await _proxy(client.get_calculation_types())


@router.post("/validate-geometry")
async def validate_geometry(
    payload: GeometryRequest,
    client: GeoServicesClient = Depends(get_geo_client),
) -> Any:
    return await _proxy(client.validate_geometry(payload.geometry))


@router.post("/constraints")
async def get_constraints(
    payload: GeometryRequest,
    client: GeoServicesClient = Depends(get_geo_client),
) -> Any:
    return await _proxy(client.get_constraints(payload.geometry))


@router.get("/health")
async def geo_health(client: GeoServicesClient = Depends(get_geo_client)) -> Any:
    return await _proxy(client.health_check())
