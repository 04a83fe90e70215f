from fastapi import APIRouter, Depends, status

from ..dependencies import get_dispatch_client
from ..dispatch import NotificationDispatchClient
from ..schemas import CommunicationsHealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def healthcheck() -> dict[str, str]:
    """Return a simple health status payload."""

    return {"status": "ok"}


@router.get("/communications/health", response_model=CommunicationsHealthResponse)
async def communications_health(
    client: NotificationDispatchClient = Depends(get_dispatch_client),
) -> CommunicationsHealthResponse:
    return CommunicationsHealthResponse(**await client.transport.health_check())
