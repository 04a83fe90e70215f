import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from australis.common import (
    DEFAULT_APP_NAME,
    EventBus,
    EventRecorder,
    ServiceSettings,
    build_app,
    configure_logging,
)

from .api.debug import router as debug_router
from .api.forms import router as forms_router
from .api.geo import router as geo_router
from .api.health import router as health_router
from .dispatch import NotificationDispatchClient, SleepFn, create_dispatch_client
from .events import NOTIFICATION_EXHAUSTED_TOPIC
from .geo import GeoServicesClient

SERVICE_NAME = "Lead Service"
RECENT_EXHAUSTED_LIMIT = 50

_LOGGER = logging.getLogger(__name__)


def _http_client(timeout: float | None, transport: httpx.AsyncBaseTransport | None) -> httpx.AsyncClient:
    if timeout is None:
        return httpx.AsyncClient(transport=transport)
    return httpx.AsyncClient(timeout=timeout, transport=transport)


def create_app(
    settings: ServiceSettings | None = None,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> FastAPI:
    """Create the Lead Service FastAPI application.

    ``http_transport`` replaces the network for outbound calls and ``sleep``
    replaces the retry delay; both exist for tests.
    """

    resolved_settings = settings or ServiceSettings()
    if resolved_settings.app_name == DEFAULT_APP_NAME:
        resolved_settings = resolved_settings.model_copy(update={"app_name": SERVICE_NAME})
    configure_logging(resolved_settings)
    for variable in resolved_settings.missing_required_settings():
        _LOGGER.warning(
            "Missing required environment variable; lead forms will not deliver until it is set",
            extra={"variable": variable},
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        event_bus = EventBus()
        exhausted_recorder = EventRecorder(event_bus, [NOTIFICATION_EXHAUSTED_TOPIC], maxlen=RECENT_EXHAUSTED_LIMIT)
        dispatch_client: NotificationDispatchClient | None = None
        geo_client: GeoServicesClient | None = None
        try:
            exhausted_recorder.start()
            dispatch_client = create_dispatch_client(
                resolved_settings,
                http_client=_http_client(resolved_settings.communications_timeout_seconds, http_transport),
                event_bus=event_bus,
                sleep=sleep,
            )
            geo_client = GeoServicesClient(
                client=_http_client(resolved_settings.geoservices_timeout_seconds, http_transport),
                base_url=resolved_settings.geoservices_function_url,
                function_key=resolved_settings.geoservices_function_key,
            )
            app.state.event_bus = event_bus
            app.state.exhausted_recorder = exhausted_recorder
            app.state.dispatch_client = dispatch_client
            app.state.geo_client = geo_client
            yield
        finally:
            app.state.dispatch_client = None
            app.state.geo_client = None
            app.state.exhausted_recorder = None
            app.state.event_bus = None
            if dispatch_client is not None:
                await dispatch_client.scheduler.shutdown(resolved_settings.dispatch_shutdown_grace_seconds)
                await dispatch_client.transport.close()
            if geo_client is not None:
                await geo_client.close()
            exhausted_recorder.stop()

    app = build_app(resolved_settings, lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(forms_router)
    app.include_router(geo_router)
    if resolved_settings.enable_debug_routes and not resolved_settings.is_production:
        app.include_router(debug_router)
    return app


app = create_app()
