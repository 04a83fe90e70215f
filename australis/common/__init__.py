"""Shared utilities for Australis services."""

from .config import (
    DEFAULT_APP_NAME,
    CommunicationsEndpoint,
    ServiceSettings,
    get_settings,
)
from .events import EventBus, EventRecorder
from .instrumentation import build_app, instrument_app
from .logging import configure_logging

__all__ = [
    "ServiceSettings",
    "CommunicationsEndpoint",
    "get_settings",
    "build_app",
    "instrument_app",
    "configure_logging",
    "DEFAULT_APP_NAME",
    "EventBus",
    "EventRecorder",
]
