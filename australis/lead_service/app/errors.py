"""Failure taxonomy for notification dispatch."""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for every notification dispatch failure."""

    kind = "dispatch"


class ConfigurationError(DispatchError):
    """Raised when the communications endpoint is not configured."""

    kind = "configuration"


class ValidationError(DispatchError):
    """Raised when a notification fails local field or format checks."""

    kind = "validation"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class TransportError(DispatchError):
    """Raised on network failure, non-2xx status or an unreadable response."""

    kind = "transport"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteRejection(DispatchError):
    """Raised when the remote function answers with ``ok: false``."""

    kind = "remote_rejection"


RETRYABLE_ERRORS: tuple[type[DispatchError], ...] = (TransportError, RemoteRejection)
