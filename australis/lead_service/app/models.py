"""Value types passed between the request builder, transport and dispatcher."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class NotificationCategory(str, Enum):
    CONTACT = "contact"
    SUPPORT = "support"
    NEWSLETTER = "newsletter"
    EXPERT_PANEL = "expert-panel"
    WAITING_LIST = "waiting-list"
    DEMO_REQUEST = "demo-request"
    CTA = "cta"


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    name: str
    email: str
    subject: str
    body: str
    category: NotificationCategory
    challenge_token: str | None = None
    to: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON body expected by the communications function."""

        payload: dict[str, Any] = {
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.body,
            "type": self.category.value,
        }
        if self.to:
            payload["to"] = self.to
        if self.challenge_token:
            payload["recaptchaToken"] = self.challenge_token
        return payload


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome reported to form handlers."""

    success: bool
    message: str | None = None
    error: str | None = None
    operation_id: str | None = None
    error_kind: str | None = None

    @classmethod
    def delivered(cls, message: str | None = None, *, operation_id: str | None = None) -> "DispatchResult":
        return cls(success=True, message=message, operation_id=operation_id)

    @classmethod
    def failed(cls, error: str, *, kind: str) -> "DispatchResult":
        return cls(success=False, error=error, error_kind=kind)

    def as_response(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.message is not None:
            payload["message"] = self.message
        if self.error is not None:
            payload["error"] = self.error
        if self.operation_id is not None:
            payload["operationId"] = self.operation_id
        return payload
