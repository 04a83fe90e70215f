"""Operator-facing events for notification dispatch."""

from __future__ import annotations

from typing import Any

from australis.common.events import EventBus

from .models import NotificationRequest

NOTIFICATION_DELIVERED_TOPIC = "leads.notification.delivered.v1"
NOTIFICATION_EXHAUSTED_TOPIC = "leads.notification.exhausted.v1"


def mask_email(email: str) -> str:
    if "@" not in email:
        return email
    name, domain = email.split("@", 1)
    if len(name) <= 2:
        masked_name = name[0] + "*"
    else:
        masked_name = name[0] + "*" * (len(name) - 2) + name[-1]
    return f"{masked_name}@{domain}"


class DispatchEventPublisher:
    """Publishes delivery outcomes of background (optimistic) dispatches."""

    def __init__(self, bus: EventBus | None) -> None:
        self._bus = bus

    async def _emit(self, topic: str, payload: dict[str, Any]) -> None:
        if self._bus is None:
            return
        await self._bus.publish(topic, payload)

    async def notification_delivered(
        self,
        request: NotificationRequest,
        *,
        attempts: int,
        operation_id: str | None,
    ) -> None:
        await self._emit(
            NOTIFICATION_DELIVERED_TOPIC,
            {
                "notification": self._serialize(request),
                "attempts": attempts,
                "operationId": operation_id,
            },
        )

    async def notification_exhausted(
        self,
        request: NotificationRequest,
        *,
        attempts: int,
        error: str,
        error_kind: str,
    ) -> None:
        await self._emit(
            NOTIFICATION_EXHAUSTED_TOPIC,
            {
                "notification": self._serialize(request),
                "attempts": attempts,
                "error": error,
                "errorKind": error_kind,
            },
        )

    @staticmethod
    def _serialize(request: NotificationRequest) -> dict[str, Any]:
        return {
            "category": request.category.value,
            "subject": request.subject,
            "email": mask_email(request.email),
            "hasChallengeToken": request.challenge_token is not None,
        }
