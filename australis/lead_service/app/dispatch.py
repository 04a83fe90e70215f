"""Notification dispatch: synchronous sends and optimistic sends with retry.

Optimistic dispatch answers the caller as soon as the submission passes local
checks and delivers in a background task. Failed deliveries are retried with
exponential backoff; once retries run out the caller is never told, but the
failure is logged, counted and published for operators.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Coroutine, Mapping

import httpx

from australis.common.config import ServiceSettings
from australis.common.events import EventBus

from .challenge import ChallengeTokenProvider
from .errors import RETRYABLE_ERRORS, DispatchError
from .events import DispatchEventPublisher
from .metrics import (
    LEAD_NOTIFICATION_ATTEMPTS_TOTAL,
    LEAD_NOTIFICATION_FAILURE_TOTAL,
    LEAD_NOTIFICATION_IN_FLIGHT,
    LEAD_NOTIFICATION_REJECTED_TOTAL,
    LEAD_NOTIFICATION_RETRY_EXHAUSTED_TOTAL,
    LEAD_NOTIFICATION_RETRY_SCHEDULED_TOTAL,
    LEAD_NOTIFICATION_SENT_TOTAL,
    normalise_category,
)
from .models import DispatchResult, NotificationCategory, NotificationRequest
from .templates import build_request
from .transport import CommunicationsTransport

_LOGGER = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

QUEUED_MESSAGE = "Notification queued for delivery"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    base_delay: float = 2.0
    max_retries: int = 3

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (starting at 1)."""

        return self.base_delay * 2 ** (retry - 1)


class RetryScheduler:
    """Tracks background delivery tasks in a bounded in-flight set."""

    def __init__(self, *, max_in_flight: int = 100) -> None:
        self._max_in_flight = max(max_in_flight, 1)
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def has_capacity(self) -> bool:
        return len(self._tasks) < self._max_in_flight

    def schedule(self, coro: Coroutine[Any, Any, None], *, name: str | None = None) -> asyncio.Task[None]:
        if not self.has_capacity():
            coro.close()
            raise RuntimeError("retry scheduler is at capacity")
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        LEAD_NOTIFICATION_IN_FLIGHT.set(len(self._tasks))
        task.add_done_callback(self._discard)
        return task

    def _discard(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        LEAD_NOTIFICATION_IN_FLIGHT.set(len(self._tasks))
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _LOGGER.error(
                "Background notification task crashed",
                exc_info=exc,
                extra={"task": task.get_name()},
            )

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for in-flight deliveries; return how many are still pending."""

        if not self._tasks:
            return 0
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        return len(pending)

    async def abandon(self) -> int:
        """Cancel every in-flight delivery and wait for the cancellations to land."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return len(tasks)

    async def shutdown(self, grace_seconds: float) -> None:
        pending = await self.drain(timeout=grace_seconds)
        if pending:
            abandoned = await self.abandon()
            _LOGGER.warning(
                "Abandoned optimistic notifications at shutdown",
                extra={"abandoned": abandoned, "grace_seconds": grace_seconds},
            )


def _category_label(category: NotificationCategory | str) -> str:
    if isinstance(category, NotificationCategory):
        return category.value
    return normalise_category(str(category))


class NotificationDispatchClient:
    """Builds lead notifications and hands them to the communications transport."""

    def __init__(
        self,
        transport: CommunicationsTransport,
        *,
        scheduler: RetryScheduler | None = None,
        policy: RetryPolicy | None = None,
        publisher: DispatchEventPublisher | None = None,
        recipient: str | None = None,
        challenge_provider: ChallengeTokenProvider | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.scheduler = scheduler or RetryScheduler()
        self.policy = policy or RetryPolicy()
        self._publisher = publisher or DispatchEventPublisher(None)
        self._recipient = recipient
        self._challenge_provider = challenge_provider
        self._sleep = sleep
        # Advisory only; concurrent completions may race.
        self.success_count = 0

    async def _challenge_token(self, category: NotificationCategory | str, challenge_token: str | None) -> str | None:
        if challenge_token is not None or self._challenge_provider is None:
            return challenge_token
        action = category.value if isinstance(category, NotificationCategory) else str(category)
        return await self._challenge_provider.obtain_token(action)

    async def _build(
        self,
        category: NotificationCategory | str,
        fields: Mapping[str, Any],
        challenge_token: str | None,
    ) -> NotificationRequest:
        token = await self._challenge_token(category, challenge_token)
        return build_request(category, fields, challenge_token=token, to=self._recipient)

    async def send_notification(
        self,
        category: NotificationCategory | str,
        fields: Mapping[str, Any],
        challenge_token: str | None = None,
    ) -> DispatchResult:
        """Send once and report the first outcome, success or failure."""

        label = _category_label(category)
        try:
            request = await self._build(category, fields, challenge_token)
            label = request.category.value
            self.transport.ensure_configured()
        except DispatchError as exc:
            return self._rejected(label, exc)

        LEAD_NOTIFICATION_ATTEMPTS_TOTAL.labels(category=label, mode="sync").inc()
        try:
            result = await self.transport.send(request)
        except DispatchError as exc:
            LEAD_NOTIFICATION_FAILURE_TOTAL.labels(category=label, kind=exc.kind).inc()
            _LOGGER.warning(
                "Notification delivery failed",
                extra={"notification_category": label, "error_kind": exc.kind, "error": str(exc)},
            )
            return DispatchResult.failed(str(exc), kind=exc.kind)
        self._record_success(label, mode="sync")
        return result

    async def send_notification_optimistic(
        self,
        category: NotificationCategory | str,
        fields: Mapping[str, Any],
        challenge_token: str | None = None,
    ) -> DispatchResult:
        """Report success once local checks pass and deliver in the background.

        When the scheduler is full the first attempt runs inline; a retry is
        handed to the scheduler if it has room by then, otherwise the
        delivery counts as exhausted.
        """

        label = _category_label(category)
        try:
            request = await self._build(category, fields, challenge_token)
            label = request.category.value
            self.transport.ensure_configured()
        except DispatchError as exc:
            return self._rejected(label, exc)

        if self.scheduler.has_capacity():
            self.scheduler.schedule(self.deliver_with_retries(request), name=f"notify-{label}")
        else:
            _LOGGER.warning(
                "Optimistic dispatch is at capacity; attempting once inline",
                extra={"notification_category": label, "in_flight": self.scheduler.in_flight},
            )
            await self._deliver_inline(request)
        return DispatchResult.delivered(QUEUED_MESSAGE)

    async def deliver_with_retries(self, request: NotificationRequest, *, first_attempt: int = 1) -> None:
        attempt = first_attempt
        while True:
            error = await self._attempt(request, attempt)
            if error is None:
                return
            await self._sleep(self._retry_delay(request, attempt, error))
            attempt += 1

    async def _deliver_inline(self, request: NotificationRequest) -> None:
        error = await self._attempt(request, 1)
        if error is None:
            return
        if not self.scheduler.has_capacity():
            await self._exhausted(request, attempts=1, error=error)
            return
        delay = self._retry_delay(request, 1, error)
        self.scheduler.schedule(self._resume(request, delay), name=f"notify-{request.category.value}")

    async def _resume(self, request: NotificationRequest, delay: float) -> None:
        await self._sleep(delay)
        await self.deliver_with_retries(request, first_attempt=2)

    async def _attempt(self, request: NotificationRequest, attempt: int) -> DispatchError | None:
        """Make one delivery attempt.

        Returns the error when another attempt should follow, ``None`` once
        the delivery has succeeded or been given up.
        """

        label = request.category.value
        LEAD_NOTIFICATION_ATTEMPTS_TOTAL.labels(category=label, mode="optimistic").inc()
        try:
            result = await self.transport.send(request)
        except RETRYABLE_ERRORS as exc:
            LEAD_NOTIFICATION_FAILURE_TOTAL.labels(category=label, kind=exc.kind).inc()
            if attempt >= self.policy.max_attempts:
                await self._exhausted(request, attempts=attempt, error=exc)
                return None
            return exc
        except DispatchError as exc:
            # Configuration went away between acceptance and delivery; not retryable.
            await self._exhausted(request, attempts=attempt, error=exc)
            return None

        self._record_success(label, mode="optimistic")
        _LOGGER.info(
            "Notification delivered",
            extra={"notification_category": label, "attempts": attempt, "operation_id": result.operation_id},
        )
        await self._publisher.notification_delivered(
            request,
            attempts=attempt,
            operation_id=result.operation_id,
        )
        return None

    def _retry_delay(self, request: NotificationRequest, attempt: int, error: DispatchError) -> float:
        label = request.category.value
        delay = self.policy.delay_for(attempt)
        _LOGGER.warning(
            "Notification delivery attempt failed; retrying",
            extra={
                "notification_category": label,
                "attempt": attempt,
                "retry_in_seconds": delay,
                "error": str(error),
            },
        )
        LEAD_NOTIFICATION_RETRY_SCHEDULED_TOTAL.labels(category=label).inc()
        return delay

    async def _exhausted(self, request: NotificationRequest, *, attempts: int, error: DispatchError) -> None:
        label = request.category.value
        LEAD_NOTIFICATION_RETRY_EXHAUSTED_TOTAL.labels(category=label).inc()
        _LOGGER.error(
            "Notification delivery gave up",
            extra={
                "notification_category": label,
                "attempts": attempts,
                "error_kind": error.kind,
                "error": str(error),
            },
        )
        await self._publisher.notification_exhausted(
            request,
            attempts=attempts,
            error=str(error),
            error_kind=error.kind,
        )

    def _rejected(self, label: str, exc: DispatchError) -> DispatchResult:
        LEAD_NOTIFICATION_REJECTED_TOTAL.labels(category=label, kind=exc.kind).inc()
        _LOGGER.info(
            "Notification refused before sending",
            extra={"notification_category": label, "error_kind": exc.kind, "error": str(exc)},
        )
        return DispatchResult.failed(str(exc), kind=exc.kind)

    def _record_success(self, label: str, *, mode: str) -> None:
        self.success_count += 1
        LEAD_NOTIFICATION_SENT_TOTAL.labels(category=label, mode=mode).inc()


def create_dispatch_client(
    settings: ServiceSettings,
    *,
    http_client: httpx.AsyncClient,
    event_bus: EventBus | None = None,
    challenge_provider: ChallengeTokenProvider | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> NotificationDispatchClient:
    """Wire a dispatch client from settings."""

    transport = CommunicationsTransport(client=http_client, endpoint=settings.communications_endpoint())
    return NotificationDispatchClient(
        transport,
        scheduler=RetryScheduler(max_in_flight=settings.dispatch_max_in_flight),
        policy=RetryPolicy(
            base_delay=settings.dispatch_retry_base_delay_seconds,
            max_retries=settings.dispatch_max_retries,
        ),
        publisher=DispatchEventPublisher(event_bus),
        recipient=settings.notification_recipient,
        challenge_provider=challenge_provider,
        sleep=sleep,
    )
