"""Prometheus metrics for the lead service."""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Gauge, Histogram

# Delivery attempts ------------------------------------------------------------------------
LEAD_NOTIFICATION_ATTEMPTS_TOTAL: Final = Counter(
    "lead_notification_attempts_total",
    "Delivery attempts made against the communications function.",
    labelnames=("category", "mode"),
)

LEAD_NOTIFICATION_SENT_TOTAL: Final = Counter(
    "lead_notification_sent_total",
    "Notifications acknowledged by the communications function.",
    labelnames=("category", "mode"),
)

LEAD_NOTIFICATION_FAILURE_TOTAL: Final = Counter(
    "lead_notification_failure_total",
    "Failed delivery attempts by failure kind.",
    labelnames=("category", "kind"),
)

LEAD_NOTIFICATION_SEND_LATENCY_SECONDS: Final = Histogram(
    "lead_notification_send_latency_seconds",
    "Round trip time of a single communications function call.",
    labelnames=("category",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)

# Optimistic dispatch ----------------------------------------------------------------------
LEAD_NOTIFICATION_RETRY_SCHEDULED_TOTAL: Final = Counter(
    "lead_notification_retry_scheduled_total",
    "Retries scheduled for optimistic deliveries.",
    labelnames=("category",),
)

LEAD_NOTIFICATION_RETRY_EXHAUSTED_TOTAL: Final = Counter(
    "lead_notification_retry_exhausted_total",
    "Optimistic deliveries dropped after exhausting every retry.",
    labelnames=("category",),
)

LEAD_NOTIFICATION_IN_FLIGHT: Final = Gauge(
    "lead_notification_in_flight",
    "Optimistic deliveries currently running or waiting to retry.",
)

LEAD_NOTIFICATION_REJECTED_TOTAL: Final = Counter(
    "lead_notification_rejected_total",
    "Submissions refused before any network call.",
    labelnames=("category", "kind"),
)

# Geoservices proxy ------------------------------------------------------------------------
GEO_REQUESTS_TOTAL: Final = Counter(
    "geo_requests_total",
    "Calls made to the geoservices function by operation and outcome.",
    labelnames=("operation", "outcome"),
)


def normalise_category(value: str | None) -> str:
    if not value:
        return "unknown"
    return value.strip().lower() or "unknown"
