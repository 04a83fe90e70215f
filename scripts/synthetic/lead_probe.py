#!/usr/bin/env python3
"""Synthetic probe for the lead service.

Submits one form through the public API, measures latency and (optionally)
checks that the lead notification metrics moved the way a healthy delivery
should. Intended for scheduled synthetic checks against staging.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

import httpx
from prometheus_client.parser import text_string_to_metric_families

CATEGORY_LABEL = "category"

FORM_ROUTES: Mapping[str, str] = {
    "contact": "/forms/contact",
    "waiting-list": "/forms/waiting-list",
    "demo-request": "/forms/demo-request",
}


@dataclass(slots=True)
class MetricSample:
    name: str
    labels: Mapping[str, str]
    value: float


@dataclass(slots=True)
class MetricDelta:
    name: str
    labels: Mapping[str, str]
    before: float
    after: float

    @property
    def delta(self) -> float:
        return self.after - self.before


class ProbeError(RuntimeError):
    def __init__(self, message: str, *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = dict(context or {})


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synthetic probe for the lead service")
    parser.add_argument(
        "--base-url",
        default=os.getenv("LEAD_SERVICE_BASE_URL", "http://127.0.0.1:8000"),
        help="Base URL for the lead service (default: %(default)s or LEAD_SERVICE_BASE_URL)",
    )
    parser.add_argument(
        "--metrics-path",
        default=os.getenv("LEAD_SERVICE_METRICS_PATH", "/metrics"),
        help="Path to the Prometheus metrics endpoint (default: %(default)s)",
    )
    parser.add_argument("--skip-metrics", action="store_true", help="Skip verification of metric deltas")
    parser.add_argument(
        "--form",
        choices=sorted(FORM_ROUTES),
        default=os.getenv("LEAD_PROBE_FORM", "contact"),
        help="Form to submit (default: %(default)s or LEAD_PROBE_FORM)",
    )
    parser.add_argument(
        "--mode",
        choices=["sync", "optimistic"],
        default="sync",
        help="Delivery mode requested from the service (default: %(default)s)",
    )
    parser.add_argument(
        "--email",
        default=os.getenv("LEAD_PROBE_EMAIL", "synthetic@example.com"),
        help="Submitter email (default: %(default)s or LEAD_PROBE_EMAIL)",
    )
    parser.add_argument(
        "--settle-seconds",
        type=float,
        default=1.0,
        help="Wait before reading metrics after an optimistic submission (default: %(default)s)",
    )
    parser.add_argument("--request-timeout", type=float, default=10.0, help="HTTP timeout in seconds")
    parser.add_argument(
        "--max-submit-ms",
        type=float,
        default=float(os.getenv("LEAD_PROBE_MAX_SUBMIT_MS", "3000")),
        help="Maximum allowed submission latency in milliseconds (default: %(default)s)",
    )
    return parser.parse_args()


def parse_metrics(text: str) -> List[MetricSample]:
    return [
        MetricSample(name=sample.name, labels=dict(sample.labels), value=float(sample.value))
        for family in text_string_to_metric_families(text)
        for sample in family.samples
    ]


def find_metric_value(samples: Sequence[MetricSample], name: str, *, labels: Mapping[str, str]) -> float:
    total = 0.0
    for sample in samples:
        if sample.name == name and all(sample.labels.get(key) == value for key, value in labels.items()):
            total += sample.value
    return total


async def fetch_metrics(client: httpx.AsyncClient, path: str) -> List[MetricSample]:
    response = await client.get(path)
    response.raise_for_status()
    return parse_metrics(response.text)


def build_payload(form: str, email: str) -> Dict[str, Any]:
    identifier = uuid.uuid4().hex[:8]
    if form == "contact":
        return {"name": f"Synthetic probe {identifier}", "email": email, "message": f"Synthetic lead {identifier}"}
    return {"email": email}


async def _submit(client: httpx.AsyncClient, form: str, mode: str, payload: Mapping[str, Any]) -> tuple[dict[str, Any], float]:
    start = time.monotonic()
    response = await client.post(FORM_ROUTES[form], params={"mode": mode}, json=payload)
    duration = (time.monotonic() - start) * 1000.0
    if response.status_code != 200:
        raise ProbeError(
            "Form submission was refused",
            context={"status_code": response.status_code, "body": response.text, "form": form},
        )
    data = response.json()
    if not data.get("success"):
        raise ProbeError("Form submission reported failure", context={"body": data, "form": form})
    return data, duration


async def run_probe(args: argparse.Namespace) -> Dict[str, Any]:
    async with httpx.AsyncClient(base_url=args.base_url, timeout=httpx.Timeout(args.request_timeout)) as client:
        metrics_before: Sequence[MetricSample] = ()
        if not args.skip_metrics:
            metrics_before = await fetch_metrics(client, args.metrics_path)

        data, submit_ms = await _submit(client, args.form, args.mode, build_payload(args.form, args.email))
        if submit_ms > args.max_submit_ms:
            raise ProbeError(
                "Form submission latency exceeded threshold",
                context={"submit_ms": round(submit_ms, 2), "threshold_ms": args.max_submit_ms},
            )

        metric_results: List[MetricDelta] = []
        if not args.skip_metrics:
            if args.mode == "optimistic":
                await asyncio.sleep(args.settle_seconds)
            metrics_after = await fetch_metrics(client, args.metrics_path)
            labels = {CATEGORY_LABEL: args.form, "mode": args.mode}
            for name, label_filter in (
                ("lead_notification_sent_total", labels),
                ("lead_notification_failure_total", {CATEGORY_LABEL: args.form}),
                ("lead_notification_retry_exhausted_total", {CATEGORY_LABEL: args.form}),
            ):
                metric_results.append(
                    MetricDelta(
                        name=name,
                        labels=dict(label_filter),
                        before=find_metric_value(metrics_before, name, labels=label_filter),
                        after=find_metric_value(metrics_after, name, labels=label_filter),
                    )
                )
            sent, failures, exhausted = metric_results
            if sent.delta < 1:
                raise ProbeError("lead_notification_sent_total did not increment", context={"delta": sent.delta})
            if failures.delta > 0 or exhausted.delta > 0:
                raise ProbeError(
                    "Delivery failures recorded during probe",
                    context={"failures": failures.delta, "exhausted": exhausted.delta},
                )

        return {
            "status": "ok",
            "form": args.form,
            "mode": args.mode,
            "response": data,
            "durationsMs": {"submit": round(submit_ms, 2)},
            "metrics": [
                {
                    "name": delta.name,
                    "labels": delta.labels,
                    "before": delta.before,
                    "after": delta.after,
                    "delta": delta.delta,
                }
                for delta in metric_results
            ],
        }


async def main_async() -> int:
    args = parse_args()
    try:
        result = await run_probe(args)
    except (ProbeError, httpx.HTTPError) as exc:
        context = exc.context if isinstance(exc, ProbeError) else {"exc_type": exc.__class__.__name__}
        print(json.dumps({"status": "error", "message": str(exc), "context": context}, indent=2, sort_keys=True))
        return 1
    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
