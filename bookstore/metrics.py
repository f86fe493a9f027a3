"""Prometheus counters for authentication outcomes."""

from __future__ import annotations

from prometheus_client import Counter

AUTH_EVENTS = Counter(
    "bookstore_auth_events_total",
    "Authentication workflow outcomes by event and result.",
    ["event", "outcome"],
)


def record_auth_event(event: str, outcome: str) -> None:
    AUTH_EVENTS.labels(event=event, outcome=outcome).inc()
