"""Metric definitions for the realtime gateway and mail delivery."""

from __future__ import annotations

from .registry import registry

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Count of realtime socket events handled, by event name and outcome.",
    label_names=("event", "outcome"),
)

realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of websocket connections currently open.",
)

mail_delivery_failures_total = registry.counter(
    "mail_delivery_failures_total",
    "Number of outgoing emails that could not be delivered.",
    label_names=("kind",),
)
