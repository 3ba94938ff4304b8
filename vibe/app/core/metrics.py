"""Prometheus metric helpers."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "vibe_requests_total",
    "HTTP requests processed by the relay",
    ("method", "path", "status"),
)

REQUEST_LATENCY = Histogram(
    "vibe_request_latency_seconds",
    "Latency of HTTP requests processed by the relay",
    ("method", "path"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

GIF_RELAY_RESULTS = Counter(
    "vibe_gif_relay_results_total",
    "Outcomes of GIF provider calls forwarded by the relay",
    ("kind", "outcome"),
)


def record_request(method: str, path: str, status_code: int, duration: float) -> None:
    """Record counters and histograms for a processed HTTP request."""

    REQUEST_COUNT.labels(method, path, str(status_code)).inc()
    REQUEST_LATENCY.labels(method, path).observe(duration)


def record_relay_result(kind: str, outcome: str) -> None:
    """Increment the relay results counter for a search or trending call."""

    GIF_RELAY_RESULTS.labels(kind, outcome).inc()
