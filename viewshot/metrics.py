"""Prometheus metrics for capture requests, sessions, and page diagnostics."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram, start_http_server

LOGGER = logging.getLogger(__name__)

_DURATION_BUCKETS = (0.5, 1, 2, 5, 10, 20, 30, 60, 120)

CAPTURE_REQUESTS_TOTAL = Counter(
    "viewshot_capture_requests_total",
    "Screenshot requests by outcome",
    labelnames=("outcome",),
)
CAPTURE_DURATION_SECONDS = Histogram(
    "viewshot_capture_duration_seconds",
    "Wall time of a full screenshot request",
    buckets=_DURATION_BUCKETS,
)
VIEWPORT_DURATION_SECONDS = Histogram(
    "viewshot_viewport_duration_seconds",
    "Wall time of one viewport pipeline (navigation through capture)",
    buckets=_DURATION_BUCKETS,
)
VIEWPORTS_CAPTURED_TOTAL = Counter(
    "viewshot_viewports_captured_total",
    "Viewport images rendered, split by whether they were clipped",
    labelnames=("clipped",),
)
BROWSER_LAUNCHES_TOTAL = Counter(
    "viewshot_browser_launches_total",
    "Browser processes launched by the pool",
    labelnames=("persistent",),
)
SESSION_EVICTIONS_TOTAL = Counter(
    "viewshot_session_evictions_total",
    "Disconnected browser handles evicted from the pool",
)
COOKIE_FAILURES_TOTAL = Counter(
    "viewshot_cookie_failures_total",
    "Cookies that could not be set and were skipped",
)
DIAGNOSTIC_RECORDS_TOTAL = Counter(
    "viewshot_diagnostic_records_total",
    "Page diagnostics collected during captures",
    labelnames=("type", "level"),
)

_EXPORTER_STARTED = False


def record_capture_result(*, success: bool, duration_seconds: float) -> None:
    outcome = "success" if success else "failure"
    CAPTURE_REQUESTS_TOTAL.labels(outcome=outcome).inc()
    CAPTURE_DURATION_SECONDS.observe(max(duration_seconds, 0.0))


def record_viewport(*, clipped: bool, duration_seconds: float) -> None:
    VIEWPORTS_CAPTURED_TOTAL.labels(clipped=str(clipped).lower()).inc()
    VIEWPORT_DURATION_SECONDS.observe(max(duration_seconds, 0.0))


def record_browser_launch(*, persistent: bool) -> None:
    BROWSER_LAUNCHES_TOTAL.labels(persistent=str(persistent).lower()).inc()


def record_session_eviction() -> None:
    SESSION_EVICTIONS_TOTAL.inc()


def record_cookie_failure() -> None:
    COOKIE_FAILURES_TOTAL.inc()


def record_diagnostic(record_type: str, level: str) -> None:
    DIAGNOSTIC_RECORDS_TOTAL.labels(type=record_type, level=level).inc()


def start_exporter(port: int) -> bool:
    """Expose metrics on ``port``; returns False when disabled or already running."""

    global _EXPORTER_STARTED
    if _EXPORTER_STARTED or port <= 0:
        return False
    try:
        start_http_server(port)
    except OSError as exc:  # pragma: no cover - system dependent
        LOGGER.warning("Prometheus exporter failed to bind on port %s: %s", port, exc)
        return False
    _EXPORTER_STARTED = True
    LOGGER.info("Prometheus exporter listening on port %s", port)
    return True
