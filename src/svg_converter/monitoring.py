"""Prometheus metrics for render and batch activity."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

RENDERS_TOTAL = Counter(
    "svg_renders_total",
    "Total number of single SVG renders attempted",
    labelnames=("status",),
)
RENDER_SECONDS = Histogram(
    "svg_render_seconds",
    "Wall-clock duration of a single SVG render",
)
BATCHES_TOTAL = Counter(
    "svg_batches_total",
    "Total number of batch conversions processed",
    labelnames=("status",),
)
BATCH_ITEMS_TOTAL = Counter(
    "svg_batch_items_total",
    "Batch items by outcome",
    labelnames=("status",),
)

_metrics_started = False


def ensure_metrics_server(port: int) -> None:
    global _metrics_started
    if _metrics_started:
        return
    start_http_server(port)
    _metrics_started = True
    logger.info("Prometheus metrics server started", extra={"port": port})


def record_render(status: str, duration_sec: float) -> None:
    RENDERS_TOTAL.labels(status=status).inc()
    RENDER_SECONDS.observe(duration_sec)


def record_batch(status: str, succeeded: int = 0, failed: int = 0) -> None:
    BATCHES_TOTAL.labels(status=status).inc()
    if succeeded:
        BATCH_ITEMS_TOTAL.labels(status="success").inc(succeeded)
    if failed:
        BATCH_ITEMS_TOTAL.labels(status="failure").inc(failed)
