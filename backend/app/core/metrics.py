"""Prometheus metrics: storage operation count by result, latency, signed-url mint."""
import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

OPERATION_COUNT = Counter(
    "storage_operations_total",
    "Storage operations",
    ["operation", "result"],  # ok | error
)
OPERATION_LATENCY = Histogram(
    "storage_operation_duration_seconds",
    "Storage operation latency",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
SIGNED_URL_MINT_TOTAL = Counter(
    "storage_signed_url_mint_total",
    "Signed URL mints",
    ["url_type"],
)


def record_operation(operation: str, ok: bool, latency_seconds: float) -> None:
    OPERATION_COUNT.labels(operation=operation, result="ok" if ok else "error").inc()
    OPERATION_LATENCY.labels(operation=operation).observe(latency_seconds)


@contextmanager
def track_operation(operation: str) -> Iterator[None]:
    """Record count and latency of the wrapped block; exceptions propagate."""
    start = time.perf_counter()
    ok = False
    try:
        yield
        ok = True
    finally:
        record_operation(operation, ok, time.perf_counter() - start)


def record_signed_url_mint(url_type: str) -> None:
    SIGNED_URL_MINT_TOTAL.labels(url_type=url_type).inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
