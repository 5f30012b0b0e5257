# metrics.py - Prometheus counters and latency histograms for table operations

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import Counter, Histogram

operation_count = Counter(
    "semvec_operations_total", "Vector table operations", ["operation", "status"]
)
operation_latency = Histogram(
    "semvec_operation_latency_seconds", "Vector table operation latency", ["operation"]
)


@contextmanager
def observe_operation(operation: str) -> Iterator[None]:
    """Count ``operation`` and record its latency; failures are counted as ``error``."""
    start = time.perf_counter()
    try:
        yield
    except Exception:
        operation_count.labels(operation=operation, status="error").inc()
        raise
    else:
        operation_count.labels(operation=operation, status="ok").inc()
    finally:
        operation_latency.labels(operation=operation).observe(time.perf_counter() - start)
