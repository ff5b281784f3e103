"""Operational metrics: counters, gauges and operation timers.

:class:`MetricsCollector` keeps exact in-process values for display
(``snapshot()``) and mirrors every sample into its own Prometheus
``CollectorRegistry`` so the same numbers can be scraped.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)

from marketplace_catalog.core.models import MetricsSnapshot, OperationStats

_NS_PER_MS = 1_000_000


class MetricsCollector:
    """Thread-safe metrics sink used by the pipeline and auth service.

    Names are free-form dotted strings (``product.added``, ``login``); the
    Prometheus mirror carries them as a ``name`` / ``operation`` label.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._gauges: dict[str, float] = {}
        self._total_ns: dict[str, int] = {}
        self._op_count: dict[str, int] = {}

        self.registry = registry or CollectorRegistry()
        self._info = Info("catalog", "Catalog core information", registry=self.registry)
        self._prom_counter = Counter(
            "catalog_events_total",
            "Catalog event counters",
            ["name"],
            registry=self.registry,
        )
        self._prom_gauge = Gauge(
            "catalog_gauge",
            "Catalog gauges",
            ["name"],
            registry=self.registry,
        )
        self._prom_timer = Histogram(
            "catalog_operation_seconds",
            "Catalog operation duration",
            ["operation"],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
            registry=self.registry,
        )

    # ------------------------------------------------------------------
    # Counters / gauges
    # ------------------------------------------------------------------

    def increment(self, name: str) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + 1
        self._prom_counter.labels(name=name).inc()

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def set_gauge(self, name: str, value: float) -> None:
        with self._lock:
            self._gauges[name] = value
        self._prom_gauge.labels(name=name).set(value)

    def get_gauge(self, name: str) -> float:
        with self._lock:
            return self._gauges.get(name, 0)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def start_timer(self) -> int:
        return time.perf_counter_ns()

    def stop_timer(self, operation: str, start_ns: int) -> int:
        """Record one sample for *operation*; return its duration in ns."""
        duration = time.perf_counter_ns() - start_ns
        with self._lock:
            self._total_ns[operation] = self._total_ns.get(operation, 0) + duration
            self._op_count[operation] = self._op_count.get(operation, 0) + 1
        self._prom_timer.labels(operation=operation).observe(duration / 1e9)
        return duration

    @contextmanager
    def timer(self, operation: str) -> Iterator[None]:
        """Time the enclosed block; the sample is recorded even on error."""
        start = self.start_timer()
        try:
            yield
        finally:
            self.stop_timer(operation, start)

    def get_op_count(self, operation: str) -> int:
        with self._lock:
            return self._op_count.get(operation, 0)

    def get_average_millis(self, operation: str) -> float:
        with self._lock:
            count = self._op_count.get(operation, 0)
            if count == 0:
                return 0.0
            return self._total_ns[operation] / count / _NS_PER_MS

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            operations = {
                op: OperationStats(
                    count=count,
                    average_ms=self._total_ns[op] / count / _NS_PER_MS,
                )
                for op, count in self._op_count.items()
            }
            return MetricsSnapshot(
                counters=dict(self._counters),
                gauges=dict(self._gauges),
                operations=operations,
            )

    def start_server(self, port: int = 9090, backend: str = "unknown") -> None:
        """Start a Prometheus HTTP exporter for this collector in a background thread."""
        self._info.info({"version": "0.1.0", "backend": backend})
        start_http_server(port, registry=self.registry)
