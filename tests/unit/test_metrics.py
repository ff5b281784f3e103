"""Unit tests for observability.metrics: counters, gauges, timers, Prometheus mirror."""

from __future__ import annotations

import threading

import pytest

from marketplace_catalog.observability.metrics import MetricsCollector


class TestCounters:
    def test_increment_and_read(self, metrics):
        metrics.increment("product.added")
        metrics.increment("product.added")
        assert metrics.get_counter("product.added") == 2
        assert metrics.get_counter("never") == 0

    def test_concurrent_increments(self, metrics):
        def bump() -> None:
            for _ in range(500):
                metrics.increment("login.success")

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert metrics.get_counter("login.success") == 2000

    def test_gauge_overwrites(self, metrics):
        metrics.set_gauge("product.count", 3)
        metrics.set_gauge("product.count", 1)
        assert metrics.get_gauge("product.count") == 1


class TestTimers:
    def test_stop_timer_records_sample(self, metrics):
        start = metrics.start_timer()
        duration = metrics.stop_timer("login", start)

        assert duration >= 0
        assert metrics.get_op_count("login") == 1
        assert metrics.get_average_millis("login") >= 0

    def test_timer_records_on_exception(self, metrics):
        with pytest.raises(RuntimeError):
            with metrics.timer("findByBrand"):
                raise RuntimeError("boom")
        assert metrics.get_op_count("findByBrand") == 1

    def test_average_of_unknown_operation_is_zero(self, metrics):
        assert metrics.get_average_millis("never") == 0.0


class TestSnapshot:
    def test_snapshot_contents(self, metrics):
        metrics.increment("register.success")
        metrics.set_gauge("product.count", 2)
        with metrics.timer("register"):
            pass

        snap = metrics.snapshot()

        assert snap.counters == {"register.success": 1}
        assert snap.gauges == {"product.count": 2}
        assert snap.operations["register"].count == 1

    def test_snapshot_is_detached(self, metrics):
        snap = metrics.snapshot()
        metrics.increment("later")
        assert "later" not in snap.counters


class TestPrometheusMirror:
    def test_samples_reach_registry(self, metrics):
        metrics.increment("product.added")
        metrics.set_gauge("product.count", 5)
        with metrics.timer("login"):
            pass

        registry = metrics.registry
        assert registry.get_sample_value(
            "catalog_events_total", {"name": "product.added"}
        ) == 1.0
        assert registry.get_sample_value("catalog_gauge", {"name": "product.count"}) == 5.0
        assert registry.get_sample_value(
            "catalog_operation_seconds_count", {"operation": "login"}
        ) == 1.0

    def test_collectors_do_not_share_registries(self):
        first = MetricsCollector()
        second = MetricsCollector()
        first.increment("x")
        assert second.registry.get_sample_value("catalog_events_total", {"name": "x"}) is None
