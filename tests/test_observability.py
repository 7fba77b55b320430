"""Tests for the metrics collector."""

from observability import Metrics


class TestMetrics:
    def test_counters_and_gauges(self):
        m = Metrics()
        m.counter("publications_posted")
        m.counter("publications_posted", 2)
        m.gauge("available_capacity", 42)

        summary = m.summary()
        assert summary["counters"] == {"publications_posted": 3}
        assert summary["gauges"] == {"available_capacity": 42}

    def test_timer(self):
        m = Metrics()
        with m.timer("request"):
            pass
        assert m.summary()["timers"]["request"]["count"] == 1
