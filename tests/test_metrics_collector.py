"""
Тесты сборщика метрик.
"""

import json

from fetcher_core.metrics.collector import MetricsCollector


class TestMetricsCollector:
    """Тесты MetricsCollector."""

    def test_timing_stats(self):
        collector = MetricsCollector()
        collector.timing("fetch", 0.2)
        collector.timing("fetch", 0.4)

        stats = collector.get_summary()["timings"]["fetch"]
        assert stats["count"] == 2
        assert stats["min"] == 0.2
        assert stats["max"] == 0.4
        assert abs(stats["avg"] - 0.3) < 1e-9

    def test_counters_and_gauges(self):
        collector = MetricsCollector()
        collector.increment("calls")
        collector.increment("calls", 2)
        collector.gauge("open_tabs", 3)

        summary = collector.get_summary()
        assert summary["counters"] == {"calls": 3}
        assert summary["gauges"] == {"open_tabs": 3}
        assert summary["total_metrics"] == 3

    def test_disabled(self):
        collector = MetricsCollector(enabled=False)
        collector.timing("fetch", 1.0)
        collector.increment("calls")

        assert collector.get_summary()["total_metrics"] == 0

    def test_history_limited(self):
        collector = MetricsCollector(max_history=5)
        for i in range(10):
            collector.increment("calls")

        assert len(collector.get_metrics()) == 5
        assert len(collector.get_metrics(limit=2)) == 2
        assert collector.counters["calls"] == 10

    def test_save_to_file(self, tmp_path):
        collector = MetricsCollector()
        collector.timing("fetch", 0.1, tags={"url": "https://a.example.com"})
        path = tmp_path / "metrics.json"

        collector.save_to_file(str(path))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["timings"]["fetch"]["count"] == 1
        assert data["metrics"][0]["tags"] == {"url": "https://a.example.com"}

    def test_clear(self):
        collector = MetricsCollector()
        collector.increment("calls")
        collector.clear()
        assert collector.get_summary()["counters"] == {}
