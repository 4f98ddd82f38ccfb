from .collector import MetricsCollector, Metric, MetricType, TimingStats

__all__ = ["MetricsCollector", "Metric", "MetricType", "TimingStats"]
