"""
Сборщик метрик производительности получения данных страниц.

Хранит тайминги операций, счетчики событий и измерения; используется
PageInfoFetcher.measure_async.
"""

import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class MetricType(Enum):
    """Типы собираемых метрик."""

    TIMING = "timing"
    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass
class Metric:
    """Одно измерение."""

    name: str
    type: MetricType
    value: Any
    tags: Dict[str, str] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "value": self.value,
            "tags": self.tags,
            "iso_timestamp": datetime.fromtimestamp(self.timestamp).isoformat(),
        }


@dataclass
class TimingStats:
    """Статистика времени выполнения."""

    count: int = 0
    total: float = 0.0
    min: float = float("inf")
    max: float = 0.0

    @property
    def avg(self) -> float:
        return self.total / self.count if self.count else 0.0

    def update(self, duration: float) -> None:
        self.count += 1
        self.total += duration
        self.min = min(self.min, duration)
        self.max = max(self.max, duration)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "total": self.total,
            "min": self.min if self.count else 0.0,
            "max": self.max,
            "avg": self.avg,
        }


class MetricsCollector:
    """
    Сбор метрик.

    Поддерживает тайминги операций, счетчики событий и измерения значений.
    История отдельных измерений ограничена max_history записями.
    """

    def __init__(self, enabled: bool = True, max_history: int = 1000):
        """
        Args:
            enabled: Включен ли сбор метрик
            max_history: Сколько последних измерений хранить
        """
        self.enabled = enabled
        self.max_history = max_history
        self.metrics: List[Metric] = []
        self.timings: Dict[str, TimingStats] = defaultdict(TimingStats)
        self.counters: Dict[str, int] = defaultdict(int)
        self.gauges: Dict[str, float] = {}

    def _append(self, metric: Metric) -> None:
        self.metrics.append(metric)
        if len(self.metrics) > self.max_history:
            del self.metrics[: len(self.metrics) - self.max_history]

    def timing(self, name: str, duration: float, tags: Optional[Dict[str, str]] = None):
        """
        Записывает время выполнения операции.

        Args:
            name: Название метрики
            duration: Время выполнения в секундах
            tags: Дополнительные теги
        """
        if not self.enabled:
            return
        self.timings[name].update(duration)
        self._append(Metric(name, MetricType.TIMING, duration, dict(tags or {})))

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        """Увеличивает счетчик."""
        if not self.enabled:
            return
        self.counters[name] += value
        self._append(Metric(name, MetricType.COUNTER, value, dict(tags or {})))

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        """Устанавливает значение измерения."""
        if not self.enabled:
            return
        self.gauges[name] = value
        self._append(Metric(name, MetricType.GAUGE, value, dict(tags or {})))

    def get_summary(self) -> Dict[str, Any]:
        """
        Возвращает сводку всех метрик.

        Returns:
            Словарь со сводкой метрик
        """
        return {
            "timestamp": datetime.now().isoformat(),
            "timings": {name: stats.to_dict() for name, stats in self.timings.items()},
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "total_metrics": len(self.metrics),
        }

    def get_metrics(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        metrics_list = [metric.to_dict() for metric in self.metrics]
        if limit and limit > 0:
            return metrics_list[-limit:]
        return metrics_list

    def clear(self):
        """Очищает все собранные метрики."""
        self.metrics.clear()
        self.timings.clear()
        self.counters.clear()
        self.gauges.clear()

    def save_to_file(self, filepath: str):
        """Сохраняет сводку и измерения в JSON файл."""
        data = {
            "summary": self.get_summary(),
            "metrics": self.get_metrics(),
            "export_timestamp": datetime.now().isoformat(),
        }
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(f"Метрики сохранены в {filepath}")
