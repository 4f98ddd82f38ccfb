"""
Планировщик повторных попыток получения данных страницы.

Попытки повторяются, пока ответ не пройдет проверку полноты или не
закончатся попытки. Задержка перед следующей попыткой берется из списка
задержек, а за его пределами растет экспоненциально. После последней
попытки задержки нет. Исчерпание попыток не является ошибкой: возвращается
лучший ответ с названием или результат, собранный из резервных данных.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from ..config.base import (
    LOADING_SENTINELS,
    NOT_FOUND_PRICE,
    NOT_FOUND_TITLE,
    TimingConfig,
)
from ..errors import ChannelError, ChannelTimeoutError
from .messaging import NO_PAYLOAD

logger = logging.getLogger(__name__)

_INCOMPLETE_PRICES = {
    value.strip().lower().rstrip(".")
    for value in (NOT_FOUND_PRICE, "loading", *LOADING_SENTINELS)
}


class AttemptOutcome(Enum):
    """Итог одной попытки."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"  # Ответ получен, но неполный
    ERRORED = "errored"
    TIMED_OUT = "timed_out"


@dataclass
class RetryAttempt:
    """Запись об одной попытке."""

    index: int
    outcome: AttemptOutcome
    delay: float = 0.0  # Задержка после попытки
    error: Optional[str] = None


@dataclass
class RetryConfig:
    """Конфигурация повторных попыток."""

    max_attempts: int = 4
    delays: List[float] = field(default_factory=lambda: [0.5, 2.0, 4.0, 6.0])
    base_delay: float = 0.5  # База экспоненты за пределами delays

    @classmethod
    def from_timing(cls, timing: TimingConfig) -> "RetryConfig":
        return cls(
            max_attempts=timing.max_retry_attempts,
            delays=list(timing.retry_delays),
            base_delay=timing.base_delay,
        )


@dataclass
class RetryStats:
    """Накопленная статистика планировщика."""

    runs: int = 0
    attempts: int = 0
    accepted: int = 0
    rejected: int = 0
    errored: int = 0
    timed_out: int = 0
    fallbacks: int = 0
    total_delay: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runs": self.runs,
            "attempts": self.attempts,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "errored": self.errored,
            "timed_out": self.timed_out,
            "fallbacks": self.fallbacks,
            "total_delay": round(self.total_delay, 3),
        }


def _field(response: Any, name: str) -> Any:
    if isinstance(response, Mapping):
        return response.get(name)
    return getattr(response, name, None)


def has_title(response: Any) -> bool:
    """Ответ содержит непустое название."""
    title = _field(response, "title")
    return isinstance(title, str) and bool(title.strip())


def is_page_info_complete(response: Any) -> bool:
    """
    Проверка полноты ответа getPageInfo.

    Ответ принимается, если цена - непустая строка и не является маркером
    "не найдено" или "загрузка" (без учета регистра и завершающих точек).
    """
    if response is None or response is NO_PAYLOAD:
        return False
    price = _field(response, "price")
    if not isinstance(price, str) or not price.strip():
        return False
    return price.strip().lower().rstrip(".") not in _INCOMPLETE_PRICES


class RetryScheduler:
    """Выполняет операцию до получения полного ответа."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            config: Конфигурация попыток
            sleep: Функция ожидания между попытками
        """
        self.config = config or RetryConfig()
        self._sleep = sleep
        self.stats = RetryStats()
        self.last_attempts: List[RetryAttempt] = []

    def delay_for(self, index: int, delays: Optional[Sequence[float]] = None) -> float:
        """Задержка после попытки с номером index (с нуля)."""
        delays = self.config.delays if delays is None else delays
        if index < len(delays):
            return float(delays[index])
        return self.config.base_delay * (2 ** index)

    async def run(
        self,
        operation: Callable[[], Awaitable[Any]],
        acceptance: Callable[[Any], bool] = is_page_info_complete,
        max_attempts: Optional[int] = None,
        delays: Optional[Sequence[float]] = None,
        fallback: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Выполнить operation с повторами.

        Args:
            operation: Асинхронная операция, возвращающая ответ
            acceptance: Проверка полноты ответа
            max_attempts: Количество попыток (по умолчанию из конфигурации)
            delays: Задержки между попытками
            fallback: Резервные title и url на случай, если ответов с названием нет

        Returns:
            Первый принятый ответ, последний ответ с названием или резервный результат
        """
        max_attempts = self.config.max_attempts if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError("max_attempts должен быть не меньше 1")

        self.stats.runs += 1
        self.last_attempts = []
        best = None

        for index in range(max_attempts):
            error = None
            try:
                response = await operation()
            except ChannelTimeoutError as e:
                outcome, error = AttemptOutcome.TIMED_OUT, str(e)
            except ChannelError as e:
                outcome, error = AttemptOutcome.ERRORED, str(e)
            else:
                if response is not NO_PAYLOAD and acceptance(response):
                    self._record(RetryAttempt(index, AttemptOutcome.ACCEPTED))
                    logger.debug(f"Ответ принят с попытки {index + 1}")
                    return response
                outcome = AttemptOutcome.REJECTED
                if response is not NO_PAYLOAD and has_title(response):
                    best = response

            is_last = index == max_attempts - 1
            delay = 0.0 if is_last else self.delay_for(index, delays)
            self._record(RetryAttempt(index, outcome, delay, error))
            logger.debug(
                f"Попытка {index + 1}/{max_attempts}: {outcome.value}"
                + (f" ({error})" if error else "")
            )
            if delay > 0:
                await self._sleep(delay)

        if best is not None:
            logger.info("Попытки исчерпаны, возвращается последний ответ с названием")
            return best

        self.stats.fallbacks += 1
        logger.info("Попытки исчерпаны, используется резервный результат")
        fallback = fallback or {}
        return {
            "title": fallback.get("title") or NOT_FOUND_TITLE,
            "price": NOT_FOUND_PRICE,
            "url": fallback.get("url") or "",
        }

    def _record(self, attempt: RetryAttempt) -> None:
        self.last_attempts.append(attempt)
        self.stats.attempts += 1
        self.stats.total_delay += attempt.delay
        if attempt.outcome == AttemptOutcome.ACCEPTED:
            self.stats.accepted += 1
        elif attempt.outcome == AttemptOutcome.REJECTED:
            self.stats.rejected += 1
        elif attempt.outcome == AttemptOutcome.ERRORED:
            self.stats.errored += 1
        else:
            self.stats.timed_out += 1

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.to_dict()
