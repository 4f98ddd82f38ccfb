"""
Кэш с TTL и ограничением размера.

Используется для маркеров троттлинга, мемоизации результатов
и предзагруженных страниц. Записи вытесняются по истечении TTL,
а при переполнении - по наименьшему количеству обращений.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Union

from ..config.base import CacheConfig

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CacheEntry:
    """Запись кэша."""

    key: Hashable
    value: Any
    created_at: float
    expires_at: float
    hits: int = 0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    """Статистика кэша."""

    size: int
    total_hits: int
    expired: int  # Истекшие, но еще не удаленные записи
    hit_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "total_hits": self.total_hits,
            "expired": self.expired,
            "hit_rate": self.hit_rate,
        }


class CacheStore:
    """
    Кэш ключ-значение с TTL и вытеснением по частоте обращений.

    Поддерживает:
    1. TTL для каждой записи
    2. Жесткий лимит размера с синхронной очисткой при вставке
    3. Вытеснение наименее используемых записей сверх мягкого лимита
    4. Периодическую фоновую очистку (start/stop)
    5. Отложенные вызовы по ключу (debounce), отменяемые в stop()
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Инициализация кэша.

        Args:
            config: Параметры кэша
            clock: Источник времени в секундах (подменяется в тестах)
        """
        self.config = config or CacheConfig()
        if self.config.soft_cap > self.config.hard_cap:
            raise ValueError("soft_cap не может превышать hard_cap")

        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._sweep_task: Optional[asyncio.Task] = None
        self._timers: Dict[Hashable, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """
        Сохранить значение.

        Args:
            key: Ключ
            value: Значение
            ttl: Время жизни в секундах (по умолчанию из конфигурации)
        """
        if ttl is None:
            ttl = self.config.default_ttl

        now = self._clock()
        self._entries[key] = CacheEntry(
            key=key, value=value, created_at=now, expires_at=now + ttl
        )

        if len(self._entries) > self.config.hard_cap:
            self.cleanup()

    def get(self, key: Hashable, default: Any = None) -> Any:
        """
        Получить значение и увеличить счетчик обращений.

        Истекшая запись удаляется, возвращается default.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default

        if entry.is_expired(self._clock()):
            del self._entries[key]
            return default

        entry.hits += 1
        return entry.value

    def has(self, key: Hashable) -> bool:
        """Проверить наличие неистекшей записи (без учета обращения)."""
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def delete(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """
        Очистка кэша.

        Сначала удаляются истекшие записи. Если размер все еще больше
        мягкого лимита, удаляются evict_batch записей с наименьшим
        количеством обращений (при равенстве - в порядке вставки).

        Returns:
            Количество удаленных записей
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

        evicted = []
        if len(self._entries) > self.config.soft_cap:
            # sorted() стабилен: при равных hits сохраняется порядок вставки
            candidates = sorted(self._entries.values(), key=lambda entry: entry.hits)
            evicted = [entry.key for entry in candidates[: self.config.evict_batch]]
            for key in evicted:
                del self._entries[key]

        removed = len(expired) + len(evicted)
        if removed:
            logger.debug(
                f"Очистка кэша: истекших {len(expired)}, вытеснено {len(evicted)}, "
                f"осталось {len(self._entries)}"
            )
        return removed

    def stats(self) -> CacheStats:
        """Статистика кэша."""
        now = self._clock()
        total_hits = 0
        expired = 0
        for entry in self._entries.values():
            total_hits += entry.hits
            if entry.is_expired(now):
                expired += 1

        size = len(self._entries)
        return CacheStats(
            size=size,
            total_hits=total_hits,
            expired=expired,
            hit_rate=total_hits / max(size, 1),
        )

    async def throttle(
        self,
        key: Hashable,
        func: Callable[[], Union[Any, Awaitable[Any]]],
        limit: Optional[float] = None,
    ) -> Any:
        """
        Выполнить func не чаще одного раза за limit секунд для ключа.

        Returns:
            Результат func или None, если вызов подавлен
        """
        if limit is None:
            limit = self.config.throttle_limit

        marker_key = f"throttle_{key}"
        now = self._clock()
        last_call = self.get(marker_key)

        if last_call is not None and now - last_call < limit:
            logger.debug(f"Вызов {key} подавлен троттлингом")
            return None

        if limit > 0:
            self.set(marker_key, now, limit)

        result = func()
        if inspect.isawaitable(result):
            result = await result
        return result

    def memoize(
        self, key: Hashable, factory: Callable[[], Any], ttl: Optional[float] = None
    ) -> Any:
        """Вернуть значение из кэша или вычислить и сохранить его."""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = factory()
            self.set(key, value, ttl)
        return value

    def debounce(
        self,
        key: Hashable,
        func: Callable[[], Union[Any, Awaitable[Any]]],
        delay: Optional[float] = None,
    ) -> None:
        """
        Вызвать func через delay секунд после последнего обращения с этим ключом.

        Повторный вызов отменяет ожидающий и запускает отсчет заново.
        Нужен работающий event loop.
        """
        if delay is None:
            delay = self.config.debounce_delay

        pending = self._timers.pop(key, None)
        if pending is not None:
            pending.cancel()

        loop = asyncio.get_running_loop()
        self._timers[key] = loop.call_later(delay, self._fire, key, func)

    @property
    def pending_calls(self) -> int:
        return len(self._timers)

    def _fire(self, key: Hashable, func: Callable[[], Any]) -> None:
        self._timers.pop(key, None)
        try:
            result = func()
        except Exception as e:
            logger.error(f"Ошибка отложенного вызова {key}: {e}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            task.add_done_callback(lambda t: self._report(key, t))

    @staticmethod
    def _report(key: Hashable, task: "asyncio.Future[Any]") -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Ошибка отложенного вызова {key}: {task.exception()}")

    # Периодическая очистка

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Запустить периодическую очистку (нужен работающий event loop)."""
        if self.is_sweeping:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.debug(
            f"Фоновая очистка кэша запущена, интервал {self.config.sweep_interval}с"
        )

    async def stop(self) -> None:
        """Остановить периодическую очистку и отменить отложенные вызовы."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None
        logger.debug("Фоновая очистка кэша остановлена")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.sweep_interval)
            try:
                self.cleanup()
            except Exception as e:
                logger.error(f"Ошибка фоновой очистки кэша: {e}")
