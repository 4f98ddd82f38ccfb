"""
Жизненный цикл вкладки: создание, ожидание загрузки, закрытие.

Контроллер гарантирует, что каждая созданная им вкладка закрывается ровно
один раз, независимо от того, завершилась работа с ней успешно, по таймауту
или с ошибкой.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional

from ..errors import TabCreationError, TabLoadTimeout

logger = logging.getLogger(__name__)


class TabStatus(Enum):
    """Состояния вкладки."""

    CREATING = "creating"
    ACTIVE = "active"  # Загрузилась, готова к сообщениям
    MESSAGING = "messaging"
    CLOSING = "closing"
    CLOSED = "closed"


_TRANSITIONS = {
    TabStatus.CREATING: {TabStatus.ACTIVE, TabStatus.CLOSING},
    TabStatus.ACTIVE: {TabStatus.MESSAGING, TabStatus.CLOSING},
    TabStatus.MESSAGING: {TabStatus.CLOSING},
    TabStatus.CLOSING: {TabStatus.CLOSED},
    TabStatus.CLOSED: set(),
}


@dataclass
class TabHandle:
    """Вкладка, открытая для одного запроса."""

    tab_id: str
    url: str
    native: Any = None  # Идентификатор вкладки у провайдера
    status: TabStatus = TabStatus.CREATING
    title: Optional[str] = None
    owned: bool = True  # Закрывать ли вкладку при destroy
    created_at: datetime = field(default_factory=datetime.now)

    def transition(self, status: TabStatus) -> None:
        """
        Перевести вкладку в новое состояние.

        Raises:
            ValueError: Переход не допускается
        """
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(
                f"Недопустимый переход вкладки {self.tab_id}: "
                f"{self.status.value} -> {status.value}"
            )
        self.status = status

    @property
    def is_closed(self) -> bool:
        return self.status in (TabStatus.CLOSING, TabStatus.CLOSED)


class TabProvider(ABC):
    """Источник вкладок (браузер)."""

    @abstractmethod
    async def create(self, url: str, active: bool = False) -> Any:
        """
        Открыть вкладку с url.

        Returns:
            Идентификатор вкладки у провайдера
        """
        pass

    @abstractmethod
    async def wait_ready(self, native: Any, timeout: float) -> bool:
        """Дождаться полной загрузки вкладки. False, если не дождались."""
        pass

    @abstractmethod
    async def remove(self, native: Any) -> None:
        """Закрыть вкладку."""
        pass

    @abstractmethod
    async def query(self, filter: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Найти вкладки.

        Args:
            filter: Например {"active": True}

        Returns:
            Список словарей с ключами native, url, title
        """
        pass

    async def describe(self, native: Any) -> Dict[str, Any]:
        """Текущие url и title вкладки, если провайдер их знает."""
        return {}


class TabSessionController:
    """Создает и закрывает вкладки для запросов."""

    def __init__(self, provider: TabProvider, timeout: float = 15.0):
        """
        Args:
            provider: Провайдер вкладок
            timeout: Таймаут загрузки по умолчанию (секунды)
        """
        self.provider = provider
        self.timeout = timeout
        self._open: Dict[str, TabHandle] = {}
        self._counter = itertools.count(1)
        self._stats = {"created": 0, "destroyed": 0, "timeouts": 0, "errors": 0}

    @property
    def open_tabs(self) -> List[TabHandle]:
        return list(self._open.values())

    async def create(self, url: str, timeout: Optional[float] = None) -> TabHandle:
        """
        Открыть фоновую вкладку и дождаться ее загрузки.

        Raises:
            TabCreationError: Провайдер не открыл вкладку или не смог проверить ее загрузку
            TabLoadTimeout: Вкладка не загрузилась за timeout
        """
        timeout = self.timeout if timeout is None else timeout
        handle = TabHandle(tab_id=f"tab_{next(self._counter)}", url=url)

        try:
            handle.native = await self.provider.create(url, active=False)
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Не удалось создать вкладку для {url}: {e}")
            raise TabCreationError(f"Не удалось создать вкладку для {url}: {e}") from e

        self._open[handle.tab_id] = handle
        self._stats["created"] += 1
        logger.debug(f"Вкладка {handle.tab_id} создана для {url}")

        try:
            ready = await asyncio.wait_for(
                self.provider.wait_ready(handle.native, timeout), timeout=timeout
            )
        except asyncio.TimeoutError:
            ready = False
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Ошибка ожидания загрузки вкладки {handle.tab_id}: {e}")
            await self.destroy(handle)
            raise TabCreationError(f"Не удалось загрузить вкладку для {url}: {e}") from e
        except BaseException:
            await self.destroy(handle)
            raise

        if not ready:
            self._stats["timeouts"] += 1
            logger.warning(f"Вкладка {handle.tab_id} не загрузилась за {timeout}с")
            await self.destroy(handle)
            raise TabLoadTimeout(url, timeout)

        handle.transition(TabStatus.ACTIVE)
        await self._refresh(handle)
        return handle

    async def destroy(self, handle: TabHandle) -> None:
        """
        Закрыть вкладку. Повторный вызов ничего не делает.

        Ошибки провайдера логируются и не пробрасываются.
        """
        if handle.is_closed:
            return

        handle.transition(TabStatus.CLOSING)
        try:
            if handle.owned:
                await self.provider.remove(handle.native)
                self._stats["destroyed"] += 1
                logger.debug(f"Вкладка {handle.tab_id} закрыта")
        except Exception as e:
            logger.warning(f"Ошибка закрытия вкладки {handle.tab_id}: {e}")
        finally:
            handle.transition(TabStatus.CLOSED)
            self._open.pop(handle.tab_id, None)

    @asynccontextmanager
    async def session(
        self, url: str, timeout: Optional[float] = None
    ) -> AsyncIterator[TabHandle]:
        """Вкладка на время блока async with, закрывается при любом выходе."""
        handle = await self.create(url, timeout)
        try:
            yield handle
        finally:
            await self.destroy(handle)

    async def current(self) -> TabHandle:
        """
        Активная вкладка пользователя. Контроллер ее не закрывает.

        Raises:
            TabCreationError: Активной вкладки нет
        """
        try:
            tabs = await self.provider.query({"active": True})
        except Exception as e:
            raise TabCreationError(f"Не удалось получить активную вкладку: {e}") from e
        if not tabs:
            raise TabCreationError("Нет активной вкладки")

        info = tabs[0]
        handle = TabHandle(
            tab_id=f"current_{next(self._counter)}",
            url=info.get("url") or "",
            native=info.get("native"),
            status=TabStatus.ACTIVE,
            title=info.get("title"),
            owned=False,
        )
        self._open[handle.tab_id] = handle
        return handle

    @asynccontextmanager
    async def attach_current(self) -> AsyncIterator[TabHandle]:
        """Активная вкладка на время блока async with."""
        handle = await self.current()
        try:
            yield handle
        finally:
            await self.destroy(handle)

    async def close_all(self) -> None:
        """Закрыть все еще открытые вкладки."""
        for handle in list(self._open.values()):
            await self.destroy(handle)

    def get_stats(self) -> Dict[str, Any]:
        return {**self._stats, "open": len(self._open)}

    async def _refresh(self, handle: TabHandle) -> None:
        try:
            info = await self.provider.describe(handle.native)
        except Exception as e:
            logger.debug(f"Не удалось получить сведения о вкладке {handle.tab_id}: {e}")
            return
        handle.title = info.get("title") or handle.title
        handle.url = info.get("url") or handle.url
