"""
Канал сообщений между контроллером и ответчиком вкладки.

Каждое сообщение ограничено таймаутом. Отсутствие ответа (None или пустой
словарь) возвращается как маркер NO_PAYLOAD, а не как ошибка: решение
о повторе принимает планировщик попыток.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Union

from ..errors import ChannelError, ChannelTimeoutError

logger = logging.getLogger(__name__)


class _NoPayload:
    """Маркер пустого ответа."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_PAYLOAD"


NO_PAYLOAD = _NoPayload()

Response = Union[Dict[str, Any], _NoPayload]


class Transport(ABC):
    """Доставка сообщения во вкладку."""

    @abstractmethod
    async def send(self, target: Any, message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Отправить сообщение и дождаться ответа.

        Args:
            target: Вкладка-получатель (TabHandle)
            message: Сообщение вида {"action": ...}

        Returns:
            Ответ или None, если ответа нет
        """
        pass

    @abstractmethod
    def last_error(self) -> Optional[str]:
        """Ошибка последней доставки, проверяется после каждого send."""
        pass


class MessageChannel:
    """Отправка сообщений с таймаутом поверх Transport."""

    def __init__(self, transport: Transport, timeout: float = 5.0):
        self.transport = transport
        self.timeout = timeout

    async def send(
        self,
        target: Any,
        message: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> Response:
        """
        Отправить сообщение во вкладку.

        Args:
            target: Вкладка-получатель
            message: Сообщение
            timeout: Таймаут ответа (по умолчанию из конструктора)

        Returns:
            Ответ вкладки или NO_PAYLOAD

        Raises:
            ChannelTimeoutError: Ответ не получен вовремя
            ChannelError: Транспорт сообщил об ошибке
        """
        timeout = self.timeout if timeout is None else timeout
        action = str(message.get("action", "unknown"))

        try:
            response = await asyncio.wait_for(
                self.transport.send(target, message), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.debug(f"Таймаут сообщения '{action}' ({timeout}с)")
            raise ChannelTimeoutError(action, timeout)
        except ChannelError:
            raise
        except Exception as e:
            raise ChannelError(f"Ошибка доставки '{action}': {e}") from e

        error = self.transport.last_error()
        if error:
            logger.debug(f"Ошибка канала для '{action}': {error}")
            raise ChannelError(error)

        if response is None or (isinstance(response, Mapping) and not response):
            return NO_PAYLOAD
        return response

    async def ping(self, target: Any, timeout: Optional[float] = None) -> bool:
        """Проверить, отвечает ли вкладка на ping."""
        try:
            response = await self.send(target, {"action": "ping"}, timeout)
        except ChannelError:
            return False
        return isinstance(response, Mapping) and response.get("pong") is True

    async def wait_until_ready(
        self, target: Any, budget: float, interval: float = 0.5
    ) -> bool:
        """
        Опрашивать вкладку ping, пока она не ответит или не истечет budget.

        Returns:
            True, если ответчик готов
        """
        if budget <= 0:
            return False

        deadline = time.monotonic() + budget
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            if await self.ping(target, timeout=min(self.timeout, remaining)):
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(interval, remaining))
