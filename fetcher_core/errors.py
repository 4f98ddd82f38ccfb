"""
Иерархия исключений fetcher_core.

Фатальные ошибки (некорректный URL, сбой создания вкладки) прерывают
получение данных сразу. Ошибки канала сообщений не фатальны: их поглощает
цикл повторных попыток.
"""

from typing import Optional


class FetcherError(Exception):
    """Базовое исключение пакета."""


class InvalidUrlError(FetcherError):
    """URL пустой, некорректный или не http(s)."""

    def __init__(self, url: Optional[str], reason: str = "Некорректный URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url!r}")


class TabCreationError(FetcherError):
    """Провайдер не смог создать вкладку."""


class TabLoadTimeout(FetcherError):
    """Вкладка не сообщила о готовности за отведенное время."""

    def __init__(self, url: str, timeout: float):
        self.url = url
        self.timeout = timeout
        super().__init__(f"Страница {url} не загрузилась за {timeout:.1f}с")


class ChannelError(FetcherError):
    """Ошибка транспорта при доставке сообщения во вкладку."""


class ChannelTimeoutError(ChannelError):
    """Ответ на сообщение не получен за отведенное время."""

    def __init__(self, action: str, timeout: float):
        self.action = action
        self.timeout = timeout
        super().__init__(f"Нет ответа на '{action}' за {timeout:.1f}с")
