"""
Поддельные провайдер вкладок, транспорт и часы для тестов.
"""

import asyncio
from typing import Any, Dict, List, Mapping, Optional

from fetcher_core.orchestrator.messaging import Transport
from fetcher_core.orchestrator.tabs import TabProvider

HANG = object()  # Ответ, который не приходит


class TransportFailure:
    """Ответ, при котором транспорт сообщает об ошибке через last_error."""

    def __init__(self, message: str):
        self.message = message


class FakeTabProvider(TabProvider):
    """Провайдер вкладок в памяти со счетчиками вызовов."""

    def __init__(
        self,
        ready: bool = True,
        fail_create: bool = False,
        fail_ready: bool = False,
        fail_remove: bool = False,
        tab_title: Optional[str] = None,
        active_tabs: Optional[List[Dict[str, Any]]] = None,
    ):
        self.ready = ready
        self.fail_create = fail_create
        self.fail_ready = fail_ready
        self.fail_remove = fail_remove
        self.tab_title = tab_title
        self.active_tabs = active_tabs or []
        self.created: List[str] = []
        self.removed: List[str] = []

    async def create(self, url: str, active: bool = False) -> str:
        if self.fail_create:
            raise RuntimeError("browser crashed")
        native = f"native_{len(self.created) + 1}"
        self.created.append(native)
        return native

    async def wait_ready(self, native: str, timeout: float) -> bool:
        if self.fail_ready:
            raise RuntimeError("no such window")
        return self.ready

    async def remove(self, native: str) -> None:
        self.removed.append(native)
        if self.fail_remove:
            raise RuntimeError("tab already closed")

    async def query(self, filter: Mapping[str, Any]) -> List[Dict[str, Any]]:
        return list(self.active_tabs)

    async def describe(self, native: str) -> Dict[str, Any]:
        return {"title": self.tab_title} if self.tab_title else {}


class FakeTransport(Transport):
    """
    Транспорт с заранее заданными ответами на getPageInfo.

    Элементы responses: словарь, None, исключение, HANG или TransportFailure.
    Последний ответ повторяется, когда список исчерпан.
    """

    def __init__(self, responses: Optional[List[Any]] = None, pong: bool = True):
        self.responses = list(responses or [])
        self.pong = pong
        self.messages: List[Mapping[str, Any]] = []
        self._error: Optional[str] = None

    @property
    def page_info_calls(self) -> int:
        return sum(1 for m in self.messages if m.get("action") == "getPageInfo")

    async def send(self, target: Any, message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        self._error = None
        self.messages.append(dict(message))

        if message.get("action") == "ping":
            return {"pong": True} if self.pong else None

        index = min(self.page_info_calls - 1, len(self.responses) - 1)
        response = self.responses[index] if self.responses else None

        if response is HANG:
            await asyncio.sleep(10)
            return None
        if isinstance(response, TransportFailure):
            self._error = response.message
            return None
        if isinstance(response, Exception):
            raise response
        return response

    def last_error(self) -> Optional[str]:
        return self._error


class FakeClock:
    """Управляемые часы для кэша."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
