"""
Браузер на базе Selenium: менеджер драйвера, провайдер вкладок и транспорт.

Все обращения к WebDriver блокирующие, поэтому выполняются в пуле потоков
и сериализуются блокировкой потоков: драйвер в каждый момент работает
только с одной вкладкой, даже если ожидающая корутина уже отменена.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from selenium.common.exceptions import TimeoutException, WebDriverException

from ..config.base import DriverSettings
from ..extraction.page import PageResponder
from .messaging import Transport
from .tabs import TabProvider

logger = logging.getLogger(__name__)

READY_POLL_INTERVAL = 0.25


@dataclass
class PageSnapshot:
    """Состояние вкладки в момент обращения."""

    html: str
    url: str
    title: str
    ready: bool


class DriverManager:
    """Создает один Chrome драйвер по требованию и закрывает его."""

    def __init__(self, settings: Optional[DriverSettings] = None):
        self.settings = settings or DriverSettings()
        self._driver = None
        self._lock = asyncio.Lock()
        self._stats = {"created": 0, "cleaned": 0}

    async def get_driver(self) -> Any:
        """Вернуть драйвер, создав его при первом обращении."""
        async with self._lock:
            if self._driver is None:
                loop = asyncio.get_running_loop()
                self._driver = await loop.run_in_executor(None, self._create_chrome_driver)
                self._stats["created"] += 1
            return self._driver

    async def cleanup(self) -> None:
        """Закрыть драйвер."""
        async with self._lock:
            if self._driver is None:
                return
            driver, self._driver = self._driver, None
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, driver.quit)
                logger.debug("Драйвер закрыт")
            except Exception as e:
                logger.error(f"Ошибка при закрытии драйвера: {e}")
            self._stats["cleaned"] += 1

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            "active": self._driver is not None,
            "config": {
                "headless": self.settings.headless,
                "page_load_strategy": self.settings.page_load_strategy,
            },
        }

    def _create_chrome_driver(self) -> Any:
        """Создание Chrome драйвера."""
        import undetected_chromedriver as uc

        options = uc.ChromeOptions()

        if self.settings.headless:
            options.add_argument("--headless=new")

        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--no-sandbox")
        if self.settings.user_agent:
            options.add_argument(f"--user-agent={self.settings.user_agent}")

        options.set_capability("pageLoadStrategy", self.settings.page_load_strategy)

        driver = uc.Chrome(options=options)

        driver.set_page_load_timeout(self.settings.page_load_timeout)
        driver.set_script_timeout(self.settings.page_load_timeout)
        driver.implicitly_wait(0)
        driver.set_window_size(*self.settings.window_size)

        # Скрытие WebDriver
        driver.execute_script(
            "Object.defineProperty(navigator, 'webdriver', {get: () => undefined})"
        )

        logger.debug("Chrome драйвер создан")
        return driver


class SeleniumTabProvider(TabProvider):
    """Вкладки Chrome через window handles WebDriver."""

    def __init__(self, manager: DriverManager):
        self.manager = manager
        self._lock = threading.Lock()

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        driver = await self.manager.get_driver()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._locked, func, driver, *args)

    def _locked(self, func: Callable[..., Any], driver: Any, *args: Any) -> Any:
        # Блокировка держится до конца вызова в потоке, а не до отмены корутины
        with self._lock:
            return func(driver, *args)

    async def create(self, url: str, active: bool = False) -> str:
        return await self._run(self._open_tab, url, active)

    async def wait_ready(self, native: str, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            try:
                if await self._run(self._is_ready, native):
                    return True
            except WebDriverException as e:
                logger.debug(f"Проверка загрузки вкладки не удалась: {e}")
                return False
            await asyncio.sleep(READY_POLL_INTERVAL)
        return False

    async def remove(self, native: str) -> None:
        await self._run(self._close_tab, native)

    async def query(self, filter: Mapping[str, Any]) -> List[Dict[str, Any]]:
        tabs = await self._run(self._list_tabs)
        if filter.get("active"):
            return [tab for tab in tabs if tab["active"]]
        return tabs

    async def describe(self, native: str) -> Dict[str, Any]:
        snapshot = await self.snapshot(native)
        return {"url": snapshot.url, "title": snapshot.title}

    async def snapshot(self, native: str) -> PageSnapshot:
        """HTML, url, title и готовность вкладки."""
        return await self._run(self._snapshot, native)

    # Блокирующие операции (выполняются в пуле потоков)

    @staticmethod
    def _open_tab(driver: Any, url: str, active: bool) -> str:
        previous = driver.current_window_handle if driver.window_handles else None
        driver.switch_to.new_window("tab")
        handle = driver.current_window_handle
        try:
            driver.get(url)
        except TimeoutException:
            # Загрузка продолжается, готовность проверяется отдельно
            logger.debug(f"driver.get({url}) превысил page_load_timeout")
        except WebDriverException:
            SeleniumTabProvider._close_tab(driver, handle)
            if previous and previous in driver.window_handles:
                driver.switch_to.window(previous)
            raise
        if not active and previous and previous in driver.window_handles:
            driver.switch_to.window(previous)
        return handle

    @staticmethod
    def _is_ready(driver: Any, native: str) -> bool:
        driver.switch_to.window(native)
        return driver.execute_script("return document.readyState") == "complete"

    @staticmethod
    def _close_tab(driver: Any, native: str) -> None:
        if native not in driver.window_handles:
            return
        driver.switch_to.window(native)
        driver.close()
        remaining = driver.window_handles
        if remaining:
            driver.switch_to.window(remaining[0])

    @staticmethod
    def _list_tabs(driver: Any) -> List[Dict[str, Any]]:
        try:
            current = driver.current_window_handle
        except WebDriverException:
            current = None
        tabs = []
        for handle in driver.window_handles:
            driver.switch_to.window(handle)
            tabs.append(
                {
                    "native": handle,
                    "url": driver.current_url,
                    "title": driver.title,
                    "active": handle == current,
                }
            )
        if current:
            driver.switch_to.window(current)
        return tabs

    @staticmethod
    def _snapshot(driver: Any, native: str) -> PageSnapshot:
        driver.switch_to.window(native)
        ready = driver.execute_script("return document.readyState") == "complete"
        return PageSnapshot(
            html=driver.page_source,
            url=driver.current_url,
            title=driver.title,
            ready=ready,
        )


class SeleniumTransport(Transport):
    """Передает сообщения ответчику, работающему по HTML вкладки."""

    def __init__(self, provider: SeleniumTabProvider, responder: Optional[PageResponder] = None):
        self.provider = provider
        self.responder = responder or PageResponder()
        self._last_error: Optional[str] = None

    async def send(self, target: Any, message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        self._last_error = None
        try:
            snapshot = await self.provider.snapshot(target.native)
        except WebDriverException as e:
            self._last_error = f"Вкладка недоступна: {e.msg or e}"
            return None

        return self.responder.handle(
            message,
            html=snapshot.html,
            url=snapshot.url,
            ready=snapshot.ready,
            title=snapshot.title,
        )

    def last_error(self) -> Optional[str]:
        return self._last_error


def create_browser(
    settings: Optional[DriverSettings] = None, responder: Optional[PageResponder] = None
) -> Tuple[DriverManager, SeleniumTabProvider, SeleniumTransport]:
    """Собрать менеджер драйвера, провайдер вкладок и транспорт."""
    manager = DriverManager(settings)
    provider = SeleniumTabProvider(manager)
    return manager, provider, SeleniumTransport(provider, responder)
