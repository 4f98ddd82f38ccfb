"""
Основной оркестратор получения названия и цены страницы.

Связывает контроллер вкладок, канал сообщений, планировщик попыток,
кэш и сборщик метрик. Использование:

    async with PageInfoFetcher(config) as fetcher:
        info = await fetcher.fetch_page_info("https://example.com/item")
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import aiohttp

from ..cache.store import CacheStore
from ..config.base import NOT_FOUND_PRICE, NOT_FOUND_TITLE, FetcherEnvConfig
from ..extraction.page import ACTION_GET_PAGE_INFO, PageResponder
from ..extraction.price import PriceExtractor
from ..extraction.validation import sanitize_product, validate_url
from ..metrics.collector import MetricsCollector
from .drivers import DriverManager, create_browser
from .messaging import MessageChannel, Transport
from .retry import RetryConfig, RetryScheduler, is_page_info_complete
from .tabs import TabHandle, TabProvider, TabSessionController, TabStatus

logger = logging.getLogger(__name__)

PRELOAD_TIMEOUT = 15


class PageInfoFetcher:
    """
    Получение названия и цены страницы через вкладку браузера.

    Владеет ресурсами (драйвер, вкладки, фоновая очистка кэша), поэтому
    используется как асинхронный контекстный менеджер или через start()/close().
    """

    def __init__(
        self,
        config: Optional[FetcherEnvConfig] = None,
        provider: Optional[TabProvider] = None,
        transport: Optional[Transport] = None,
        cache: Optional[CacheStore] = None,
        metrics: Optional[MetricsCollector] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Args:
            config: Конфигурация окружения
            provider: Провайдер вкладок (по умолчанию Chrome через Selenium)
            transport: Транспорт сообщений (по умолчанию ответчик по HTML вкладки)
            cache: Кэш для троттлинга и предзагрузки
            metrics: Сборщик метрик
            sleep: Функция ожидания между попытками
        """
        self.config = config or FetcherEnvConfig()
        self.extractor = PriceExtractor(max_depth=self.config.structured_max_depth)

        self._driver_manager: Optional[DriverManager] = None
        if (provider is None) != (transport is None):
            raise ValueError("provider и transport передаются только вместе")
        if provider is None:
            self._driver_manager, provider, transport = create_browser(
                self.config.driver, PageResponder(self.extractor)
            )

        timing = self.config.timing
        self.tabs = TabSessionController(provider, timing.page_timeout)
        self.channel = MessageChannel(transport, timing.message_timeout)
        self.scheduler = RetryScheduler(RetryConfig.from_timing(timing), sleep=sleep)
        self.cache = cache or CacheStore(self.config.cache)
        self.metrics = metrics or MetricsCollector(enabled=self.config.enable_metrics)
        self._started = False

    async def start(self) -> "PageInfoFetcher":
        """Запуск фоновой очистки кэша."""
        if not self._started:
            self.cache.start()
            self._started = True
            logger.debug("PageInfoFetcher запущен")
        return self

    async def close(self) -> None:
        """Закрыть вкладки, драйвер и остановить очистку кэша."""
        await self.cache.stop()
        await self.tabs.close_all()
        if self._driver_manager is not None:
            await self._driver_manager.cleanup()
        self.cache.clear()
        self._started = False
        logger.debug("PageInfoFetcher остановлен")

    async def __aenter__(self) -> "PageInfoFetcher":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch_page_info(self, url: str) -> Dict[str, str]:
        """
        Открыть url в фоновой вкладке и получить название и цену.

        Вкладка закрывается при любом исходе.

        Returns:
            Словарь с ключами title, price, url

        Raises:
            InvalidUrlError: URL некорректен (вкладка не создается)
            TabCreationError: Провайдер не открыл вкладку
            TabLoadTimeout: Страница не загрузилась
        """
        url = validate_url(url)
        self.metrics.increment("fetch_page_info.calls")
        return await self.measure_async("fetch_page_info", self._fetch(url))

    async def _fetch(self, url: str) -> Dict[str, str]:
        async with self.tabs.session(url) as handle:
            return await self._collect(handle)

    async def get_current_tab_info(self) -> Dict[str, str]:
        """
        Название и цена активной вкладки пользователя (вкладка не закрывается).

        Raises:
            TabCreationError: Активной вкладки нет
        """
        self.metrics.increment("get_current_tab_info.calls")
        async with self.tabs.attach_current() as handle:
            return await self.measure_async("get_current_tab_info", self._collect(handle))

    async def throttled_fetch(self, url: str, limit: Optional[float] = None) -> Optional[Dict[str, str]]:
        """fetch_page_info не чаще одного раза за limit секунд для url. None, если подавлено."""
        return await self.cache.throttle(
            f"fetch_{url}", lambda: self.fetch_page_info(url), limit
        )

    async def _collect(self, handle: TabHandle) -> Dict[str, str]:
        handle.transition(TabStatus.MESSAGING)
        timing = self.config.timing

        if timing.responder_wait > 0:
            ready = await self.channel.wait_until_ready(
                handle, timing.responder_wait, timing.ping_interval
            )
            if not ready:
                logger.debug(f"Вкладка {handle.tab_id} не ответила на ping, продолжаем опрос")

        result = await self.scheduler.run(
            lambda: self.channel.send(handle, {"action": ACTION_GET_PAGE_INFO}),
            is_page_info_complete,
            fallback={"title": handle.title, "url": handle.url},
        )
        return self._finalize(result, handle)

    def _finalize(self, result: Any, handle: TabHandle) -> Dict[str, str]:
        def text(name: str) -> Optional[str]:
            value = result.get(name) if isinstance(result, Mapping) else getattr(result, name, None)
            return value.strip() if isinstance(value, str) and value.strip() else None

        info = {
            "title": text("title") or handle.title or NOT_FOUND_TITLE,
            "price": text("price") or NOT_FOUND_PRICE,
            "url": text("url") or handle.url,
        }
        if info["price"] == NOT_FOUND_PRICE:
            self.metrics.increment("page_info.price_not_found")
        logger.info(f"Страница {info['url']}: '{info['title']}' - {info['price']}")
        return info

    def extract_price(self, text: Optional[str]) -> Optional[str]:
        """Цена из произвольного текста или None."""
        return self.extractor.extract_from_text(text)

    @staticmethod
    def sanitize_product(record: Any) -> Optional[Dict[str, str]]:
        """Очищенная запись товара или None."""
        return sanitize_product(record)

    async def measure_async(self, name: str, awaitable: Awaitable[Any]) -> Any:
        """
        Выполнить awaitable и записать время выполнения в метрики.

        Время записывается и при исключении.
        """
        start = time.perf_counter()
        try:
            return await awaitable
        finally:
            duration = time.perf_counter() - start
            self.metrics.timing(name, duration)
            logger.debug(f"Производительность: {name} заняло {duration * 1000:.2f}мс")

    async def preload(self, url: str) -> Optional[str]:
        """
        Загрузить HTML страницы заранее через HTTP.

        Задача загрузки запоминается в кэше на preload_ttl, так что
        повторные вызовы используют тот же результат.

        Returns:
            HTML страницы или None при ошибке
        """
        url = validate_url(url)
        key = f"preload_{url}"
        task = self.cache.memoize(
            key,
            lambda: asyncio.ensure_future(self._download(url)),
            ttl=self.config.cache.preload_ttl,
        )
        html = await task
        if html is None:
            self.cache.delete(key)
        return html

    async def _download(self, url: str) -> Optional[str]:
        headers = {}
        if self.config.driver.user_agent:
            headers["User-Agent"] = self.config.driver.user_agent
        try:
            async with aiohttp.ClientSession(headers=headers) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=PRELOAD_TIMEOUT)
                ) as response:
                    response.raise_for_status()
                    return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Не удалось предзагрузить {url}: {e}")
            return None

    def get_stats(self) -> Dict[str, Any]:
        stats = {
            "tabs": self.tabs.get_stats(),
            "retry": self.scheduler.get_stats(),
            "cache": self.cache.stats().to_dict(),
            "metrics": self.metrics.get_summary(),
        }
        if self._driver_manager is not None:
            stats["driver"] = self._driver_manager.get_stats()
        return stats
