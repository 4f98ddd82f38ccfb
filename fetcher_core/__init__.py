"""
fetcher_core - получение названия и цены товара со страницы.

Страница открывается в фоновой вкладке браузера, ответчик страницы
извлекает название и цену, а планировщик повторяет опрос, пока страница
не догрузит динамическое содержимое.
"""

__version__ = "1.0.0"

from .errors import (
    FetcherError,
    InvalidUrlError,
    TabCreationError,
    TabLoadTimeout,
    ChannelError,
    ChannelTimeoutError,
)
from .config import FetcherEnvConfig, ConfigLoader
from .cache import CacheStore
from .extraction import PriceExtractor, extract_price, sanitize_product
from .orchestrator import PageInfoFetcher, PriceTracker

__all__ = [
    "FetcherError",
    "InvalidUrlError",
    "TabCreationError",
    "TabLoadTimeout",
    "ChannelError",
    "ChannelTimeoutError",
    "FetcherEnvConfig",
    "ConfigLoader",
    "CacheStore",
    "PriceExtractor",
    "extract_price",
    "sanitize_product",
    "PageInfoFetcher",
    "PriceTracker",
]
