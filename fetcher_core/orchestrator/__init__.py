"""
Оркестрация получения данных страницы: вкладки, сообщения, повторные попытки.
"""

from .messaging import NO_PAYLOAD, MessageChannel, Transport
from .tabs import TabHandle, TabProvider, TabSessionController, TabStatus
from .retry import (
    AttemptOutcome,
    RetryAttempt,
    RetryConfig,
    RetryScheduler,
    RetryStats,
    is_page_info_complete,
)
from .drivers import DriverManager, SeleniumTabProvider, SeleniumTransport, create_browser
from .core import PageInfoFetcher
from .tracker import PriceCheckResult, PriceTracker, generate_product_id

__all__ = [
    "NO_PAYLOAD",
    "MessageChannel",
    "Transport",
    "TabHandle",
    "TabProvider",
    "TabSessionController",
    "TabStatus",
    "AttemptOutcome",
    "RetryAttempt",
    "RetryConfig",
    "RetryScheduler",
    "RetryStats",
    "is_page_info_complete",
    "DriverManager",
    "SeleniumTabProvider",
    "SeleniumTransport",
    "create_browser",
    "PageInfoFetcher",
    "PriceCheckResult",
    "PriceTracker",
    "generate_product_id",
]
