from .base import (
    FetcherEnvConfig,
    TimingConfig,
    CacheConfig,
    DriverSettings,
    NOT_FOUND_TITLE,
    NOT_FOUND_PRICE,
    PAGE_LOADING,
    DYNAMIC_CONTENT_LOADING,
    LOADING_SENTINELS,
)
from .loader import ConfigLoader

__all__ = [
    "FetcherEnvConfig",
    "TimingConfig",
    "CacheConfig",
    "DriverSettings",
    "NOT_FOUND_TITLE",
    "NOT_FOUND_PRICE",
    "PAGE_LOADING",
    "DYNAMIC_CONTENT_LOADING",
    "LOADING_SENTINELS",
    "ConfigLoader",
]
