import pytest
from unittest.mock import AsyncMock

from fetcher_core.cache.store import CacheStore
from fetcher_core.config.base import CacheConfig, FetcherEnvConfig, TimingConfig
from fetcher_core.orchestrator.core import PageInfoFetcher

from fakes import FakeClock, FakeTabProvider, FakeTransport


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> CacheStore:
    return CacheStore(CacheConfig(), clock=clock)


@pytest.fixture
def fast_config() -> FetcherEnvConfig:
    """Конфигурация без задержек и с короткими таймаутами."""
    return FetcherEnvConfig(
        timing=TimingConfig(
            page_timeout=1.0,
            message_timeout=0.05,
            responder_wait=0,
            retry_delays=[0, 0, 0, 0],
            max_retry_attempts=4,
            base_delay=0,
        ),
        enable_metrics=True,
    )


@pytest.fixture
def provider() -> FakeTabProvider:
    return FakeTabProvider()


@pytest.fixture
def make_fetcher(fast_config, provider):
    """Фабрика PageInfoFetcher с поддельными провайдером и транспортом."""

    def factory(responses=None, tab_provider=None, config=None, **transport_kwargs):
        transport = FakeTransport(responses, **transport_kwargs)
        fetcher = PageInfoFetcher(
            config or fast_config,
            provider=tab_provider or provider,
            transport=transport,
            sleep=AsyncMock(),
        )
        return fetcher, transport

    return factory
