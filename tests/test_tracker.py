"""
Тесты проверки цен сохраненных товаров.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from fetcher_core.errors import TabLoadTimeout
from fetcher_core.orchestrator.tracker import PriceTracker, generate_product_id


def make_tracker(*results):
    fetcher = Mock()
    fetcher.fetch_page_info = AsyncMock(side_effect=list(results))
    return PriceTracker(fetcher, delay=0), fetcher


PRODUCT = {"id": "p1", "title": "Чайник", "price": "$49.99", "url": "https://shop.example.com/1"}


class TestGenerateProductId:
    """Тесты идентификатора товара."""

    def test_alphanumeric_16_chars(self):
        product_id = generate_product_id({"url": "https://shop.example.com/item?id=1"})
        assert len(product_id) == 16
        assert product_id.isalnum()

    def test_stable(self):
        product = {"url": "https://shop.example.com/1"}
        assert generate_product_id(product) == generate_product_id(dict(product))

    def test_title_domain_fallback(self):
        assert generate_product_id({"title": "T", "domain": "a.com"})


class TestPriceTracker:
    """Тесты PriceTracker."""

    @pytest.mark.asyncio
    async def test_price_drop(self):
        tracker, fetcher = make_tracker({"title": "Чайник", "price": "$29.99", "url": PRODUCT["url"]})

        result = await tracker.check_product_price(PRODUCT)

        fetcher.fetch_page_info.assert_awaited_once_with(PRODUCT["url"])
        assert result.success is True
        assert result.product_id == "p1"
        assert result.current_price == "$29.99"
        assert result.changed is True
        assert result.dropped is True
        assert result.difference == 20.0

    @pytest.mark.asyncio
    async def test_price_not_found(self):
        tracker, _ = make_tracker({"title": "Чайник", "price": "No price found", "url": PRODUCT["url"]})

        result = await tracker.check_product_price(PRODUCT)

        assert result.success is True
        assert result.current_price is None
        assert result.changed is False

    @pytest.mark.asyncio
    async def test_fetch_error_raised(self):
        tracker, _ = make_tracker(TabLoadTimeout(PRODUCT["url"], 15))

        with pytest.raises(TabLoadTimeout):
            await tracker.check_product_price(PRODUCT)

    @pytest.mark.asyncio
    async def test_batch_continues_after_error(self):
        tracker, fetcher = make_tracker(
            TabLoadTimeout(PRODUCT["url"], 15),
            {"title": "Чайник", "price": "$49.99", "url": PRODUCT["url"]},
        )

        results = await tracker.check_products([PRODUCT, {**PRODUCT, "id": "p2"}])

        assert [r.success for r in results] == [False, True]
        assert "не загрузилась" in results[0].error
        assert results[1].changed is False
        assert results[1].to_dict()["product_id"] == "p2"
        assert fetcher.fetch_page_info.await_count == 2
