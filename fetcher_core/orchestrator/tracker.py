"""
Проверка цен сохраненных товаров.

Повторно открывает страницу товара и сравнивает текущую цену с сохраненной.
Хранение товаров и результатов остается на стороне вызывающего кода.
"""

import asyncio
import base64
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..config.base import NOT_FOUND_PRICE
from ..errors import FetcherError
from ..extraction.validation import compare_prices, is_valid_price
from .core import PageInfoFetcher

logger = logging.getLogger(__name__)


def generate_product_id(product: Mapping[str, Any]) -> str:
    """Идентификатор товара: base64 от URL (или title-domain), только буквы и цифры, 16 символов."""
    identifier = product.get("url") or f"{product.get('title')}-{product.get('domain')}"
    encoded = base64.b64encode(str(identifier).encode("utf-8")).decode("ascii")
    return re.sub(r"[^a-zA-Z0-9]", "", encoded)[:16]


@dataclass
class PriceCheckResult:
    """Результат проверки цены одного товара."""

    product_id: str
    success: bool
    original_price: Optional[str] = None
    current_price: Optional[str] = None
    changed: bool = False
    dropped: bool = False
    difference: float = 0.0
    checked_at: str = field(default_factory=lambda: datetime.now().isoformat())
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "success": self.success,
            "original_price": self.original_price,
            "current_price": self.current_price,
            "changed": self.changed,
            "dropped": self.dropped,
            "difference": self.difference,
            "checked_at": self.checked_at,
            "error": self.error,
        }


class PriceTracker:
    """Проверка цен товаров через PageInfoFetcher."""

    def __init__(self, fetcher: PageInfoFetcher, delay: float = 2.0):
        """
        Args:
            fetcher: Запущенный PageInfoFetcher
            delay: Пауза между товарами при пакетной проверке (секунды)
        """
        self.fetcher = fetcher
        self.delay = delay

    async def check_product_price(self, product: Mapping[str, Any]) -> PriceCheckResult:
        """
        Проверить цену товара.

        Args:
            product: Словарь с полями url, price и, необязательно, id и title

        Returns:
            PriceCheckResult; если цена на странице не найдена, current_price равен None

        Raises:
            FetcherError: Страницу не удалось открыть
        """
        product_id = product.get("id") or generate_product_id(product)
        logger.info(f"Проверка цены: {product.get('title') or product.get('url')}")

        info = await self.fetcher.fetch_page_info(product.get("url"))
        price = info.get("price")
        current_price = price if price != NOT_FOUND_PRICE and is_valid_price(price) else None

        comparison = compare_prices(product.get("price"), current_price)
        if comparison.dropped:
            logger.info(f"Цена снизилась на {comparison.difference}: {product_id}")

        return PriceCheckResult(
            product_id=product_id,
            success=True,
            original_price=product.get("price"),
            current_price=current_price,
            changed=comparison.changed,
            dropped=comparison.dropped,
            difference=comparison.difference,
        )

    async def check_products(self, products: Iterable[Mapping[str, Any]]) -> List[PriceCheckResult]:
        """
        Проверить цены нескольких товаров по очереди.

        Ошибка одного товара не прерывает проверку остальных.
        """
        results = []
        for index, product in enumerate(products):
            if index and self.delay > 0:
                await asyncio.sleep(self.delay)
            try:
                results.append(await self.check_product_price(product))
            except FetcherError as e:
                logger.error(f"Не удалось проверить цену {product.get('url')}: {e}")
                results.append(
                    PriceCheckResult(
                        product_id=product.get("id") or generate_product_id(product),
                        success=False,
                        original_price=product.get("price"),
                        error=str(e),
                    )
                )

        dropped = sum(1 for result in results if result.dropped)
        logger.info(f"Проверено товаров: {len(results)}, снижений цены: {dropped}")
        return results
