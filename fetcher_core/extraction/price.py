"""
Извлечение цены из текста и структурированных данных (JSON-LD).

Текст проверяется упорядоченным списком правил PRICE_RULES; структурированные
данные обходятся в глубину с ограничением глубины и защитой от циклов.
"""

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from bs4 import BeautifulSoup

from .patterns import PRICE_RULES, PriceRule
from .validation import ExtractionResult, evaluate_price, is_realistic, is_valid_price

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32

PRICE_META_SELECTORS = (
    'meta[property="product:price:amount"]',
    'meta[property="og:price:amount"]',
    'meta[name="price"]',
    'meta[itemprop="price"]',
)
CURRENCY_META_SELECTORS = (
    'meta[property="product:price:currency"]',
    'meta[property="og:price:currency"]',
    'meta[itemprop="priceCurrency"]',
)


def _is_present(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return isinstance(value, (int, float))


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else str(value)


class PriceExtractor:
    """Извлечение цены из текста, JSON-LD и HTML."""

    def __init__(
        self,
        rules: Sequence[PriceRule] = PRICE_RULES,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """
        Args:
            rules: Правила в порядке приоритета
            max_depth: Максимальная глубина обхода структурированных данных
        """
        self.rules = tuple(rules)
        self.max_depth = max_depth

    def extract_from_text(self, text: Optional[str]) -> Optional[str]:
        """
        Первое совпадение первого сработавшего семейства правил.

        Возвращается самое левое совпадение правила с наивысшим приоритетом,
        а не минимальная цена в тексте.
        """
        if not text or not isinstance(text, str):
            return None

        normalized = re.sub(r"\s+", " ", text).strip()
        for rule in self.rules:
            match = rule.search(normalized)
            if match:
                price = match.group(0).strip()
                logger.debug(f"Цена '{price}' найдена правилом {rule.name}")
                return price
        return None

    def extract(self, text: Optional[str]) -> Optional[ExtractionResult]:
        """Извлечь цену из текста вместе с числовым значением и флагом валидности."""
        price = self.extract_from_text(text)
        return evaluate_price(price) if price else None

    def extract_from_structured(self, node: Any) -> Optional[str]:
        """
        Поиск значения ключа price в структурированных данных.

        Порядок: price на текущем уровне, затем offers.price, затем все
        вложенные объекты в порядке итерации. Возвращается первое найденное.
        """
        return self.find_structured_value(node, "price")

    def find_structured_value(
        self, node: Any, key: str, container: str = "offers"
    ) -> Optional[str]:
        """Обход в глубину с ограничением глубины и учетом посещенных узлов."""
        return self._search(node, key, container, 0, set())

    def _search(
        self, node: Any, key: str, container: str, depth: int, visited: Set[int]
    ) -> Optional[str]:
        if depth > self.max_depth:
            logger.debug(f"Достигнута максимальная глубина обхода ({self.max_depth})")
            return None

        if isinstance(node, (list, tuple)):
            if id(node) in visited:
                return None
            visited.add(id(node))
            for item in node:
                found = self._search(item, key, container, depth + 1, visited)
                if found is not None:
                    return found
            return None

        if not isinstance(node, Mapping):
            return None
        if id(node) in visited:
            return None
        visited.add(id(node))

        value = node.get(key)
        if _is_present(value):
            return _as_text(value)

        nested = node.get(container)
        if isinstance(nested, (Mapping, list, tuple)):
            found = self._search(nested, key, container, depth + 1, visited)
            if found is not None:
                return found

        for field, child in node.items():
            if field == container or not isinstance(child, (Mapping, list, tuple)):
                continue
            found = self._search(child, key, container, depth + 1, visited)
            if found is not None:
                return found
        return None

    def extract_jsonld(self, html: str) -> List[Dict[str, Any]]:
        """
        Извлечение JSON-LD объектов из HTML.

        Args:
            html: HTML страница

        Returns:
            Список JSON-LD объектов (массивы разворачиваются)
        """
        if not html:
            return []

        soup = BeautifulSoup(html, "lxml")
        objects: List[Dict[str, Any]] = []
        for script in soup.find_all("script", type="application/ld+json"):
            if not script.string:
                continue
            json_text = script.string.strip()
            # Очищаем JSON от возможных комментариев
            json_text = re.sub(r"/\*.*?\*/", "", json_text, flags=re.DOTALL)
            json_text = re.sub(r"^\s*//.*$", "", json_text, flags=re.MULTILINE)
            try:
                data = json.loads(json_text)
            except json.JSONDecodeError as e:
                logger.debug(f"Ошибка парсинга JSON-LD: {e}")
                continue

            if isinstance(data, list):
                objects.extend(item for item in data if isinstance(item, dict))
            elif isinstance(data, dict):
                objects.append(data)
        return objects

    def extract_from_html(self, html: str) -> Optional[str]:
        """
        Поиск цены на странице: meta-теги, JSON-LD, затем видимый текст.

        Сумма без символа валюты дополняется кодом валюты из той же
        разметки, чтобы цена прошла проверку шаблонами.
        """
        if not html:
            return None

        soup = BeautifulSoup(html, "lxml")

        currency = self._meta_content(soup, CURRENCY_META_SELECTORS)
        amount = self._meta_content(soup, PRICE_META_SELECTORS)
        price = self._with_currency(amount, currency)
        if price:
            return price

        for obj in self.extract_jsonld(html):
            amount = self.extract_from_structured(obj)
            currency = self.find_structured_value(obj, "priceCurrency")
            price = self._with_currency(amount, currency)
            if price:
                return price

        for tag in soup(["script", "style", "noscript", "template"]):
            tag.decompose()
        text = soup.get_text(" ", strip=True)
        price = self.extract_from_text(text)
        if price and is_valid_price(price) and is_realistic(price):
            return price
        return None

    def _with_currency(self, amount: Optional[str], currency: Optional[str]) -> Optional[str]:
        if not amount:
            return None
        candidates = [amount]
        if currency:
            candidates.append(f"{amount} {currency.upper()}")
        for candidate in candidates:
            price = self.extract_from_text(candidate)
            if price and is_valid_price(price) and is_realistic(price):
                return price
        return None

    @staticmethod
    def _meta_content(soup: BeautifulSoup, selectors: Sequence[str]) -> Optional[str]:
        for selector in selectors:
            tag = soup.select_one(selector)
            if tag and tag.get("content"):
                return tag["content"].strip()
        return None


_default_extractor = PriceExtractor()


def extract_price(text: Optional[str]) -> Optional[str]:
    """Извлечь цену из текста правилами по умолчанию."""
    return _default_extractor.extract_from_text(text)
