"""
Очистка и проверка полей товара.

Правила для title, price и url применяются независимо. Запись принимается
только целиком: если хотя бы одно поле после очистки пустое,
sanitize_product возвращает None.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

from ..config.base import NOT_FOUND_PRICE
from ..errors import InvalidUrlError
from .patterns import EXCLUSION_PATTERNS, INCLUSION_PATTERNS

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500
MAX_PRICE_LENGTH = 50
MAX_URL_LENGTH = 2000

MIN_REALISTIC_PRICE = 0.0  # граница не включается
MAX_REALISTIC_PRICE = 100000.0  # граница не включается
PRICE_CHANGE_THRESHOLD = 0.01

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
SCRIPT_BLOCK = re.compile(
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE
)
JAVASCRIPT_SCHEME = re.compile(r"javascript:", re.IGNORECASE)
DECIMAL_COMMA = re.compile(r",\d{2}$")
NUMBER = re.compile(r"\d*\.?\d+")


@dataclass
class ExtractionResult:
    """Нормализованная цена и ее числовое значение."""

    price: str
    value: float
    valid: bool


@dataclass
class PriceComparison:
    """Результат сравнения двух цен."""

    changed: bool
    dropped: bool
    difference: float


def _strip_controls(value: str) -> str:
    return CONTROL_CHARS.sub("", value)


def sanitize_title(title: Any) -> str:
    """Очистка названия: управляющие символы, блоки <script>, длина 500."""
    if not isinstance(title, str):
        return ""
    cleaned = SCRIPT_BLOCK.sub("", _strip_controls(title))
    return cleaned[:MAX_TITLE_LENGTH].strip()


def sanitize_price(price: Any) -> str:
    """Очистка цены: управляющие символы, токены javascript:, длина 50."""
    if not isinstance(price, str):
        return ""
    cleaned = JAVASCRIPT_SCHEME.sub("", _strip_controls(price))
    return cleaned[:MAX_PRICE_LENGTH].strip()


def sanitize_url(url: Any) -> str:
    """
    Очистка URL.

    Схема javascript: заменяется на https:, длина ограничивается 2000
    символами. Если результат не разбирается как URL со схемой и хостом,
    возвращается пустая строка.
    """
    if not isinstance(url, str):
        return ""
    cleaned = JAVASCRIPT_SCHEME.sub("https:", _strip_controls(url))[:MAX_URL_LENGTH]
    return cleaned if is_well_formed_url(cleaned) else ""


def is_well_formed_url(url: str) -> bool:
    """URL содержит схему и хост без пробелов, порт (если есть) корректен."""
    if not url or any(ch.isspace() for ch in url):
        return False
    try:
        parts = urlsplit(url)
        parts.port  # ValueError для некорректного порта
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.hostname)


def sanitize_product(record: Any) -> Optional[Dict[str, str]]:
    """
    Очистка записи товара.

    Args:
        record: Словарь с полями title, price, url

    Returns:
        Очищенная запись или None, если хотя бы одно поле пустое
    """
    if not isinstance(record, Mapping):
        return None

    sanitized = {
        "title": sanitize_title(record.get("title")),
        "price": sanitize_price(record.get("price")),
        "url": sanitize_url(record.get("url")),
    }

    empty = [field for field, value in sanitized.items() if not value]
    if empty:
        logger.debug(f"Запись отклонена, пустые поля после очистки: {', '.join(empty)}")
        return None
    return sanitized


def is_valid_price(candidate: Any) -> bool:
    """
    Проверка строки цены.

    Цена валидна, если совпадает хотя бы с одним шаблоном цены,
    не совпадает ни с одним шаблоном исключения (loading, "...", pending)
    и не является маркером "No price found".
    """
    if not isinstance(candidate, str) or not candidate.strip():
        return False
    if candidate.strip() == NOT_FOUND_PRICE:
        return False
    if not any(pattern.search(candidate) for pattern in INCLUSION_PATTERNS):
        return False
    return not any(pattern.search(candidate) for pattern in EXCLUSION_PATTERNS)


def parse_price_value(candidate: Any) -> float:
    """
    Числовое значение цены.

    Запятая, за которой в конце идут ровно две цифры, считается десятичным
    разделителем (точки тогда - разделители разрядов), иначе запятая -
    разделитель разрядов. Возвращает 0.0, если числа нет.
    """
    if not isinstance(candidate, str):
        return 0.0

    cleaned = re.sub(r"[^\d.,]", "", candidate)
    if DECIMAL_COMMA.search(cleaned):
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")

    match = NUMBER.search(cleaned)
    return float(match.group()) if match else 0.0


def is_realistic(candidate: Any) -> bool:
    """Цена в интервале (0, 100000)."""
    value = parse_price_value(candidate)
    return MIN_REALISTIC_PRICE < value < MAX_REALISTIC_PRICE


def evaluate_price(candidate: str) -> ExtractionResult:
    """Собрать ExtractionResult для найденной строки цены."""
    price = candidate.strip()
    return ExtractionResult(
        price=price,
        value=parse_price_value(price),
        valid=is_valid_price(price) and is_realistic(price),
    )


def validate_url(url: Any) -> str:
    """
    Проверка URL, введенного пользователем.

    Returns:
        Нормализованный URL (без пробелов по краям)

    Raises:
        InvalidUrlError: URL пустой или не http(s)
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError(url, "Пустой URL")

    normalized = url.strip()
    try:
        parts = urlsplit(normalized)
    except ValueError:
        raise InvalidUrlError(url)

    if parts.scheme.lower() not in ("http", "https") or not is_well_formed_url(normalized):
        raise InvalidUrlError(url, "Нужен корректный URL с http:// или https://")
    return normalized


def compare_prices(original: Optional[str], current: Optional[str]) -> PriceComparison:
    """
    Сравнение сохраненной и текущей цены.

    Изменением считается разница больше 0.01. Если одна из цен
    отсутствует или не распознана, изменения нет.
    """
    unchanged = PriceComparison(changed=False, dropped=False, difference=0.0)
    if not original or not current:
        return unchanged

    original_value = parse_price_value(original)
    current_value = parse_price_value(current)
    if original_value == 0 or current_value == 0:
        return unchanged

    difference = original_value - current_value
    changed = abs(difference) > PRICE_CHANGE_THRESHOLD
    return PriceComparison(
        changed=changed,
        dropped=changed and difference > 0,
        difference=round(abs(difference), 2),
    )
