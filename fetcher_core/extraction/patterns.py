"""
Правила распознавания цен.

Порядок семейств в PRICE_RULES является приоритетом: извлечение
возвращает первое совпадение первого сработавшего семейства.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Pattern, Tuple


class PatternFamily(Enum):
    """Семейства шаблонов цен."""

    SYMBOL_PREFIXED = "symbol_prefixed"  # $29.99, € 45.00
    REGION_SYMBOL = "region_symbol"  # CA$129, US$ 99
    CODE_SUFFIXED = "code_suffixed"  # 29.99 USD


# Сумма: целая часть, группы разрядов, необязательные копейки/центы
AMOUNT = r"\d+(?:[.,]\d{3})*(?:[.,]\d{2})?"

CURRENCY_SYMBOLS = "$€£¥₹₽"
REGION_CODES = ("CA", "US", "AU", "NZ", "HK", "SG")
CURRENCY_CODES = (
    "USD", "EUR", "GBP", "JPY", "INR", "CAD", "AUD", "CHF",
    "CNY", "SEK", "NOK", "DKK", "PLN", "CZK", "HUF", "RUB",
)


@dataclass(frozen=True)
class PriceRule:
    """Правило поиска цены в тексте."""

    name: str
    family: PatternFamily
    pattern: Pattern[str]

    def search(self, text: str):
        return self.pattern.search(text)


PRICE_RULES: Tuple[PriceRule, ...] = (
    PriceRule(
        name="symbol_prefixed",
        family=PatternFamily.SYMBOL_PREFIXED,
        # Символ без буквенного префикса: CA$ относится к следующему семейству
        pattern=re.compile(rf"(?<![A-Za-z])[{re.escape(CURRENCY_SYMBOLS)}]\s*{AMOUNT}"),
    ),
    PriceRule(
        name="region_symbol",
        family=PatternFamily.REGION_SYMBOL,
        pattern=re.compile(rf"\b(?:{'|'.join(REGION_CODES)})\$\s*{AMOUNT}"),
    ),
    PriceRule(
        name="code_suffixed",
        family=PatternFamily.CODE_SUFFIXED,
        pattern=re.compile(
            rf"{AMOUNT}\s*(?:{'|'.join(CURRENCY_CODES)})\b", re.IGNORECASE
        ),
    ),
)

INCLUSION_PATTERNS: Tuple[Pattern[str], ...] = tuple(rule.pattern for rule in PRICE_RULES)

EXCLUSION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"loading", re.IGNORECASE),
    re.compile(r"\.{3,}"),
    re.compile(r"pending", re.IGNORECASE),
)
