from .patterns import PRICE_RULES, PriceRule, PatternFamily
from .price import PriceExtractor, extract_price
from .validation import (
    ExtractionResult,
    PriceComparison,
    sanitize_product,
    is_valid_price,
    is_realistic,
    parse_price_value,
    validate_url,
    compare_prices,
)
from .page import PageInfoResponse, PageResponder

__all__ = [
    "PRICE_RULES",
    "PriceRule",
    "PatternFamily",
    "PriceExtractor",
    "extract_price",
    "ExtractionResult",
    "PriceComparison",
    "sanitize_product",
    "is_valid_price",
    "is_realistic",
    "parse_price_value",
    "validate_url",
    "compare_prices",
    "PageInfoResponse",
    "PageResponder",
]
