"""
Тесты извлечения цены из текста, JSON-LD и HTML.
"""

import pytest

from fetcher_core.extraction.patterns import PRICE_RULES, PatternFamily
from fetcher_core.extraction.price import PriceExtractor, extract_price


@pytest.fixture
def extractor():
    return PriceExtractor()


class TestPriceRules:
    """Тесты порядка правил."""

    def test_rule_order(self):
        """Семейства проверяются в объявленном порядке."""
        assert [rule.family for rule in PRICE_RULES] == [
            PatternFamily.SYMBOL_PREFIXED,
            PatternFamily.REGION_SYMBOL,
            PatternFamily.CODE_SUFFIXED,
        ]


class TestExtractFromText:
    """Тесты извлечения цены из текста."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Price: $29.99", "$29.99"),
            ("Цена € 45.00 с доставкой", "€ 45.00"),
            ("£1,299.00", "£1,299.00"),
            ("Только сегодня ₽1.990", "₽1.990"),
            ("CA$129.99", "CA$129.99"),
            ("US$ 15", "US$ 15"),
            ("Total: 29.99 USD", "29.99 USD"),
            ("49,90 eur", "49,90 eur"),
        ],
    )
    def test_known_formats(self, extractor, text, expected):
        """Поддерживаемые форматы цен."""
        assert extractor.extract_from_text(text) == expected

    def test_leftmost_match_not_lowest_price(self, extractor):
        """Возвращается самое левое совпадение, а не минимальная цена."""
        assert extractor.extract_from_text("Was $49.99, now $29.99") == "$49.99"

    def test_family_priority_over_position(self, extractor):
        """Семейство с более высоким приоритетом выигрывает у более левого совпадения."""
        assert extractor.extract_from_text("29.99 USD or $35.00") == "$35.00"

    def test_whitespace_normalized(self, extractor):
        """Переводы строк внутри цены схлопываются."""
        assert extractor.extract_from_text("$\n\t 29.99") == "$ 29.99"

    @pytest.mark.parametrize("text", ["Loading...", "Бесплатная доставка", "", None, 123])
    def test_no_price(self, extractor, text):
        """Текст без цены дает None."""
        assert extractor.extract_from_text(text) is None

    def test_module_level_helper(self):
        """extract_price использует правила по умолчанию."""
        assert extract_price("Sale $5.00") == "$5.00"
        assert extract_price("Loading...") is None

    def test_extract_result(self, extractor):
        """extract возвращает числовое значение и признак валидности."""
        result = extractor.extract("Now $1,299.50")
        assert result.price == "$1,299.50"
        assert result.value == 1299.5
        assert result.valid is True

        assert extractor.extract("нет цены") is None


class TestStructuredData:
    """Тесты обхода структурированных данных."""

    def test_offers_price(self, extractor):
        """Цена во вложенном offers."""
        assert extractor.extract_from_structured({"offers": {"price": "29.99"}}) == "29.99"

    def test_own_price_before_offers(self, extractor):
        """Цена текущего уровня важнее offers."""
        node = {"price": "10.00", "offers": {"price": "20.00"}}
        assert extractor.extract_from_structured(node) == "10.00"

    def test_numeric_price_as_text(self, extractor):
        """Числовое значение возвращается строкой."""
        assert extractor.extract_from_structured({"offers": [{"price": 15}]}) == "15"

    def test_graph_traversal(self, extractor):
        """Поиск во вложенных объектах и списках."""
        node = {
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "WebPage", "name": "Каталог"},
                {"@type": "Product", "offers": [{"priceCurrency": "USD", "price": "5.00"}]},
            ],
        }
        assert extractor.extract_from_structured(node) == "5.00"

    def test_empty_values_skipped(self, extractor):
        """Пустые значения и bool не считаются ценой."""
        node = {"price": "", "offers": {"price": False}, "other": {"price": "7.00"}}
        assert extractor.extract_from_structured(node) == "7.00"

    def test_no_price(self, extractor):
        """Отсутствие цены дает None."""
        assert extractor.extract_from_structured({"name": "x"}) is None
        assert extractor.extract_from_structured("строка") is None

    def test_cycle_terminates(self, extractor):
        """Циклическая структура не приводит к бесконечной рекурсии."""
        node = {"name": "loop"}
        node["self"] = node
        node["items"] = [node]
        assert extractor.extract_from_structured(node) is None

    def test_depth_limit(self):
        """Слишком глубокая вложенность обрезается."""
        node = {"price": "1.00"}
        for _ in range(50):
            node = {"child": node}

        assert PriceExtractor(max_depth=32).extract_from_structured(node) is None
        assert PriceExtractor(max_depth=64).extract_from_structured(node) == "1.00"


class TestExtractFromHtml:
    """Тесты поиска цены на странице."""

    def test_meta_tags(self, extractor):
        """Цена и валюта из meta-тегов."""
        html = """
        <html><head>
          <meta property="product:price:amount" content="19.99">
          <meta property="product:price:currency" content="usd">
        </head><body><p>$5.00</p></body></html>
        """
        assert extractor.extract_from_html(html) == "19.99 USD"

    def test_jsonld(self, extractor):
        """Цена из JSON-LD с кодом валюты."""
        html = """
        <html><head><script type="application/ld+json">
        {"@type": "Product", "name": "Чайник",
         "offers": {"@type": "Offer", "price": "49.00", "priceCurrency": "EUR"}}
        </script></head><body></body></html>
        """
        assert extractor.extract_from_html(html) == "49.00 EUR"

    def test_jsonld_list_and_invalid_blocks(self, extractor):
        """Некорректный JSON-LD пропускается, массивы разворачиваются."""
        html = """
        <script type="application/ld+json">{not json</script>
        <script type="application/ld+json">
        [{"@type": "BreadcrumbList"}, {"offers": {"price": "$12.00"}}]
        </script>
        """
        assert extractor.extract_from_html(html) == "$12.00"

    def test_visible_text(self, extractor):
        """Цена из видимого текста, скрипты игнорируются."""
        html = """
        <html><body>
          <script>var tracking = "$999.99";</script>
          <h1>Чайник</h1><span class="price">$12.50</span>
        </body></html>
        """
        assert extractor.extract_from_html(html) == "$12.50"

    def test_unrealistic_price_rejected(self, extractor):
        """Нереалистичная цена не возвращается."""
        assert extractor.extract_from_html("<p>$999,999.99</p>") is None

    def test_no_price(self, extractor):
        """Страница без цены."""
        assert extractor.extract_from_html("<p>Loading...</p>") is None
        assert extractor.extract_from_html("") is None
