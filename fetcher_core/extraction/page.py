"""
Ответчик страницы: отвечает на сообщения ping и getPageInfo.

Работает по HTML отрисованной вкладки и заменяет собой контент-скрипт:
для цикла повторных попыток это внешний "черный ящик".
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from ..config.base import NOT_FOUND_PRICE, NOT_FOUND_TITLE, PAGE_LOADING
from .price import PriceExtractor

logger = logging.getLogger(__name__)

ACTION_PING = "ping"
ACTION_GET_PAGE_INFO = "getPageInfo"


@dataclass(frozen=True)
class PageInfoResponse:
    """Ответ страницы на getPageInfo."""

    title: Optional[str] = None
    price: Optional[str] = None
    url: str = ""
    domain: str = ""
    protocol: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "price": self.price,
            "url": self.url,
            "domain": self.domain,
            "protocol": self.protocol,
        }


class PageResponder:
    """Формирует ответы на сообщения по HTML страницы."""

    def __init__(self, extractor: Optional[PriceExtractor] = None):
        self.extractor = extractor or PriceExtractor()

    def handle(
        self,
        message: Mapping[str, Any],
        html: str,
        url: str,
        ready: bool,
        title: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Ответ на сообщение.

        Args:
            message: Сообщение вида {"action": ...}
            html: HTML страницы
            url: Текущий URL вкладки
            ready: Загружена ли страница полностью
            title: Заголовок документа, если известен

        Returns:
            Данные ответа или None, если отвечать нечего
        """
        action = message.get("action")

        if action == ACTION_PING:
            return {"pong": True} if ready else None

        if action == ACTION_GET_PAGE_INFO:
            return self.page_info(html, url, ready, title).to_dict()

        logger.debug(f"Неизвестное действие: {action}")
        return {"error": "Unknown action"}

    def page_info(
        self, html: str, url: str, ready: bool, title: Optional[str] = None
    ) -> PageInfoResponse:
        """Извлечь название и цену со страницы."""
        parts = urlsplit(url or "")
        soup = BeautifulSoup(html or "", "lxml")

        page_title = self.extract_title(soup, title)
        if ready:
            price = self.extractor.extract_from_html(html) or NOT_FOUND_PRICE
        else:
            price = PAGE_LOADING

        return PageInfoResponse(
            title=page_title,
            price=price,
            url=url or "",
            domain=parts.hostname or "",
            protocol=f"{parts.scheme}:" if parts.scheme else "",
        )

    @staticmethod
    def extract_title(soup: BeautifulSoup, document_title: Optional[str] = None) -> str:
        """Название страницы: document.title, <title>, og:title, meta title, h1."""
        candidates = [document_title]

        if soup.title and soup.title.string:
            candidates.append(soup.title.string)
        for selector in ('meta[property="og:title"]', 'meta[name="title"]'):
            tag = soup.select_one(selector)
            if tag:
                candidates.append(tag.get("content"))
        h1 = soup.find("h1")
        if h1:
            candidates.append(h1.get_text(" ", strip=True))

        for candidate in candidates:
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        return NOT_FOUND_TITLE
