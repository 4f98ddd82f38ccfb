"""
Командная строка fetcher_core.

Примеры:
    fetcher fetch https://example.com/item --headless
    fetcher current
    fetcher extract "Цена: $29.99"
    fetcher sanitize '{"title": "Item", "price": "$5", "url": "https://a.com"}'
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import jsonschema
from tabulate import tabulate

from .config.base import FetcherEnvConfig
from .config.loader import ConfigLoader
from .errors import FetcherError
from .extraction.price import extract_price
from .extraction.validation import sanitize_product
from .orchestrator.core import PageInfoFetcher

logger = logging.getLogger("fetcher_core.cli")


def load_config(args: argparse.Namespace) -> FetcherEnvConfig:
    """Конфигурация из --config с переопределениями из аргументов."""
    if args.config:
        config = ConfigLoader().load_env_config(args.config)
    else:
        config = FetcherEnvConfig()

    if args.headless is not None:
        config.driver.headless = args.headless
    if args.verbose:
        config.verbose = True
        config.log_level = "DEBUG"
    return config


def setup_logging(config: FetcherEnvConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if config.verbose:
        # Отключаем шумные логи библиотек
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("selenium").setLevel(logging.WARNING)
        logging.getLogger("websockets").setLevel(logging.WARNING)


def print_table(rows: List[Dict[str, Any]]) -> None:
    """Вывод результатов таблицей."""
    if not rows:
        print("Нет данных")
        return
    print(tabulate(rows, headers="keys", tablefmt="grid"))


def save_results(rows: List[Dict[str, Any]], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(rows, f, ensure_ascii=False, indent=2)
    logger.info(f"Результаты сохранены в {path}")


async def run_browser_command(args: argparse.Namespace, config: FetcherEnvConfig) -> Dict[str, str]:
    async with PageInfoFetcher(config) as fetcher:
        if args.command == "fetch":
            return await fetcher.fetch_page_info(args.url)
        return await fetcher.get_current_tab_info()


def execute(args: argparse.Namespace, config: FetcherEnvConfig) -> Optional[List[Dict[str, Any]]]:
    """Выполнить команду. None означает, что результата нет."""
    if args.command == "extract":
        price = extract_price(args.text)
        return [{"text": args.text, "price": price}] if price else None

    if args.command == "sanitize":
        try:
            record = json.loads(args.record)
        except json.JSONDecodeError as e:
            logger.error(f"Некорректный JSON: {e}")
            return None
        sanitized = sanitize_product(record)
        return [sanitized] if sanitized else None

    return [asyncio.run(run_browser_command(args, config))]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Получение названия и цены товара со страницы"
    )
    parser.add_argument("--config", type=str, default=None,
                        help="Путь к JSON-файлу конфигурации")
    parser.add_argument("--headless", dest="headless", action="store_true", default=None,
                        help="Запускать браузер в фоновом режиме")
    parser.add_argument("--no-headless", dest="headless", action="store_false",
                        help="Показывать окно браузера")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Подробный вывод")
    parser.add_argument("--output", "-o", type=str, default=None,
                        help="Сохранить результаты в JSON-файл")

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Открыть URL и получить название и цену")
    fetch.add_argument("url", help="Адрес страницы товара")

    subparsers.add_parser("current", help="Название и цена активной вкладки")

    extract = subparsers.add_parser("extract", help="Найти цену в тексте")
    extract.add_argument("text", help="Текст для поиска цены")

    sanitize = subparsers.add_parser("sanitize", help="Очистить запись товара")
    sanitize.add_argument("record", help='JSON вида {"title": ..., "price": ..., "url": ...}')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except (json.JSONDecodeError, jsonschema.ValidationError) as e:
        print(f"Ошибка конфигурации: {e}", file=sys.stderr)
        return 2

    setup_logging(config)

    try:
        rows = execute(args, config)
    except FetcherError as e:
        logger.error(str(e))
        return 1

    if rows is None:
        print("Ничего не найдено")
        return 1

    print_table(rows)
    if args.output:
        save_results(rows, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
