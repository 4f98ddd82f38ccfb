"""
Загрузчик конфигурации fetcher_core.

Обеспечивает загрузку конфигурации из JSON-файла, проверку по JSON-схеме
и создание файла с настройками по умолчанию.
"""

import json
from typing import Optional, Union
from pathlib import Path
import logging

import jsonschema

from .base import FetcherEnvConfig
from .schemas import SCHEMA_FETCHER_CONFIG

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "fetcher_config.json"


class ConfigLoader:
    """Загрузчик и валидатор конфигурации."""

    def __init__(self, config_dir: Union[str, Path] = "config"):
        """
        Инициализация загрузчика конфигурации.

        Args:
            config_dir: Директория с конфигурационными файлами
        """
        self.config_dir = Path(config_dir)
        self._env_config: Optional[FetcherEnvConfig] = None

    def load_env_config(
        self, config_path: Optional[Union[str, Path]] = None
    ) -> FetcherEnvConfig:
        """
        Загрузить конфигурацию окружения.

        Args:
            config_path: Путь к JSON-файлу конфигурации.
                        Если None, используется config/fetcher_config.json

        Returns:
            FetcherEnvConfig: Загруженная конфигурация

        Raises:
            json.JSONDecodeError: Файл не является корректным JSON
            jsonschema.ValidationError: Файл не соответствует схеме
        """
        if config_path is None:
            config_path = self.config_dir / DEFAULT_CONFIG_NAME
        else:
            config_path = Path(config_path)

        if not config_path.exists():
            logger.warning(f"Файл конфигурации не найден: {config_path}")
            logger.info("Создаю конфигурацию по умолчанию")
            self._env_config = FetcherEnvConfig()
            self._save_default_env_config(config_path)
            return self._env_config

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)

            self.validate(config_data)
            self._env_config = FetcherEnvConfig(**config_data)
            logger.info(f"Конфигурация окружения загружена из {config_path}")
            return self._env_config

        except json.JSONDecodeError as e:
            logger.error(f"Ошибка парсинга JSON в {config_path}: {e}")
            raise
        except jsonschema.ValidationError as e:
            logger.error(f"Конфигурация {config_path} не прошла проверку схемы: {e.message}")
            raise

    @staticmethod
    def validate(config_data: dict) -> None:
        """Проверить словарь конфигурации по JSON-схеме."""
        jsonschema.validate(instance=config_data, schema=SCHEMA_FETCHER_CONFIG)

    @property
    def env_config(self) -> FetcherEnvConfig:
        """Текущая конфигурация (загружается при первом обращении)."""
        if self._env_config is None:
            return self.load_env_config()
        return self._env_config

    def _save_default_env_config(self, config_path: Path) -> None:
        """Сохранить конфигурацию по умолчанию."""
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(self._env_config.dict(), f, indent=2, ensure_ascii=False)
            logger.info(f"Создана конфигурация по умолчанию: {config_path}")
        except OSError as e:
            logger.error(f"Не удалось сохранить конфигурацию в {config_path}: {e}")
