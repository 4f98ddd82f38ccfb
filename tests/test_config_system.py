"""
Тесты системы конфигурации.

Проверяет модели конфигурации, загрузчик и JSON-схему.
"""

import json

import jsonschema
import pytest
from pydantic import ValidationError

from fetcher_core.config.base import (
    CacheConfig,
    DriverSettings,
    FetcherEnvConfig,
    TimingConfig,
)
from fetcher_core.config.loader import ConfigLoader


class TestFetcherEnvConfig:
    """Тесты моделей конфигурации."""

    def test_default_config(self):
        """Проверка значений по умолчанию."""
        config = FetcherEnvConfig()

        assert config.timing.page_timeout == 15.0
        assert config.timing.message_timeout == 5.0
        assert config.timing.retry_delays == [0.5, 2.0, 4.0, 6.0]
        assert config.timing.max_retry_attempts == 4
        assert config.cache.hard_cap == 100
        assert config.cache.soft_cap == 80
        assert config.cache.evict_batch == 20
        assert config.driver.headless is True
        assert config.structured_max_depth == 32
        assert config.log_level == "INFO"

    def test_log_level_normalized(self):
        assert FetcherEnvConfig(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            FetcherEnvConfig(log_level="chatty")

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            TimingConfig(retry_delays=[0.5, -1])

    def test_soft_cap_above_hard_cap_rejected(self):
        with pytest.raises(ValidationError):
            CacheConfig(hard_cap=10, soft_cap=20)

    def test_page_load_strategy(self):
        assert DriverSettings(page_load_strategy=" Normal ").page_load_strategy == "normal"
        with pytest.raises(ValidationError):
            DriverSettings(page_load_strategy="lazy")

    def test_window_size(self):
        with pytest.raises(ValidationError):
            DriverSettings(window_size=[1920])

    def test_unknown_keys_ignored(self):
        config = FetcherEnvConfig(unknown_option=True)
        assert not hasattr(config, "unknown_option")


class TestConfigLoader:
    """Тесты загрузчика конфигурации."""

    def test_missing_file_creates_default(self, tmp_path):
        """Если файла нет, создается конфигурация по умолчанию."""
        loader = ConfigLoader(tmp_path / "config")

        config = loader.load_env_config()

        config_file = tmp_path / "config" / "fetcher_config.json"
        assert config_file.exists()
        saved = json.loads(config_file.read_text(encoding="utf-8"))
        assert saved["timing"]["page_timeout"] == config.timing.page_timeout
        # Сохраненный файл проходит проверку схемы
        ConfigLoader.validate(saved)

    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "custom.json"
        config_file.write_text(
            json.dumps(
                {
                    "timing": {"page_timeout": 30, "retry_delays": [1, 1]},
                    "driver": {"headless": False},
                    "log_level": "DEBUG",
                }
            ),
            encoding="utf-8",
        )

        config = ConfigLoader(tmp_path).load_env_config(config_file)

        assert config.timing.page_timeout == 30
        assert config.timing.retry_delays == [1, 1]
        assert config.driver.headless is False
        assert config.cache.hard_cap == 100

    def test_schema_violation(self, tmp_path):
        config_file = tmp_path / "bad.json"
        config_file.write_text(json.dumps({"timing": {"max_retry_attempts": 0}}), encoding="utf-8")

        with pytest.raises(jsonschema.ValidationError):
            ConfigLoader(tmp_path).load_env_config(config_file)

    def test_unknown_key_rejected_by_schema(self, tmp_path):
        config_file = tmp_path / "bad.json"
        config_file.write_text(json.dumps({"max_tabs": 3}), encoding="utf-8")

        with pytest.raises(jsonschema.ValidationError):
            ConfigLoader(tmp_path).load_env_config(config_file)

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "broken.json"
        config_file.write_text("{not json", encoding="utf-8")

        with pytest.raises(json.JSONDecodeError):
            ConfigLoader(tmp_path).load_env_config(config_file)

    def test_env_config_property_caches(self, tmp_path):
        loader = ConfigLoader(tmp_path)
        assert loader.env_config is loader.env_config
