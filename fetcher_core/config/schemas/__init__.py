"""
JSON-схемы для валидации конфигурационных файлов.

Содержит схему в формате JSON Schema для fetcher_config.json.
"""

SCHEMA_TIMING_CONFIG = {
    "type": "object",
    "properties": {
        "page_timeout": {
            "type": "number",
            "exclusiveMinimum": 0,
            "maximum": 300,
            "default": 15.0,
            "description": "Таймаут загрузки вкладки (секунды)",
        },
        "message_timeout": {
            "type": "number",
            "exclusiveMinimum": 0,
            "maximum": 120,
            "default": 5.0,
            "description": "Таймаут ответа на одно сообщение (секунды)",
        },
        "responder_wait": {"type": "number", "minimum": 0, "default": 3.0},
        "ping_interval": {"type": "number", "exclusiveMinimum": 0, "default": 0.5},
        "retry_delays": {
            "type": "array",
            "items": {"type": "number", "minimum": 0},
            "default": [0.5, 2.0, 4.0, 6.0],
            "description": "Задержки между попытками (секунды)",
        },
        "max_retry_attempts": {
            "type": "integer",
            "minimum": 1,
            "maximum": 20,
            "default": 4,
        },
        "base_delay": {"type": "number", "minimum": 0, "default": 0.5},
    },
    "additionalProperties": False,
}

SCHEMA_CACHE_CONFIG = {
    "type": "object",
    "properties": {
        "default_ttl": {"type": "number", "exclusiveMinimum": 0, "default": 300.0},
        "hard_cap": {"type": "integer", "minimum": 1, "default": 100},
        "soft_cap": {"type": "integer", "minimum": 0, "default": 80},
        "evict_batch": {"type": "integer", "minimum": 1, "default": 20},
        "sweep_interval": {"type": "number", "exclusiveMinimum": 0, "default": 300.0},
        "throttle_limit": {"type": "number", "minimum": 0, "default": 1.0},
        "debounce_delay": {"type": "number", "minimum": 0, "default": 0.3},
        "preload_ttl": {"type": "number", "exclusiveMinimum": 0, "default": 600.0},
    },
    "additionalProperties": False,
}

SCHEMA_DRIVER_SETTINGS = {
    "type": "object",
    "properties": {
        "headless": {"type": "boolean", "default": True},
        "page_load_strategy": {
            "type": "string",
            "enum": ["normal", "eager", "none"],
            "default": "eager",
        },
        "page_load_timeout": {"type": "integer", "minimum": 5, "default": 20},
        "window_size": {
            "type": "array",
            "items": {"type": "integer", "minimum": 1},
            "minItems": 2,
            "maxItems": 2,
        },
        "user_agent": {"type": ["string", "null"], "default": None},
    },
    "additionalProperties": False,
}

SCHEMA_FETCHER_CONFIG = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Fetcher Environment Configuration",
    "description": "Конфигурация окружения fetcher_core",
    "type": "object",
    "properties": {
        "timing": SCHEMA_TIMING_CONFIG,
        "cache": SCHEMA_CACHE_CONFIG,
        "driver": SCHEMA_DRIVER_SETTINGS,
        "structured_max_depth": {
            "type": "integer",
            "minimum": 1,
            "maximum": 256,
            "default": 32,
        },
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            "default": "INFO",
            "description": "Уровень логирования",
        },
        "verbose": {"type": "boolean", "default": False},
        "enable_metrics": {"type": "boolean", "default": True},
    },
    "additionalProperties": False,
}

__all__ = [
    "SCHEMA_TIMING_CONFIG",
    "SCHEMA_CACHE_CONFIG",
    "SCHEMA_DRIVER_SETTINGS",
    "SCHEMA_FETCHER_CONFIG",
]
