"""
Базовые классы конфигурации fetcher_core.

Содержит Pydantic-модели для валидации конфигурационных данных
и фиксированные строковые маркеры (sentinel-значения).
"""

from typing import List, Optional
from pydantic import BaseModel, Field, validator


# Маркеры "не найдено" и "загрузка" (отличаются от отсутствия значения)
NOT_FOUND_TITLE = "No title found"
NOT_FOUND_PRICE = "No price found"
PAGE_LOADING = "Page still loading..."
DYNAMIC_CONTENT_LOADING = "Loading dynamic content..."
LOADING_SENTINELS = (PAGE_LOADING, DYNAMIC_CONTENT_LOADING, "Loading...")


class TimingConfig(BaseModel):
    """Таймауты и задержки конвейера получения данных."""

    page_timeout: float = Field(
        15.0, gt=0, description="Таймаут загрузки вкладки (секунды)"
    )
    message_timeout: float = Field(
        5.0, gt=0, description="Таймаут ответа на одно сообщение (секунды)"
    )
    responder_wait: float = Field(
        3.0, ge=0, description="Сколько ждать pong от страницы перед опросом"
    )
    ping_interval: float = Field(0.5, gt=0, description="Интервал между ping")
    retry_delays: List[float] = Field(
        default_factory=lambda: [0.5, 2.0, 4.0, 6.0],
        description="Задержки между попытками (секунды)",
    )
    max_retry_attempts: int = Field(
        4, ge=1, le=20, description="Максимальное количество попыток"
    )
    base_delay: float = Field(
        0.5, ge=0, description="База экспоненциальной задержки вне retry_delays"
    )

    @validator("retry_delays")
    def validate_retry_delays(cls, v):
        if any(delay < 0 for delay in v):
            raise ValueError("Задержки не могут быть отрицательными")
        return v


class CacheConfig(BaseModel):
    """Параметры кэша."""

    default_ttl: float = Field(300.0, gt=0, description="TTL по умолчанию (секунды)")
    hard_cap: int = Field(100, ge=1, description="Жесткий лимит записей")
    soft_cap: int = Field(80, ge=0, description="Мягкий лимит после очистки")
    evict_batch: int = Field(
        20, ge=1, description="Сколько записей вытеснять при превышении soft_cap"
    )
    sweep_interval: float = Field(
        300.0, gt=0, description="Интервал фоновой очистки (секунды)"
    )
    throttle_limit: float = Field(
        1.0, ge=0, description="Минимальный интервал между одинаковыми запросами"
    )
    debounce_delay: float = Field(
        0.3, ge=0, description="Задержка отложенного вызова по умолчанию (секунды)"
    )
    preload_ttl: float = Field(600.0, gt=0, description="TTL предзагрузки страниц")

    @validator("soft_cap")
    def validate_soft_cap(cls, v, values):
        hard_cap = values.get("hard_cap")
        if hard_cap is not None and v > hard_cap:
            raise ValueError("soft_cap не может превышать hard_cap")
        return v


class DriverSettings(BaseModel):
    """Параметры браузера."""

    headless: bool = Field(True, description="Запуск браузера в headless-режиме")
    page_load_strategy: str = Field(
        "eager", description="Стратегия загрузки: normal, eager, none"
    )
    page_load_timeout: int = Field(20, ge=5, description="Таймаут загрузки страницы")
    window_size: List[int] = Field(
        default_factory=lambda: [1920, 1080], description="Размер окна"
    )
    user_agent: Optional[str] = Field(None, description="Пользовательский User-Agent")

    @validator("page_load_strategy")
    def validate_strategy(cls, v):
        v = (v or "eager").strip().lower()
        if v not in ("normal", "eager", "none"):
            raise ValueError("page_load_strategy должен быть normal, eager или none")
        return v

    @validator("window_size")
    def validate_window_size(cls, v):
        if len(v) != 2 or min(v) <= 0:
            raise ValueError("window_size должен содержать 2 положительных значения")
        return v


class FetcherEnvConfig(BaseModel):
    """Конфигурация окружения fetcher_core."""

    timing: TimingConfig = Field(default_factory=TimingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    driver: DriverSettings = Field(default_factory=DriverSettings)

    # Ограничения структурированных данных
    structured_max_depth: int = Field(
        32, ge=1, le=256, description="Максимальная глубина обхода JSON-LD"
    )

    # Параметры логирования
    log_level: str = Field("INFO", description="Уровень логирования")
    verbose: bool = Field(False, description="Подробный вывод")
    enable_metrics: bool = Field(True, description="Собирать метрики")

    class Config:
        extra = "ignore"

    @validator("log_level")
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Неизвестный уровень логирования: {v}")
        return v
