# backend/gaterace/core/config.py

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Путь к папке с шаблонами Jinja
DEFAULT_TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")


class Settings(BaseSettings):
    """Настройки из окружения (GATERACE_*). Кривое значение - ошибка при старте."""

    PROJECT_NAME: str = "GateRace"
    TEMPLATE_DIR: str = DEFAULT_TEMPLATE_DIR
    DATABASE_URL: str = "sqlite:///./gaterace.db"
    LOG_LEVEL: str = "INFO"

    # очки: порог дисквалификации и очко за DNS
    DQ_PENALTY_THRESHOLD: int = Field(default=7, ge=1)
    DNS_POINT: int = Field(default=9, ge=1)

    # размеры батчей и заездов
    DEFAULT_BATCH_SIZE: int = Field(default=8, ge=1)
    MAX_RIDERS_PER_RACE: int = Field(default=8, ge=1)
    MIN_FINAL_RACE_SIZE: int = Field(default=4, ge=1)

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    model_config = SettingsConfigDict(
        env_prefix="GATERACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# создаём единственный экземпляр настроек
_settings = Settings()


def get_settings() -> Settings:
    return _settings
