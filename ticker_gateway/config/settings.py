import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator

_ENV_FIELDS = (
    "TICKERS_SOURCE_URL",
    "TICKERS_EXPECTED_COUNT",
    "TICKERS_UPDATE_PERIOD_SEC",
    "TICKERS_DB_PATH",
    "TICKERS_FETCH_TIMEOUT_SEC",
    "TICKERS_STRICT_REPLACE",
    "HTTP_HOST",
    "HTTP_PORT",
    "LOG_LEVEL",
)


class Settings(BaseModel):
    TICKERS_SOURCE_URL: str = "https://api.blockchain.com/v3/exchange/tickers"
    TICKERS_EXPECTED_COUNT: int = Field(default=102, gt=0)
    TICKERS_UPDATE_PERIOD_SEC: float = Field(default=30.0, gt=0)
    TICKERS_DB_PATH: str = "tickers.db"
    TICKERS_FETCH_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    TICKERS_STRICT_REPLACE: bool = False
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = Field(default=8090, gt=0, lt=65536)
    LOG_LEVEL: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = "INFO"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        raw: dict[str, str] = {}
        for name in _ENV_FIELDS:
            value = os.getenv(name)
            if value is None or not value.strip():
                continue
            raw[name] = value.strip()
        return cls.model_validate(raw)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
