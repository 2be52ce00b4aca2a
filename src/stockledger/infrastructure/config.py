"""Runtime settings, read from ``STOCKLEDGER_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from stockledger.domain.model.inventory import StockPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOCKLEDGER_", env_file=".env", extra="ignore"
    )

    backend: Literal["json", "sql"] = "json"
    data_dir: Path = Path("data")
    database_url: str = "sqlite:///data/stockledger.db"
    stock_policy: StockPolicy = StockPolicy.STRICT
    lock_timeout: float = Field(default=5.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff: float = Field(default=0.05, ge=0)
    log_level: str = "INFO"
    environment: str = "development"

    @property
    def json_path(self) -> Path:
        return self.data_dir / "ledger.json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
