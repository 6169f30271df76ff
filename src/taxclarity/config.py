"""
TaxClarity - Configuration and settings.

Settings are read from the environment and an optional .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class TaxClaritySettings(BaseSettings):
    """
    Application settings.

    Storage location and key for the onboarding record, plus the
    placeholder backend used by the remote sync client.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    taxclarity_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Local persistence
    taxclarity_data_dir: Path = Path(".taxclarity")
    taxclarity_storage_key: str = "taxclarity-storage"

    # Remote sync (backend not built yet)
    taxclarity_api_base_url: str = "http://localhost:8000"
    taxclarity_api_timeout: float = 15.0

    @property
    def is_development(self) -> bool:
        return self.taxclarity_env == "development"

    @property
    def is_production(self) -> bool:
        return self.taxclarity_env == "production"


@lru_cache
def get_settings() -> TaxClaritySettings:
    """Get cached settings instance."""
    return TaxClaritySettings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: TaxClaritySettings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
