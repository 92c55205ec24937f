"""
Configuration management for the address tracker.
"""

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from address_tracker.backends.esplora import default_api_url


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: Literal["mainnet", "testnet", "signet", "regtest"] = "mainnet"

    # Derived from network when unset
    esplora_api_url: str | None = None

    request_timeout: float = 30.0

    max_pages: int = Field(default=1, ge=1)

    log_level: str = "INFO"

    def get_api_url(self) -> str:
        if self.esplora_api_url:
            return self.esplora_api_url.rstrip("/")
        return default_api_url(self.network)


def get_settings(**overrides: Any) -> Settings:
    """Load settings from the environment; explicit overrides win."""
    return Settings(**{key: value for key, value in overrides.items() if value is not None})
