"""Runtime configuration loaded from the environment and an optional .env file."""

import logging
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shielded_pool.core.merkle_tree import MAX_HEIGHT, MIN_HEIGHT, ZERO_VALUE
from shielded_pool.core.state import DEFAULT_POOL_IDENTITY
from shielded_pool.utils.encoding import normalize_address
from shielded_pool.utils.field import FIELD_SIZE
from shielded_pool.exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class PoolSettings(BaseSettings):
    """
    Pool settings.

    Every field can be overridden with a ``SHIELDED_POOL_`` prefixed
    environment variable, e.g. ``SHIELDED_POOL_TREE_HEIGHT=20``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHIELDED_POOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tree_height: int = Field(default=20, ge=MIN_HEIGHT, le=MAX_HEIGHT)
    deposit_limit: int = Field(default=100_000_000_000, ge=0)
    admin_identity: str = Field(default="0x1")
    asset_reference: str = Field(default="0x1::aptos_coin::AptosCoin")
    pool_identity: str = Field(default=DEFAULT_POOL_IDENTITY)
    zero_value: int = Field(default=ZERO_VALUE, ge=0, lt=FIELD_SIZE)
    database_url: str = Field(default="sqlite:///shielded_pool.db")
    log_level: str = Field(default="INFO")

    @field_validator("admin_identity", "pool_identity")
    @classmethod
    def _normalize_address(cls, value: str) -> str:
        return normalize_address(value)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return value


_settings: Optional[PoolSettings] = None


def get_settings() -> PoolSettings:
    """
    Get or create default settings.

    Raises:
        ConfigurationError: If the environment holds invalid settings
    """
    global _settings
    if _settings is None:
        try:
            _settings = PoolSettings()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid pool settings: {e}") from e
    return _settings


def reset_settings():
    """Reset cached settings (for testing)."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts and services."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
