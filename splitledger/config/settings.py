"""
Configuration Management for SplitLedger

Uses pydantic-settings for type-safe configuration from environment variables.

All tunables of the ledger live here: rounding tolerances, the size
limit of the exact settlement search and the logging environment.
Every component also accepts an explicit settings object, so nothing
below needs environment variables to be testable.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Balance ledger and settlement optimizer configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_currency: str = Field(
        default="USD",
        description="Currency label used when the caller does not supply one"
    )

    # Split validation
    percentage_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        lt=100,
        description="Allowed deviation of a percentage split's sum from 100"
    )

    # Settlement
    balance_tolerance_units: int = Field(
        default=0,
        ge=0,
        description="Per-member epsilon in minor units; balances within it are settled"
    )
    exact_search_enabled: bool = Field(
        default=True,
        description="Run the exact partition search for small groups"
    )
    exact_search_max_members: int = Field(
        default=8,
        ge=0,
        le=12,
        description="Largest number of unsettled members searched exactly"
    )

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Invalid currency code: {v}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured audit logs"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
