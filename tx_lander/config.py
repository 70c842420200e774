"""
Configuration Module for tx-lander

Settings are loaded from environment variables (and an optional ``.env``
file) using Pydantic v2 BaseSettings, with validation and type safety.

Usage:
    from tx_lander.config import get_settings
    print(get_settings().submission.retry_interval)
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import (
    AnyHttpUrl,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError, wrap_exception


# =============================================================================
# ENUMS
# =============================================================================

class LogLevel(str, Enum):
    """Logging level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FeePolicy(str, Enum):
    """How recent prioritization fee samples are reduced to one price."""
    MAX = "max"
    MEDIAN = "median"


# =============================================================================
# BASE CONFIGURATION
# =============================================================================

class BaseConfig(BaseSettings):
    """Base configuration with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


# =============================================================================
# RPC CONFIGURATION
# =============================================================================

class RpcSettings(BaseConfig):
    """RPC connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SOLANA_",
        env_file=".env",
        extra="ignore",
    )

    rpc_url: AnyHttpUrl = Field(
        default="https://api.testnet.sonic.game",
        description="JSON-RPC endpoint URL",
    )

    commitment: str = Field(
        default="confirmed",
        pattern="^(processed|confirmed|finalized)$",
        description="Commitment used for blockhash and simulation queries",
    )

    timeout: int = Field(
        default=30,
        ge=5,
        le=120,
        description="RPC request timeout in seconds",
    )

    @property
    def endpoint(self) -> str:
        """RPC URL as a plain string, without the trailing slash pydantic adds."""
        return str(self.rpc_url).rstrip("/")


# =============================================================================
# FEE CONFIGURATION
# =============================================================================

class FeeSettings(BaseConfig):
    """Compute budget and priority fee estimation settings."""

    model_config = SettingsConfigDict(
        env_prefix="FEE_",
        env_file=".env",
        extra="ignore",
    )

    # 10k micro-lamports per CU is 0.03 cents at 150k CUs and $250 SOL
    min_cu_price: int = Field(
        default=10_000,
        ge=0,
        description="Lower bound of the compute unit price (micro-lamports)",
    )

    # 10M micro-lamports per CU is $0.38 at 150k CUs and $250 SOL
    max_cu_price: int = Field(
        default=10_000_000,
        ge=0,
        description="Upper bound of the compute unit price (micro-lamports)",
    )

    compute_unit_margin: float = Field(
        default=1.2,
        ge=1.0,
        le=5.0,
        description="Multiplier applied to simulated compute units",
    )

    policy: FeePolicy = Field(
        default=FeePolicy.MAX,
        description="Reduction applied to recent prioritization fee samples",
    )

    @model_validator(mode="after")
    def validate_price_range(self) -> "FeeSettings":
        if self.min_cu_price > self.max_cu_price:
            raise ValueError(
                f"min_cu_price ({self.min_cu_price}) cannot exceed "
                f"max_cu_price ({self.max_cu_price})"
            )
        return self


# =============================================================================
# SUBMISSION CONFIGURATION
# =============================================================================

class SubmissionSettings(BaseConfig):
    """Re-broadcast and confirmation polling settings."""

    model_config = SettingsConfigDict(
        env_prefix="SUBMIT_",
        env_file=".env",
        extra="ignore",
    )

    # A minute of retries, with 2 second intervals
    retry_interval: float = Field(
        default=2.0,
        gt=0,
        le=60.0,
        description="Seconds between re-broadcast rounds",
    )

    max_retries: int = Field(
        default=30,
        ge=1,
        le=1000,
        description="Maximum number of re-broadcast rounds",
    )

    blockhash_retries: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Attempts at fetching the latest blockhash",
    )

    @property
    def max_wait_seconds(self) -> float:
        return self.retry_interval * self.max_retries


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

class LoggingSettings(BaseConfig):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore",
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )

    format: str = Field(
        default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        description="Log message format",
    )

    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Log date format",
    )

    file_enabled: bool = Field(
        default=False,
        description="Enable file logging",
    )

    file_path: Path = Field(
        default=Path("logs/tx_lander.log"),
        description="Log file path",
    )

    file_max_bytes: int = Field(
        default=10 * 1024 * 1024,  # 10 MB
        ge=1024,
        description="Max log file size in bytes",
    )

    file_backup_count: int = Field(
        default=5,
        ge=0,
        le=100,
        description="Number of rotated log files to keep",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v


# =============================================================================
# MAIN SETTINGS
# =============================================================================

class Settings(BaseConfig):
    """
    Main settings aggregating all configuration sections.

    Usage:
        settings = Settings()
        # or
        settings = get_settings()
    """

    rpc: RpcSettings = Field(default_factory=RpcSettings)
    fees: FeeSettings = Field(default_factory=FeeSettings)
    submission: SubmissionSettings = Field(default_factory=SubmissionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Cached settings singleton

    Raises:
        ConfigurationError: the environment holds invalid values
    """
    try:
        return Settings()
    except PydanticValidationError as e:
        raise wrap_exception(
            e,
            ConfigurationError,
            f"Invalid settings ({e.error_count()} errors)",
        ) from e


def reload_settings() -> Settings:
    """
    Clear settings cache and reload from environment.

    Returns:
        Settings: Fresh settings instance
    """
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "Settings",
    "RpcSettings",
    "FeeSettings",
    "SubmissionSettings",
    "LoggingSettings",
    "LogLevel",
    "FeePolicy",
    "get_settings",
    "reload_settings",
]
