"""Shared configuration management for the platform.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="einvoice-ledger",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Tax identifier normalization
    vat_number_length: int = Field(
        default=11,
        ge=1,
        description="Length of a domestic VAT number after zero-padding",
    )
    domestic_country_code: str = Field(
        default="IT",
        min_length=2,
        max_length=2,
        description="Country prefix stripped and padded as a domestic VAT number",
    )

    # Cash closure configuration
    cash_difference_threshold: Decimal = Field(
        default=Decimal("5.00"),
        ge=0,
        description="Counted-vs-declared cash gap above which a closure is flagged",
    )
    default_vat_rate: Decimal = Field(
        default=Decimal("0.10"),
        ge=0,
        description="VAT rate (fraction) used to estimate VAT on daily sales",
    )

    # Persistence collaborator
    storage_backend: str = Field(
        default="memory",
        description="Record store backend for the supplier registry and the ledger",
    )

    # Upload limits
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        gt=0,
        description="Maximum accepted size of an uploaded invoice document",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
