# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for SchoolFlow.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from schoolflow.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.store.base_url)
    'http://localhost:8000/api'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecordStoreSettings(BaseSettings):
    """Remote record store (school administration REST API) configuration.

    The store owns the canonical state of enrollment workflows and
    transfer requests. SchoolFlow only talks to it over HTTP.

    Attributes:
        base_url: Base URL of the REST API, without trailing slash.
        api_token: Bearer token sent with every request.
        timeout: Request timeout in seconds.
        verify_ssl: Whether TLS certificates are verified.
    """

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        extra="ignore",
    )

    base_url: str = "http://localhost:8000/api"
    api_token: SecretStr = SecretStr("")
    timeout: float = 30.0
    verify_ssl: bool = True

    @property
    def auth_headers(self) -> dict[str, str]:
        """Build authentication headers for API requests."""
        token = self.api_token.get_secret_value()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}


class SelectionSettings(BaseSettings):
    """Listing and selection behaviour.

    Attributes:
        search_debounce_seconds: Quiet period a search input must observe
            before the filter it belongs to is considered settled.
        workflow_page_size: Default page size for workflow listings.
        transfer_page_size: Default page size for transfer request listings.
    """

    model_config = SettingsConfigDict(
        env_prefix="SELECTION_",
        extra="ignore",
    )

    search_debounce_seconds: float = 0.5
    workflow_page_size: int = 20
    transfer_page_size: int = 15


class BulkSettings(BaseSettings):
    """Bulk class assignment configuration.

    Attributes:
        failure_preview_count: Number of failure reasons surfaced in a
            bulk assignment summary.
        max_batch_size: Maximum ids per bulk submission (0 disables the limit).
    """

    model_config = SettingsConfigDict(
        env_prefix="BULK_",
        extra="ignore",
    )

    failure_preview_count: int = 3
    max_batch_size: int = 0


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        store: Record store settings.
        selection: Listing and selection settings.
        bulk: Bulk assignment settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    store: RecordStoreSettings = Field(default_factory=RecordStoreSettings)
    selection: SelectionSettings = Field(default_factory=SelectionSettings)
    bulk: BulkSettings = Field(default_factory=BulkSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production without a store token.
        """
        if self.environment == "production":
            if not self.store.api_token.get_secret_value():
                raise ValueError(
                    "Record store API token must be set in production. "
                    "Set STORE_API_TOKEN environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
