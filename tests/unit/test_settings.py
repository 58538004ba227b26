# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for application settings."""

import logging
import os
from unittest.mock import patch

import pytest
import structlog
from pydantic import ValidationError

from schoolflow.core.config.settings import (
    BulkSettings,
    RecordStoreSettings,
    SelectionSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from schoolflow.utils.logging import bind_context, clear_context, get_logger, setup_logging


class TestRecordStoreSettings:
    """Tests for RecordStoreSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = RecordStoreSettings()

        assert settings.base_url == "http://localhost:8000/api"
        assert settings.api_token.get_secret_value() == ""
        assert settings.timeout == 30.0
        assert settings.verify_ssl is True

    def test_auth_headers_with_token(self) -> None:
        """Test bearer header is built from the token."""
        settings = RecordStoreSettings(api_token="abc123")  # type: ignore[arg-type]

        assert settings.auth_headers == {"Authorization": "Bearer abc123"}

    def test_auth_headers_without_token(self) -> None:
        """Test no header is sent without a token."""
        settings = RecordStoreSettings(api_token="")  # type: ignore[arg-type]

        assert settings.auth_headers == {}

    def test_loads_from_environment(self) -> None:
        """Test that settings load from environment variables."""
        env = {
            "STORE_BASE_URL": "https://school.example.com/api",
            "STORE_TIMEOUT": "5",
            "STORE_VERIFY_SSL": "false",
        }

        with patch.dict(os.environ, env, clear=False):
            settings = RecordStoreSettings()

        assert settings.base_url == "https://school.example.com/api"
        assert settings.timeout == 5.0
        assert settings.verify_ssl is False

    def test_token_is_not_shown_in_repr(self) -> None:
        """Test the API token stays masked."""
        settings = RecordStoreSettings(api_token="super-secret")  # type: ignore[arg-type]

        assert "super-secret" not in repr(settings)


class TestSelectionSettings:
    """Tests for SelectionSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = SelectionSettings()

        assert settings.search_debounce_seconds == 0.5
        assert settings.workflow_page_size == 20
        assert settings.transfer_page_size == 15

    def test_loads_from_environment(self) -> None:
        with patch.dict(os.environ, {"SELECTION_SEARCH_DEBOUNCE_SECONDS": "0.25"}, clear=False):
            settings = SelectionSettings()

        assert settings.search_debounce_seconds == 0.25


class TestBulkSettings:
    """Tests for BulkSettings."""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = BulkSettings()

        assert settings.failure_preview_count == 3
        assert settings.max_batch_size == 0

    def test_loads_from_environment(self) -> None:
        with patch.dict(os.environ, {"BULK_MAX_BATCH_SIZE": "200"}, clear=False):
            settings = BulkSettings()

        assert settings.max_batch_size == 200


class TestSettings:
    """Tests for main Settings class."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.environment == "development"
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.is_development is True
        assert settings.is_production is False

    def test_subsettings_are_loaded(self) -> None:
        """Test that subsettings are properly initialized."""
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert isinstance(settings.store, RecordStoreSettings)
        assert isinstance(settings.selection, SelectionSettings)
        assert isinstance(settings.bulk, BulkSettings)

    def test_production_requires_store_token(self) -> None:
        """Test production settings validation rejects a missing token."""
        with pytest.raises(ValidationError, match="API token must be set"):
            Settings(
                _env_file=None,  # type: ignore[call-arg]
                environment="production",
                store=RecordStoreSettings(api_token=""),  # type: ignore[arg-type]
            )

    def test_production_with_token(self) -> None:
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            environment="production",
            debug=False,
            store=RecordStoreSettings(api_token="prod-token"),  # type: ignore[arg-type]
        )

        assert settings.is_production is True


class TestGetSettings:
    """Tests for get_settings function."""

    def test_returns_cached_instance(self) -> None:
        """Test that get_settings returns cached instance."""
        clear_settings_cache()

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

    def test_clear_cache_creates_new_instance(self) -> None:
        """Test that clearing cache creates new instance."""
        clear_settings_cache()
        settings1 = get_settings()

        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2


class TestSetupLogging:
    """Tests for logging configuration."""

    def test_package_logger_follows_configured_level(self) -> None:
        settings = Settings(_env_file=None, log_level="WARNING", debug=False)  # type: ignore[call-arg]

        setup_logging(settings)

        assert logging.getLogger("schoolflow").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_bound_context_is_cleared(self) -> None:
        """Test operator context binding helpers."""
        bind_context(school_id=12, user_id="u-9")

        assert structlog.contextvars.get_contextvars() == {"school_id": 12, "user_id": "u-9"}
        assert get_logger("schoolflow.test") is not None

        clear_context()

        assert structlog.contextvars.get_contextvars() == {}
