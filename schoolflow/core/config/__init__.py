# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for SchoolFlow.

Example:
    >>> from schoolflow.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from schoolflow.core.config.settings import (
    BulkSettings,
    RecordStoreSettings,
    SelectionSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "RecordStoreSettings",
    "SelectionSettings",
    "BulkSettings",
]
