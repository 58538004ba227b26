# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record store integration.

This package provides:
- RecordStoreClient: Async HTTP client for the school administration REST API
- Store exceptions separating transport failures from validation rejections

Usage:
    from schoolflow.infrastructure.store import RecordStoreClient

    async with RecordStoreClient(settings.store) as store:
        page = await store.list_workflows(workflow_filter)
"""

from schoolflow.infrastructure.store.client import RecordStoreClient
from schoolflow.infrastructure.store.exceptions import (
    StoreError,
    StoreNotFoundError,
    StoreProtocolError,
    StoreTransportError,
    StoreValidationError,
)

__all__ = [
    "RecordStoreClient",
    "StoreError",
    "StoreTransportError",
    "StoreValidationError",
    "StoreNotFoundError",
    "StoreProtocolError",
]
