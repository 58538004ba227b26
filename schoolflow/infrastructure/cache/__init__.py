# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""View cache for store listings.

Example:
    from schoolflow.infrastructure.cache import CacheKeys, QueryCache

    cache = QueryCache()
    await cache.invalidate(CacheKeys.Transfer.REQUESTS)
"""

from schoolflow.infrastructure.cache.query_cache import CacheKeys, InvalidationHandler, QueryCache

__all__ = [
    "CacheKeys",
    "InvalidationHandler",
    "QueryCache",
]
