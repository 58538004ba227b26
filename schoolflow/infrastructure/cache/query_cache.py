# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory view cache with namespace invalidation.

Listings fetched from the record store are cached per namespace and
per query parameters. Mutations invalidate whole namespaces once the
store has answered, and invalidation listeners (a screen that wants to
refetch, for example) are notified.

Example:
    cache = QueryCache()

    page = await cache.get_or_fetch(
        CacheKeys.Enrollment.WORKFLOWS,
        workflow_filter.to_query(),
        lambda: store.list_workflows(workflow_filter),
    )

    # After a mutation resolved
    await cache.invalidate(*CacheKeys.Enrollment.AFFECTED_BY_ASSIGNMENT)
"""

import asyncio
import fnmatch
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Invalidation listeners receive the namespace that was dropped
InvalidationHandler = Callable[[str], Awaitable[None]]


class CacheKeys:
    """Cache namespaces organized by domain."""

    class Enrollment:
        """Enrollment workflow views."""

        WORKFLOWS = "enrollment_workflows"
        WORKFLOWS_BULK = "enrollment_workflows_bulk"
        ACADEMIC_YEAR_ENROLLMENTS = "academic_year_enrollments"
        STATISTICS = "enrollment_statistics"

        # Every view a class assignment can change: counts, stage
        # distributions and class rosters move together.
        AFFECTED_BY_ASSIGNMENT = (
            WORKFLOWS,
            WORKFLOWS_BULK,
            ACADEMIC_YEAR_ENROLLMENTS,
            STATISTICS,
        )

    class Transfer:
        """Transfer request views."""

        REQUESTS = "transfer_requests"
        ELIGIBLE_CLASSES = "transfer_eligible_classes"


class QueryCache:
    """Namespace-scoped async cache for store query results.

    Designed for single-threaded async use. Each namespace carries a
    generation counter so that a fetch started before an invalidation
    never writes its (possibly stale) result back afterwards.

    Each namespace keeps at most ``max_entries`` results; the least
    recently used one is evicted first.
    """

    def __init__(self, max_entries: int = 128) -> None:
        """Initialize an empty cache.

        Args:
            max_entries: Entry limit per namespace.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: dict[str, dict[str, Any]] = {}
        self._generations: dict[str, int] = {}
        self._handlers: dict[str, list[InvalidationHandler]] = {}

    @staticmethod
    def make_key(params: Mapping[str, Any] | None) -> str:
        """Build a stable key from query parameters."""
        return json.dumps(dict(params or {}), sort_keys=True, default=str)

    def peek(self, namespace: str, params: Mapping[str, Any] | None = None) -> Any | None:
        """Return a cached value without fetching."""
        return self._entries.get(namespace, {}).get(self.make_key(params))

    def contains(self, namespace: str, params: Mapping[str, Any] | None = None) -> bool:
        return self.make_key(params) in self._entries.get(namespace, {})

    def generation(self, namespace: str) -> int:
        """Number of times a namespace has been invalidated."""
        return self._generations.get(namespace, 0)

    async def get_or_fetch(
        self,
        namespace: str,
        params: Mapping[str, Any] | None,
        fetch: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached value or fetch and cache it.

        Fetch errors propagate and nothing is cached.

        Args:
            namespace: Cache namespace.
            params: Query parameters identifying the entry.
            fetch: Coroutine factory producing the value.

        Returns:
            Cached or freshly fetched value.
        """
        key = self.make_key(params)
        bucket = self._entries.get(namespace, {})
        if key in bucket:
            value = bucket.pop(key)
            bucket[key] = value
            return value

        generation = self.generation(namespace)
        value = await fetch()
        if self.generation(namespace) == generation:
            bucket = self._entries.setdefault(namespace, {})
            bucket[key] = value
            while len(bucket) > self.max_entries:
                del bucket[next(iter(bucket))]
        else:
            logger.debug("Discarded stale fetch for %s", namespace)
        return value

    def subscribe(self, pattern: str, handler: InvalidationHandler) -> None:
        """Register a handler called when a matching namespace is invalidated.

        Args:
            pattern: Namespace or fnmatch pattern (e.g. "enrollment_*").
            handler: Async callable receiving the namespace.
        """
        self._handlers.setdefault(pattern, []).append(handler)

    def unsubscribe(self, pattern: str, handler: InvalidationHandler) -> bool:
        handlers = self._handlers.get(pattern)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._handlers[pattern]
        return True

    async def invalidate(self, *namespaces: str) -> None:
        """Drop every entry of the given namespaces and notify listeners.

        Handler errors are logged and do not stop other handlers.
        """
        for namespace in namespaces:
            dropped = len(self._entries.pop(namespace, {}))
            self._generations[namespace] = self.generation(namespace) + 1
            logger.debug("Invalidated %s (%d entries)", namespace, dropped)

            handlers = [
                handler
                for pattern, registered in self._handlers.items()
                if fnmatch.fnmatch(namespace, pattern)
                for handler in registered
            ]
            if not handlers:
                continue
            results = await asyncio.gather(
                *(handler(namespace) for handler in handlers),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    logger.error(
                        "Invalidation handler failed for %s: %s",
                        namespace,
                        str(result),
                        exc_info=result,
                    )

    def clear(self) -> None:
        """Drop all entries without notifying listeners."""
        self._entries.clear()
