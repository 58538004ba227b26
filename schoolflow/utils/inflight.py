# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Duplicate-submission protection for in-flight mutations.

The record store does not guarantee idempotency for repeated transitions,
so a record must not be submitted again while an earlier mutation on it
has not resolved. This is the library-side equivalent of disabling the
triggering control for the duration of a request.

Example:
    registry = InFlightRegistry()

    async with registry.hold("workflow", [11, 12]):
        await store.bulk_assign_class([11, 12], class_id=3)
"""

import logging
from collections.abc import AsyncIterator, Hashable, Iterable
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class OperationInProgressError(Exception):
    """Raised when a mutation targets a record that is already in flight.

    Attributes:
        kind: Record kind (e.g. "workflow", "transfer").
        ids: The ids that were already held.
    """

    def __init__(self, kind: str, ids: Iterable[Hashable]) -> None:
        self.kind = kind
        self.ids = sorted(ids, key=str)
        super().__init__(
            f"A {kind} mutation is already in progress for: "
            + ", ".join(str(i) for i in self.ids)
        )


class InFlightRegistry:
    """Tracks which records currently have a mutation in flight.

    Designed for single-threaded asyncio use, like the rest of the
    package. Holding is all-or-nothing: if any requested id is busy,
    nothing is acquired.
    """

    def __init__(self) -> None:
        self._held: dict[str, set[Hashable]] = {}

    def is_in_flight(self, kind: str, record_id: Hashable) -> bool:
        """Check whether a record has a mutation in flight."""
        return record_id in self._held.get(kind, set())

    def busy(self, kind: str) -> frozenset[Hashable]:
        """Return every id of the given kind with a mutation in flight."""
        return frozenset(self._held.get(kind, set()))

    def acquire(self, kind: str, ids: Iterable[Hashable]) -> list[Hashable]:
        """Mark ids as in flight.

        Args:
            kind: Record kind.
            ids: Ids to hold.

        Returns:
            The ids that were acquired (deduplicated).

        Raises:
            OperationInProgressError: If any id is already held.
        """
        wanted = list(dict.fromkeys(ids))
        held = self._held.setdefault(kind, set())
        clash = [i for i in wanted if i in held]
        if clash:
            logger.warning("Rejected duplicate %s submission: %s", kind, clash)
            raise OperationInProgressError(kind, clash)
        held.update(wanted)
        return wanted

    def release(self, kind: str, ids: Iterable[Hashable]) -> None:
        """Release ids previously acquired."""
        held = self._held.get(kind)
        if held is None:
            return
        held.difference_update(ids)
        if not held:
            del self._held[kind]

    @asynccontextmanager
    async def hold(self, kind: str, ids: Iterable[Hashable]) -> AsyncIterator[list[Hashable]]:
        """Hold ids for the duration of the block, releasing them afterwards."""
        acquired = self.acquire(kind, ids)
        try:
            yield acquired
        finally:
            self.release(kind, acquired)
