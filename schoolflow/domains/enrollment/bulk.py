# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bulk class assignment.

A bulk assignment submits many workflow ids in one store call. The call
is not atomic: each id ends up in exactly one of four outcomes.

- success: the student was enrolled in the destination class
- already_enrolled: the student already had an enrollment for the year
- failed: the store refused the id, with a reason
- not_found_or_ineligible: the workflow does not exist or is not in a
  stage that accepts a class

A partial failure is a normal result. A transport error means the whole
call failed and nothing is reported per id.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from schoolflow.core.config.settings import BulkSettings
from schoolflow.domains.enrollment.exceptions import BulkAssignmentError
from schoolflow.domains.enrollment.selection import SelectionSet
from schoolflow.infrastructure.cache import CacheKeys, QueryCache
from schoolflow.infrastructure.store import RecordStoreClient
from schoolflow.models.common import ClassRef, RecordId
from schoolflow.utils.inflight import InFlightRegistry

logger = logging.getLogger(__name__)

WORKFLOW_KIND = "workflow"
MISSING_REASON = "missing from store response"


class BulkOutcomeKind(str, Enum):
    """Per-id outcome of a bulk assignment, in precedence order."""

    SUCCESS = "success"
    ALREADY_ENROLLED = "already_enrolled"
    FAILED = "failed"
    NOT_FOUND_OR_INELIGIBLE = "not_found_or_ineligible"


# An id reported under several keys keeps the first one in this order
OUTCOME_PRECEDENCE: tuple[BulkOutcomeKind, ...] = tuple(BulkOutcomeKind)


@dataclass(frozen=True)
class BulkOutcome:
    """Outcome of one id in a bulk submission."""

    kind: BulkOutcomeKind
    reason: str | None = None
    student_name: str | None = None


def _entry_id(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        for key in ("workflow_id", "id"):
            if entry.get(key) is not None:
                return entry[key]
        return None
    return entry


def _entry_reason(entry: Any) -> str | None:
    if isinstance(entry, Mapping):
        for key in ("error", "reason", "detail"):
            if entry.get(key):
                return str(entry[key])
    return None


def _match_submitted(raw_id: Any, submitted: Mapping[str, RecordId]) -> RecordId | None:
    # The store may echo integer ids as strings and vice versa
    if raw_id is None:
        return None
    return submitted.get(str(raw_id))


@dataclass(frozen=True)
class BulkAssignmentResult:
    """Complete, disjoint classification of the ids of one submission.

    Attributes:
        outcomes: Outcome of every submitted id, in submission order.
        class_id: Destination class of the submission.
    """

    outcomes: Mapping[RecordId, BulkOutcome]
    class_id: RecordId | None = None

    def _bucket(self, kind: BulkOutcomeKind) -> list[RecordId]:
        return [record_id for record_id, outcome in self.outcomes.items() if outcome.kind is kind]

    @property
    def success(self) -> list[RecordId]:
        return self._bucket(BulkOutcomeKind.SUCCESS)

    @property
    def already_enrolled(self) -> list[RecordId]:
        return self._bucket(BulkOutcomeKind.ALREADY_ENROLLED)

    @property
    def failed(self) -> list[RecordId]:
        return self._bucket(BulkOutcomeKind.FAILED)

    @property
    def not_found_or_ineligible(self) -> list[RecordId]:
        return self._bucket(BulkOutcomeKind.NOT_FOUND_OR_INELIGIBLE)

    def counts(self) -> dict[BulkOutcomeKind, int]:
        """Number of ids per outcome, every outcome included."""
        totals = dict.fromkeys(BulkOutcomeKind, 0)
        for outcome in self.outcomes.values():
            totals[outcome.kind] += 1
        return totals

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def changed_anything(self) -> bool:
        return any(o.kind is BulkOutcomeKind.SUCCESS for o in self.outcomes.values())

    def failure_reasons(self) -> list[tuple[RecordId, str]]:
        """Reasons of failed ids, in submission order."""
        return [
            (record_id, outcome.reason or "Unknown reason")
            for record_id, outcome in self.outcomes.items()
            if outcome.kind is BulkOutcomeKind.FAILED
        ]

    @classmethod
    def from_store_response(
        cls,
        submitted_ids: Sequence[RecordId],
        body: Mapping[str, Any],
        class_id: RecordId | None = None,
    ) -> "BulkAssignmentResult":
        """Classify every submitted id from a bulk assignment body.

        Entries may be bare ids or objects carrying ``workflow_id`` and
        ``error``. Ids the body does not mention are classified
        not_found_or_ineligible; ids that were not submitted are ignored.

        Args:
            submitted_ids: Ids sent to the store, deduplicated.
            body: Decoded store response.
            class_id: Destination class.

        Returns:
            Result covering exactly the submitted ids.
        """
        by_key = {str(record_id): record_id for record_id in submitted_ids}
        found: dict[RecordId, BulkOutcome] = {}

        for kind in OUTCOME_PRECEDENCE:
            entries = body.get(kind.value) or []
            if not isinstance(entries, list):
                logger.warning("Bulk response field %s is not a list; ignored", kind.value)
                continue
            for entry in entries:
                raw_id = _entry_id(entry)
                record_id = _match_submitted(raw_id, by_key)
                if record_id is None:
                    logger.warning("Bulk response reported unsubmitted id %r under %s", raw_id, kind.value)
                    continue
                if record_id in found:
                    if found[record_id].kind is not kind:
                        logger.warning(
                            "Bulk response reported id %r as both %s and %s; keeping %s",
                            record_id,
                            found[record_id].kind.value,
                            kind.value,
                            found[record_id].kind.value,
                        )
                    continue
                student_name = entry.get("student_name") if isinstance(entry, Mapping) else None
                found[record_id] = BulkOutcome(kind, _entry_reason(entry), student_name)

        outcomes: dict[RecordId, BulkOutcome] = {}
        missing = 0
        for record_id in submitted_ids:
            outcome = found.get(record_id)
            if outcome is None:
                missing += 1
                outcome = BulkOutcome(BulkOutcomeKind.NOT_FOUND_OR_INELIGIBLE, MISSING_REASON)
            outcomes[record_id] = outcome
        if missing:
            logger.warning("Bulk response omitted %d submitted ids", missing)

        return cls(outcomes=outcomes, class_id=class_id)


class SummarySeverity(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class BulkAssignmentSummary:
    """Operator-facing digest of a bulk result.

    Attributes:
        counts: Non-zero counts per outcome.
        severity: warning when anything failed or was not found, success
            when something was enrolled or already enrolled, info when the
            submission changed nothing.
        failure_preview: First few (id, reason) pairs of failed ids.
        more_failures: Number of failed ids not in the preview.
    """

    counts: dict[BulkOutcomeKind, int]
    severity: SummarySeverity
    failure_preview: list[tuple[RecordId, str]] = field(default_factory=list)
    more_failures: int = 0

    @property
    def message(self) -> str:
        if not self.counts:
            return "Bulk assignment finished: no changes were made."
        parts = [f"{count} {kind.value.replace('_', ' ')}" for kind, count in self.counts.items()]
        return "Bulk assignment finished: " + ", ".join(parts) + "."


def summarize(result: BulkAssignmentResult, failure_preview: int = 3) -> BulkAssignmentSummary:
    """Build the summary shown after a bulk assignment.

    Args:
        result: Classified submission outcome.
        failure_preview: Number of failure reasons to include.

    Returns:
        Summary with distinct counts, severity and failure preview.
    """
    counts = {kind: n for kind, n in result.counts().items() if n}
    if counts.get(BulkOutcomeKind.FAILED) or counts.get(BulkOutcomeKind.NOT_FOUND_OR_INELIGIBLE):
        severity = SummarySeverity.WARNING
    elif counts:
        severity = SummarySeverity.SUCCESS
    else:
        severity = SummarySeverity.INFO

    reasons = result.failure_reasons()
    preview = reasons[: max(failure_preview, 0)]
    return BulkAssignmentSummary(
        counts=counts,
        severity=severity,
        failure_preview=preview,
        more_failures=len(reasons) - len(preview),
    )


class BulkTransitionCoordinator:
    """Submits bulk class assignments and reconciles local state.

    Example:
        coordinator = BulkTransitionCoordinator(store, cache, selection, inflight, settings.bulk)
        result = await coordinator.assign(selection.ids, destination_class_id=42)
        banner = summarize(result)
    """

    def __init__(
        self,
        store: RecordStoreClient,
        cache: QueryCache,
        selection: SelectionSet,
        inflight: InFlightRegistry,
        settings: BulkSettings,
    ) -> None:
        self.store = store
        self.cache = cache
        self.selection = selection
        self.inflight = inflight
        self.settings = settings

    def _check_preconditions(
        self,
        ids: Iterable[RecordId],
        destination_class_id: RecordId | None,
        destination_options: Sequence[ClassRef] | None,
    ) -> list[RecordId]:
        # ids equal as strings are one workflow to the store
        by_key: dict[str, RecordId] = {}
        for record_id in ids:
            by_key.setdefault(str(record_id), record_id)
        unique_ids = list(by_key.values())
        if not unique_ids:
            raise BulkAssignmentError("Select at least one workflow to assign")
        if destination_class_id is None or destination_class_id == "":
            raise BulkAssignmentError("Select a destination class")
        if destination_options is not None and not any(
            option.id == destination_class_id for option in destination_options
        ):
            raise BulkAssignmentError(
                f"Class {destination_class_id} is not a valid destination for this cohort"
            )
        limit = self.settings.max_batch_size
        if limit and len(unique_ids) > limit:
            raise BulkAssignmentError(
                f"Cannot assign {len(unique_ids)} workflows at once (limit {limit})"
            )
        return unique_ids

    async def assign(
        self,
        ids: Iterable[RecordId],
        destination_class_id: RecordId,
        notes: str | None = None,
        destination_options: Sequence[ClassRef] | None = None,
    ) -> BulkAssignmentResult:
        """Assign a destination class to many workflows in one store call.

        Args:
            ids: Workflow ids; duplicates, including ids equal only as
                strings, are collapsed to their first occurrence.
            destination_class_id: Destination class.
            notes: Optional notes recorded with each assignment.
            destination_options: Selectable destination classes; when
                given, the destination must be one of them.

        Returns:
            Outcome of every submitted id.

        Raises:
            BulkAssignmentError: If the submission is refused locally.
            OperationInProgressError: If an id is already being submitted.
            StoreTransportError: If the call failed as a whole.
            StoreValidationError: If the store rejected the whole request.
        """
        unique_ids = self._check_preconditions(ids, destination_class_id, destination_options)

        async with self.inflight.hold(WORKFLOW_KIND, unique_ids):
            logger.info(
                "Submitting bulk assignment of %d workflows to class %s",
                len(unique_ids),
                destination_class_id,
            )
            try:
                body = await self.store.bulk_assign_class(unique_ids, destination_class_id, notes)
            except Exception:
                self.selection.last_result = None
                raise

        result = BulkAssignmentResult.from_store_response(unique_ids, body, destination_class_id)
        counts = result.counts()
        logger.info(
            "Bulk assignment to class %s: %d success, %d already enrolled, %d failed, %d not found",
            destination_class_id,
            counts[BulkOutcomeKind.SUCCESS],
            counts[BulkOutcomeKind.ALREADY_ENROLLED],
            counts[BulkOutcomeKind.FAILED],
            counts[BulkOutcomeKind.NOT_FOUND_OR_INELIGIBLE],
        )

        self.selection.clear()
        self.selection.last_result = result
        await self.cache.invalidate(*CacheKeys.Enrollment.AFFECTED_BY_ASSIGNMENT)
        return result

    def summarize(self, result: BulkAssignmentResult) -> BulkAssignmentSummary:
        """Summarize a result with the configured failure preview size."""
        return summarize(result, self.settings.failure_preview_count)
