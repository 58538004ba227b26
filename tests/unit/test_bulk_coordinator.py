# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for bulk class assignment."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from schoolflow.core.config.settings import BulkSettings
from schoolflow.domains.enrollment.bulk import (
    MISSING_REASON,
    BulkAssignmentResult,
    BulkOutcomeKind,
    BulkTransitionCoordinator,
    SummarySeverity,
    summarize,
)
from schoolflow.domains.enrollment.exceptions import BulkAssignmentError
from schoolflow.infrastructure.cache import CacheKeys
from schoolflow.infrastructure.store import StoreTransportError, StoreValidationError
from schoolflow.models.common import ClassRef
from schoolflow.utils.inflight import OperationInProgressError


@pytest.fixture
def coordinator(mock_store, cache, selection, inflight, bulk_settings):
    return BulkTransitionCoordinator(mock_store, cache, selection, inflight, bulk_settings)


@pytest.fixture
def invalidations(cache):
    """Record every namespace invalidated on the cache."""
    seen: list[str] = []

    async def record(namespace: str) -> None:
        seen.append(namespace)

    cache.subscribe("*", record)
    return seen


def assert_complete_and_disjoint(result: BulkAssignmentResult, submitted: list) -> None:
    buckets = [
        result.success,
        result.already_enrolled,
        result.failed,
        result.not_found_or_ineligible,
    ]
    assert sum(len(b) for b in buckets) == len(submitted)
    assert set().union(*map(set, buckets)) == set(submitted)
    for i, left in enumerate(buckets):
        for right in buckets[i + 1:]:
            assert not set(left) & set(right)


class TestBulkAssignmentResult:
    """Tests for classifying a store response."""

    def test_missing_ids_are_not_found(self):
        result = BulkAssignmentResult.from_store_response([1, 2, 3], {"success": [1]})

        assert result.success == [1]
        assert result.not_found_or_ineligible == [2, 3]
        assert result.outcomes[2].reason == MISSING_REASON
        assert_complete_and_disjoint(result, [1, 2, 3])

    def test_unsubmitted_ids_are_ignored(self):
        result = BulkAssignmentResult.from_store_response([1], {"success": [1, 77]})

        assert list(result.outcomes) == [1]

    def test_double_report_keeps_precedence(self):
        body = {
            "success": [1],
            "failed": [{"workflow_id": 1, "error": "late failure"}],
            "not_found_or_ineligible": [2],
            "already_enrolled": [2],
        }

        result = BulkAssignmentResult.from_store_response([1, 2], body)

        assert result.outcomes[1].kind is BulkOutcomeKind.SUCCESS
        assert result.outcomes[2].kind is BulkOutcomeKind.ALREADY_ENROLLED
        assert_complete_and_disjoint(result, [1, 2])

    def test_failed_entries_carry_reason_and_student(self):
        body = {"failed": [{"workflow_id": "4", "student_name": "Ali Musa", "error": "Class is full"}]}

        result = BulkAssignmentResult.from_store_response([4], body)

        outcome = result.outcomes[4]
        assert outcome.kind is BulkOutcomeKind.FAILED
        assert outcome.reason == "Class is full"
        assert outcome.student_name == "Ali Musa"

    def test_submission_order_is_kept(self):
        result = BulkAssignmentResult.from_store_response([3, 1, 2], {"success": [1, 2, 3]})

        assert result.success == [3, 1, 2]


class TestSummarize:
    """Tests for the operator summary."""

    def test_partial_failure_is_warning(self):
        body = {
            "success": [1, 2],
            "failed": [{"workflow_id": i, "error": f"reason {i}"} for i in range(3, 8)],
        }
        result = BulkAssignmentResult.from_store_response(list(range(1, 8)), body)

        summary = summarize(result, failure_preview=3)

        assert summary.severity is SummarySeverity.WARNING
        assert summary.counts == {BulkOutcomeKind.SUCCESS: 2, BulkOutcomeKind.FAILED: 5}
        assert summary.failure_preview == [(3, "reason 3"), (4, "reason 4"), (5, "reason 5")]
        assert summary.more_failures == 2

    def test_already_enrolled_only_is_success(self):
        result = BulkAssignmentResult.from_store_response([1], {"already_enrolled": [1]})

        assert summarize(result).severity is SummarySeverity.SUCCESS
        assert not result.changed_anything

    def test_empty_result_is_info(self):
        summary = summarize(BulkAssignmentResult(outcomes={}))

        assert summary.severity is SummarySeverity.INFO
        assert "no changes" in summary.message


class TestBulkTransitionCoordinator:
    """Tests for BulkTransitionCoordinator.assign."""

    @pytest.mark.asyncio
    async def test_fifty_ids_with_partial_failure(self, coordinator, mock_store, selection, invalidations):
        """47 succeed, 2 were already enrolled, 1 is refused."""
        ids = list(range(1, 51))
        mock_store.bulk_assign_class.return_value = {
            "success": ids[:47],
            "already_enrolled": ids[47:49],
            "failed": [{"workflow_id": 50, "error": "ineligible: graduated"}],
            "not_found_or_ineligible": [],
        }
        selection.toggle_visible_page(ids, True)

        result = await coordinator.assign(selection.ids, destination_class_id=30)
        summary = coordinator.summarize(result)

        mock_store.bulk_assign_class.assert_awaited_once_with(ids, 30, None)
        counts = result.counts()
        assert counts[BulkOutcomeKind.SUCCESS] == 47
        assert counts[BulkOutcomeKind.ALREADY_ENROLLED] == 2
        assert counts[BulkOutcomeKind.FAILED] == 1
        assert summary.failure_preview == [(50, "ineligible: graduated")]
        assert summary.severity is SummarySeverity.WARNING
        assert CacheKeys.Enrollment.STATISTICS in invalidations
        assert_complete_and_disjoint(result, ids)

    @pytest.mark.asyncio
    async def test_select_all_then_assign_submits_exactly_all_ids(
        self, coordinator, mock_store, selection, workflow_filter
    ):
        all_ids = list(range(100, 160))
        mock_store.fetch_all_workflow_ids.return_value = all_ids
        mock_store.bulk_assign_class.return_value = {"success": all_ids}

        await selection.select_all_matching_filter(workflow_filter)
        await coordinator.assign(selection.ids, destination_class_id=30)

        submitted = mock_store.bulk_assign_class.await_args.args[0]
        assert sorted(submitted) == all_ids

    @pytest.mark.asyncio
    async def test_completion_clears_selection_and_keeps_result(self, coordinator, mock_store, selection):
        mock_store.bulk_assign_class.return_value = {"success": [1, 2]}
        selection.toggle_visible_page([1, 2], True)

        result = await coordinator.assign(selection.ids, destination_class_id=30)

        assert len(selection) == 0
        assert selection.last_result is result

    @pytest.mark.asyncio
    async def test_duplicates_are_collapsed(self, coordinator, mock_store):
        mock_store.bulk_assign_class.return_value = {"success": [1, 2]}

        result = await coordinator.assign([1, 2, 1, 2], destination_class_id=30)

        mock_store.bulk_assign_class.assert_awaited_once_with([1, 2], 30, None)
        assert result.total == 2

    @pytest.mark.asyncio
    async def test_ids_equal_as_strings_are_one_workflow(self, coordinator, mock_store):
        mock_store.bulk_assign_class.return_value = {"success": ["1"], "failed": [2]}

        result = await coordinator.assign([1, "1", 2], destination_class_id=30)

        mock_store.bulk_assign_class.assert_awaited_once_with([1, 2], 30, None)
        assert result.success == [1]
        assert result.not_found_or_ineligible == []

    @pytest.mark.asyncio
    async def test_empty_ids_rejected_before_network(self, coordinator, mock_store):
        with pytest.raises(BulkAssignmentError):
            await coordinator.assign([], destination_class_id=30)

        mock_store.bulk_assign_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_destination_must_be_an_option(self, coordinator, mock_store):
        options = [ClassRef(id=30, full_name="Form 2 A")]

        with pytest.raises(BulkAssignmentError, match="not a valid destination"):
            await coordinator.assign([1], destination_class_id=31, destination_options=options)

        mock_store.bulk_assign_class.assert_not_called()

    @pytest.mark.asyncio
    async def test_batch_limit(self, mock_store, cache, selection, inflight):
        coordinator = BulkTransitionCoordinator(
            mock_store, cache, selection, inflight, BulkSettings(max_batch_size=2)
        )

        with pytest.raises(BulkAssignmentError, match="limit 2"):
            await coordinator.assign([1, 2, 3], destination_class_id=30)

    @pytest.mark.asyncio
    async def test_transport_failure_invalidates_nothing(
        self, coordinator, mock_store, selection, invalidations, inflight
    ):
        mock_store.bulk_assign_class.side_effect = StoreTransportError("timed out")
        selection.toggle_visible_page([1, 2], True)

        with pytest.raises(StoreTransportError):
            await coordinator.assign(selection.ids, destination_class_id=30)

        assert invalidations == []
        assert selection.ids == [1, 2]
        assert inflight.busy("workflow") == frozenset()

    @pytest.mark.asyncio
    async def test_whole_request_rejection_propagates(self, coordinator, mock_store, invalidations):
        mock_store.bulk_assign_class.side_effect = StoreValidationError("class_id: invalid", status_code=400)

        with pytest.raises(StoreValidationError):
            await coordinator.assign([1], destination_class_id=30)

        assert invalidations == []

    @pytest.mark.asyncio
    async def test_failed_call_drops_previous_result(self, coordinator, mock_store, selection):
        mock_store.bulk_assign_class.return_value = {"success": [1, 2]}
        await coordinator.assign([1, 2], destination_class_id=30)
        assert selection.last_result is not None

        mock_store.bulk_assign_class.side_effect = StoreTransportError("timed out")
        with pytest.raises(StoreTransportError):
            await coordinator.assign([3], destination_class_id=30)

        assert selection.last_result is None

    @pytest.mark.asyncio
    async def test_overlapping_submission_is_rejected(self, coordinator, mock_store):
        release = asyncio.Event()

        async def slow_assign(*args, **kwargs):
            await release.wait()
            return {"success": [1, 2]}

        mock_store.bulk_assign_class = AsyncMock(side_effect=slow_assign)
        first = asyncio.create_task(coordinator.assign([1, 2], destination_class_id=30))
        await asyncio.sleep(0)

        with pytest.raises(OperationInProgressError):
            await coordinator.assign([2, 3], destination_class_id=30)

        release.set()
        result = await first
        assert result.success == [1, 2]
        mock_store.bulk_assign_class.assert_awaited_once()
