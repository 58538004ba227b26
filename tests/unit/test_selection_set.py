# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for workflow selection and filter state."""

import asyncio

import pytest

from schoolflow.core.config.settings import SelectionSettings
from schoolflow.domains.enrollment.selection import (
    CheckboxState,
    SelectionSet,
    WorkflowFilterState,
)
from schoolflow.infrastructure.store import StoreTransportError
from schoolflow.models.enrollment import PromotionStatus, WorkflowFilter


@pytest.fixture
def filter_state(workflow_filter, selection, selection_settings):
    return WorkflowFilterState(workflow_filter, selection, selection_settings)


class TestSelectionSet:
    """Tests for SelectionSet."""

    def test_toggle_one(self, selection):
        selection.toggle_one(1, True)
        selection.toggle_one(2, True)
        selection.toggle_one(1, False)

        assert selection.ids == [2]
        assert 2 in selection

    def test_toggle_visible_page_keeps_other_pages(self, selection):
        selection.toggle_one(99, True)

        selection.toggle_visible_page([1, 2, 3], True)
        selection.toggle_visible_page([1, 2, 3], False)

        assert selection.ids == [99]

    def test_page_checkbox_states(self, selection):
        page = [1, 2, 3]

        assert selection.page_checkbox_state(page) is CheckboxState.UNCHECKED

        selection.toggle_one(2, True)
        assert selection.is_partially_on_page_selected(page)
        assert selection.page_checkbox_state(page) is CheckboxState.INDETERMINATE

        selection.toggle_visible_page(page, True)
        assert selection.is_all_on_page_selected(page)
        assert selection.page_checkbox_state(page) is CheckboxState.CHECKED

    def test_empty_page_is_never_all_selected(self, selection):
        selection.toggle_one(1, True)

        assert not selection.is_all_on_page_selected([])
        assert selection.page_checkbox_state([]) is CheckboxState.UNCHECKED

    def test_clear_drops_last_result(self, selection):
        selection.toggle_one(1, True)
        selection.last_result = object()

        selection.clear()

        assert len(selection) == 0
        assert selection.last_result is None

    def test_toggle_one_drops_last_result(self, selection):
        selection.last_result = object()

        selection.toggle_one(3, True)

        assert selection.last_result is None

    def test_page_toggle_drops_last_result(self, selection):
        selection.last_result = object()

        selection.toggle_visible_page([1, 2], False)

        assert selection.last_result is None

    @pytest.mark.asyncio
    async def test_select_all_drops_last_result(self, selection, mock_store, workflow_filter):
        mock_store.fetch_all_workflow_ids.return_value = [1, 2]
        selection.last_result = object()

        await selection.select_all_matching_filter(workflow_filter)

        assert selection.last_result is None

    @pytest.mark.asyncio
    async def test_select_all_matching_uses_all_ids_endpoint(self, selection, mock_store, workflow_filter):
        mock_store.fetch_all_workflow_ids.return_value = list(range(1, 51))
        selection.toggle_one(1000, True)

        selected = await selection.select_all_matching_filter(workflow_filter)

        assert selected == frozenset(range(1, 51))
        assert 1000 not in selection
        mock_store.fetch_all_workflow_ids.assert_awaited_once_with(workflow_filter)
        mock_store.list_workflows.assert_not_called()

    @pytest.mark.asyncio
    async def test_select_all_failure_leaves_selection_empty(self, selection, mock_store, workflow_filter):
        mock_store.fetch_all_workflow_ids.side_effect = StoreTransportError("down")
        selection.toggle_one(5, True)

        with pytest.raises(StoreTransportError):
            await selection.select_all_matching_filter(workflow_filter)

        assert len(selection) == 0


class TestWorkflowFilterState:
    """Tests for filter changes and their effect on the selection."""

    def test_page_change_preserves_selection(self, filter_state, selection):
        selection.toggle_visible_page([1, 2, 3], True)

        filter_state.change("page", 2)

        assert filter_state.filter.page == 2
        assert selection.ids == [1, 2, 3]

    def test_filter_change_clears_selection_and_resets_page(self, filter_state, selection):
        filter_state.change_page(3)
        selection.toggle_visible_page([1, 2, 3], True)

        filter_state.change("promotion_status", "repeated")

        assert len(selection) == 0
        assert filter_state.filter.page == 1
        assert filter_state.filter.promotion_status is PromotionStatus.REPEATED

    def test_grouping_key_change_resets_other_filters(self, filter_state, selection):
        filter_state.change("promotion_status", "repeated")
        filter_state.change("search", "Ali")
        selection.toggle_one(1, True)

        filter_state.change("previous_class_id", 11)

        assert filter_state.filter.previous_class_id == 11
        assert filter_state.filter.promotion_status is None
        assert filter_state.filter.search is None
        assert len(selection) == 0

    def test_unknown_field_is_rejected(self, filter_state):
        with pytest.raises(KeyError):
            filter_state.change("colour", "blue")

    @pytest.mark.asyncio
    async def test_search_keystroke_clears_selection_before_settling(self, filter_state, selection):
        selection.toggle_visible_page([1, 2, 3], True)
        selection.last_result = object()

        filter_state.set_search("Ali")

        assert len(selection) == 0
        assert selection.last_result is None
        assert filter_state.search_pending

    @pytest.mark.asyncio
    async def test_unchanged_search_keeps_selection(self, filter_state, selection):
        filter_state.change("search", "Ali")
        selection.toggle_one(1, True)

        filter_state.set_search("Ali")

        assert selection.ids == [1]

    def test_page_size_comes_from_settings(self, workflow_filter, selection):
        settings = SelectionSettings(search_debounce_seconds=0.01, workflow_page_size=50)

        state = WorkflowFilterState(workflow_filter, selection, settings)

        assert state.filter.page_size == 50
        assert state.filter.to_query()["page_size"] == "50"

    def test_explicit_page_size_is_kept(self, selection):
        settings = SelectionSettings(workflow_page_size=50)
        explicit = WorkflowFilter(
            from_academic_year_id=1, to_academic_year_id=2, previous_class_id=10, page_size=10
        )

        state = WorkflowFilterState(explicit, selection, settings)

        assert state.filter.page_size == 10

    @pytest.mark.asyncio
    async def test_search_is_applied_once_settled(self, filter_state, selection):
        selection.toggle_one(1, True)
        filter_state.set_search("Ali")

        assert filter_state.filter.search is None
        assert filter_state.search_pending

        settled = await filter_state.settled_filter()

        assert settled.search == "Ali"
        assert not filter_state.search_pending
        assert len(selection) == 0

    @pytest.mark.asyncio
    async def test_later_keystroke_extends_debounce(self, filter_state):
        filter_state.set_search("A")
        waiter = asyncio.create_task(filter_state.settled_filter())
        await asyncio.sleep(0)
        filter_state.set_search("Ali")

        settled = await waiter

        assert settled.search == "Ali"

    @pytest.mark.asyncio
    async def test_select_all_matching_waits_for_search(self, filter_state, mock_store):
        mock_store.fetch_all_workflow_ids.return_value = [4, 5]
        filter_state.set_search("Ali")

        selected = await filter_state.select_all_matching()

        assert selected == frozenset({4, 5})
        sent_filter = mock_store.fetch_all_workflow_ids.await_args.args[0]
        assert sent_filter.search == "Ali"


def test_selection_is_independent_per_instance(mock_store):
    first, second = SelectionSet(mock_store), SelectionSet(mock_store)
    first.toggle_one(1, True)

    assert 1 not in second
