# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Selection of workflows for bulk operations.

The selection is a set of workflow ids kept independently of the page
that is displayed: paging through results keeps it, while any other
filter change empties it. "Select all matching" asks the store for every
id matching the filter, not only the visible page.

Row and page checkbox states are derived from the set; nothing is
stored per row.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from schoolflow.core.config.settings import SelectionSettings
from schoolflow.models.common import RecordId
from schoolflow.models.enrollment import WorkflowFilter

if TYPE_CHECKING:
    from schoolflow.domains.enrollment.bulk import BulkAssignmentResult

logger = logging.getLogger(__name__)

GROUPING_KEYS = frozenset({"from_academic_year_id", "to_academic_year_id", "previous_class_id"})


class WorkflowIdSource(Protocol):
    """Anything that can list every workflow id matching a filter."""

    async def fetch_all_workflow_ids(self, workflow_filter: WorkflowFilter) -> list[RecordId]: ...


class CheckboxState(str, Enum):
    """Tri-state of a "select page" checkbox."""

    CHECKED = "checked"
    INDETERMINATE = "indeterminate"
    UNCHECKED = "unchecked"


class SelectionSet:
    """Set of selected workflow ids.

    Attributes:
        last_result: Outcome of the last bulk submission made from this
            selection. Any change to the selection drops it.
    """

    def __init__(self, source: WorkflowIdSource) -> None:
        """Initialize an empty selection.

        Args:
            source: Store used by ``select_all_matching_filter``.
        """
        self._source = source
        self._ids: dict[RecordId, None] = {}
        self.last_result: BulkAssignmentResult | None = None

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    @property
    def ids(self) -> list[RecordId]:
        """Selected ids in the order they were selected."""
        return list(self._ids)

    def is_selected(self, record_id: RecordId) -> bool:
        return record_id in self._ids

    def toggle_one(self, record_id: RecordId, selected: bool) -> None:
        """Add or remove a single id."""
        self.last_result = None
        if selected:
            self._ids[record_id] = None
        else:
            self._ids.pop(record_id, None)

    def toggle_visible_page(self, page_ids: Iterable[RecordId], selected: bool) -> None:
        """Add or remove exactly the ids of the visible page.

        Ids selected on other pages are left alone.
        """
        for record_id in page_ids:
            self.toggle_one(record_id, selected)

    def replace(self, ids: Iterable[RecordId]) -> None:
        """Replace the whole selection."""
        self._ids = dict.fromkeys(ids)
        self.last_result = None

    def clear(self) -> None:
        """Empty the selection and drop the last bulk result."""
        self._ids.clear()
        self.last_result = None

    async def select_all_matching_filter(self, workflow_filter: WorkflowFilter) -> frozenset[RecordId]:
        """Select every workflow matching a filter, across all pages.

        Args:
            workflow_filter: Settled filter; paging is ignored.

        Returns:
            The ids now selected.

        Raises:
            StoreError: If the ids could not be fetched. The selection is
                left empty.
        """
        try:
            ids = await self._source.fetch_all_workflow_ids(workflow_filter)
        except Exception:
            logger.warning("Select all failed; clearing selection")
            self.clear()
            raise
        self.replace(ids)
        logger.info("Selected %d workflows matching filter", len(self._ids))
        return frozenset(self._ids)

    def is_all_on_page_selected(self, page_ids: Iterable[RecordId]) -> bool:
        """True when the page has rows and every one of them is selected."""
        page = list(page_ids)
        return bool(page) and all(record_id in self._ids for record_id in page)

    def is_partially_on_page_selected(self, page_ids: Iterable[RecordId]) -> bool:
        """True when some, but not all, rows of the page are selected."""
        page = list(page_ids)
        selected = sum(1 for record_id in page if record_id in self._ids)
        return 0 < selected < len(page)

    def page_checkbox_state(self, page_ids: Iterable[RecordId]) -> CheckboxState:
        page = list(page_ids)
        if self.is_all_on_page_selected(page):
            return CheckboxState.CHECKED
        if self.is_partially_on_page_selected(page):
            return CheckboxState.INDETERMINATE
        return CheckboxState.UNCHECKED


class WorkflowFilterState:
    """Current filter of the bulk assignment screen and its selection.

    Changing anything but the page number resets to the first page and
    clears the selection. Changing a grouping key (academic years or the
    previous class) also resets the secondary filters.

    Search text is debounced: ``set_search`` records the text and
    ``settled_filter`` waits for the quiet period before applying it.
    """

    def __init__(
        self,
        workflow_filter: WorkflowFilter,
        selection: SelectionSet,
        settings: SelectionSettings,
    ) -> None:
        if "page_size" not in workflow_filter.model_fields_set:
            workflow_filter = workflow_filter.model_copy(update={"page_size": settings.workflow_page_size})
        self.filter = workflow_filter
        self.selection = selection
        self.settings = settings
        self._pending_search: str | None = None
        self._pending_since: float = 0.0

    def change(self, key: str, value: Any) -> WorkflowFilter:
        """Change one filter field.

        Args:
            key: ``WorkflowFilter`` field name.
            value: New value.

        Returns:
            The updated filter.
        """
        if key == "page":
            return self.change_page(value)
        if key not in WorkflowFilter.model_fields:
            raise KeyError(f"Unknown workflow filter field: {key}")

        updates: dict[str, Any] = {key: value, "page": 1}
        if key in GROUPING_KEYS:
            updates.update(stage=None, promotion_status=None, search=None)
            self._pending_search = None
        self.filter = WorkflowFilter.model_validate({**self.filter.model_dump(), **updates})
        self.selection.clear()
        logger.debug("Workflow filter changed: %s=%r", key, value)
        return self.filter

    def change_page(self, page: int) -> WorkflowFilter:
        """Move to another page; the selection is kept."""
        self.filter = self.filter.model_copy(update={"page": max(1, int(page))})
        return self.filter

    def set_search(self, text: str) -> None:
        """Record search input without applying it yet.

        Text that differs from the applied search clears the selection
        at once, before the input settles.
        """
        if (text if text.strip() else None) != self.filter.search:
            self.selection.clear()
        self._pending_search = text
        self._pending_since = asyncio.get_running_loop().time()

    @property
    def search_pending(self) -> bool:
        return self._pending_search is not None

    async def settled_filter(self) -> WorkflowFilter:
        """Wait for pending search input to settle and return the filter.

        Returns immediately when no search input is pending.
        """
        loop = asyncio.get_running_loop()
        while self._pending_search is not None:
            remaining = self._pending_since + self.settings.search_debounce_seconds - loop.time()
            if remaining > 0:
                await asyncio.sleep(remaining)
                continue
            text = self._pending_search
            self._pending_search = None
            if (text if text.strip() else None) != self.filter.search:
                self.change("search", text)
        return self.filter

    async def select_all_matching(self) -> frozenset[RecordId]:
        """Select every workflow matching the settled filter."""
        settled = await self.settled_filter()
        return await self.selection.select_all_matching_filter(settled)
