# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment workflow records, filters and request payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator

from schoolflow.models.common import ClassRef, RecordId, StoreModel, StudentRef

# Filter value meaning "do not filter on this field"
ALL = "all"


class WorkflowStage(str, Enum):
    """Position of an enrollment workflow in its state machine."""

    AWAITING_PROMOTION_DECISION = "awaiting_promotion_decision"
    NEEDS_STREAM_SELECTION = "needs_stream_selection"
    NEEDS_EXTERNAL_RESULTS = "needs_external_results"
    READY_FOR_ENROLLMENT = "ready_for_enrollment"
    ENROLLMENT_COMPLETE = "enrollment_complete"


class PromotionStatus(str, Enum):
    """Outcome of the end-of-year promotion decision."""

    PROMOTED = "promoted"
    CONDITIONAL = "conditional"
    REPEATED = "repeated"
    GRADUATED = "graduated"


class PromotionDecision(StoreModel):
    """Promotion decision attached to a workflow."""

    id: RecordId | None = None
    promotion_status: PromotionStatus
    previous_class: ClassRef | None = None
    remarks: str | None = None


class EnrollmentWorkflow(StoreModel):
    """Per-student record for one academic-year transition.

    Created by the store when a promotion cycle is initialized for a
    (from year, to year) pair and advanced by ``select_class`` updates.
    """

    id: RecordId
    student: StudentRef
    current_stage: WorkflowStage
    promotion_decision: PromotionDecision | None = None
    previous_class_name: str | None = None
    target_class_options: list[ClassRef] = Field(default_factory=list)
    selected_class: ClassRef | None = None
    from_academic_year: RecordId | None = None
    to_academic_year: RecordId | None = None

    @model_validator(mode="after")
    def check_selected_class(self) -> Self:
        """A class is selected exactly when enrollment is complete."""
        complete = self.current_stage is WorkflowStage.ENROLLMENT_COMPLETE
        if complete and self.selected_class is None:
            raise ValueError(
                f"Workflow {self.id} is enrollment_complete but has no selected_class"
            )
        if not complete and self.selected_class is not None:
            raise ValueError(
                f"Workflow {self.id} has a selected_class while in stage "
                f"{self.current_stage.value}"
            )
        return self

    @property
    def promotion_status(self) -> PromotionStatus | None:
        if self.promotion_decision is None:
            return None
        return self.promotion_decision.promotion_status

    @property
    def is_complete(self) -> bool:
        return self.current_stage is WorkflowStage.ENROLLMENT_COMPLETE

    def offers_class(self, class_id: RecordId) -> bool:
        """Check whether a class is one of the workflow's candidate classes."""
        return any(option.id == class_id for option in self.target_class_options)


class WorkflowFilter(BaseModel):
    """Filter for workflow listings and the all-ids fetch.

    The academic years and the previous class are the grouping keys of
    the bulk assignment screen and are always required.
    """

    from_academic_year_id: RecordId
    to_academic_year_id: RecordId


class NewStudentEnrollmentRequest(BaseModel):
    """Payload registering a new student and parent straight into a class.

    Both records are passed through to the store as given; at least one
    field of each is required.
    """

    student: dict[str, Any] = Field(min_length=1)
    parent: dict[str, Any] = Field(min_length=1)
    previous_class_id: RecordId
    stage: WorkflowStage | None = None
    promotion_status: PromotionStatus | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1)

    @field_validator("stage", "promotion_status", "search", mode="before")
    @classmethod
    def normalize_all(cls, value: Any) -> Any:
        # "all" and blank values disable the filter
        if isinstance(value, str) and (value == ALL or not value.strip()):
            return None
        return value

    @field_validator("previous_class_id")
    @classmethod
    def reject_all_class(cls, value: RecordId) -> RecordId:
        if value == ALL:
            raise ValueError("A specific previous class is required")
        return value

    @property
    def grouping_key(self) -> tuple[RecordId, RecordId, RecordId]:
        return (self.from_academic_year_id, self.to_academic_year_id, self.previous_class_id)

    def to_query(self, include_paging: bool = True) -> dict[str, str]:
        """Build store query parameters.

        Args:
            include_paging: Include page and page_size (list endpoint only).

        Returns:
            Query parameter mapping.
        """
        query: dict[str, str] = {}
        if include_paging:
            query["page"] = str(self.page)
            query["page_size"] = str(self.page_size)
        query["from_academic_year"] = str(self.from_academic_year_id)
        query["to_academic_year"] = str(self.to_academic_year_id)
        query["previous_class_id"] = str(self.previous_class_id)
        if self.stage is not None:
            query["current_stage"] = self.stage.value
        if self.promotion_status is not None:
            query["promotion_status"] = self.promotion_status.value
        if self.search:
            query["search"] = self.search
        return query


class SelectClassRequest(BaseModel):
    """Single-workflow class assignment payload."""

    update_type: str = "select_class"
    class_id: RecordId
    notes: str | None = None


class BulkAssignRequest(BaseModel):
    """Bulk class assignment payload."""

    workflow_ids: list[RecordId] = Field(min_length=1)
    class_id: RecordId
    notes: str = ""


class InitializeWorkflowsRequest(BaseModel):
    """Payload creating the workflows of a promotion cycle."""

    from_academic_year_id: RecordId
    to_academic_year_id: RecordId


class EnrollmentStatus(str, Enum):
    """Status of a confirmed enrollment for an academic year."""

    ENROLLED = "enrolled"
    PENDING = "pending"
    WITHDRAWN = "withdrawn"


class StudentEnrollment(StoreModel):
    """Confirmed enrollment of a student in a class for a year."""

    id: RecordId
    student: StudentRef
    assigned_class: ClassRef | None = None
    status: str | None = None
    notes: str | None = None


class EnrollmentFilter(BaseModel):
    """Filter for the confirmed-enrollment listing of one class."""

    academic_year_id: RecordId
    assigned_class_id: RecordId
    status: str | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1)

    @field_validator("status", "search", mode="before")
    @classmethod
    def normalize_all(cls, value: Any) -> Any:
        if isinstance(value, str) and (value == ALL or not value.strip()):
            return None
        return value

    def to_query(self) -> dict[str, str]:
        query = {
            "page": str(self.page),
            "page_size": str(self.page_size),
            "academic_year": str(self.academic_year_id),
            "assigned_class_id": str(self.assigned_class_id),
        }
        if self.status:
            query["status"] = self.status
        if self.search:
            query["search"] = self.search
        return query


class EnrollmentStatistics(StoreModel):
    """Aggregate enrollment counts computed by the store."""

    academic_year_id: RecordId | None = None
    total: int | None = None
    by_stage: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
