# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transfer request records, filters and request payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from schoolflow.models.common import ClassRef, RecordId, SchoolRef, StoreModel, StudentRef
from schoolflow.models.enrollment import ALL


class TransferStatus(str, Enum):
    """Lifecycle status of an inter-school transfer request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TargetClass(StoreModel):
    """Class at the receiving school eligible to take a transferred student."""

    id: RecordId
    full_name: str | None = None
    level: str | None = None
    stream: str | None = None
    section: str | None = None


class TransferRequest(StoreModel):
    """Request to move a student from one school to another."""

    id: RecordId
    student: StudentRef
    from_school: SchoolRef
    to_school: SchoolRef
    from_school_id: RecordId | None = None
    to_school_id: RecordId | None = None
    effective_academic_year: Any = None  # name in lists, object in detail
    effective_academic_year_id: RecordId | None = None
    status: TransferStatus
    status_display: str | None = None
    transfer_reason: str | None = None
    request_date: datetime | None = None
    review_date: datetime | None = None
    completion_date: datetime | None = None
    requested_by: str | None = None
    reviewed_by: str | None = None
    completed_by: str | None = None
    from_school_notes: str | None = None
    to_school_notes: str | None = None
    final_class_at_to_school: ClassRef | None = None

    # Snapshot display fields
    previous_level_display: str | None = None
    last_promotion_status_display: str | None = None

    @model_validator(mode="after")
    def fill_school_ids(self) -> "TransferRequest":
        # List serializers send both; detail serializers may only nest
        if self.from_school_id is None:
            self.from_school_id = self.from_school.id
        if self.to_school_id is None:
            self.to_school_id = self.to_school.id
        return self


class TransferFilter(BaseModel):
    """Filter for transfer request listings."""

    status: TransferStatus | None = None
    from_school_id: RecordId | None = None
    to_school_id: RecordId | None = None
    effective_year_id: RecordId | None = None
    student_id: RecordId | None = None
    student_matricule: str | None = None
    search: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=15, ge=1)

    @field_validator("status", "effective_year_id", "student_matricule", "search", mode="before")
    @classmethod
    def normalize_all(cls, value: Any) -> Any:
        if isinstance(value, str) and (value == ALL or not value.strip()):
            return None
        return value

    def to_query(self) -> dict[str, str]:
        query = {"page": str(self.page), "page_size": str(self.page_size)}
        if self.status is not None:
            query["status"] = self.status.value
        if self.from_school_id:
            query["from_school__id"] = str(self.from_school_id)
        if self.to_school_id:
            query["to_school__id"] = str(self.to_school_id)
        if self.effective_year_id:
            query["effective_academic_year__id"] = str(self.effective_year_id)
        if self.student_id:
            query["student__id"] = str(self.student_id)
        if self.student_matricule:
            query["student__matricule"] = self.student_matricule
        if self.search:
            query["search"] = self.search
        return query


class InitiateTransferRequest(BaseModel):
    """Payload opening a transfer request from the sending school."""

    student_id: RecordId
    to_school_id: RecordId
    effective_academic_year_id: RecordId
    reason: str = Field(min_length=1)
    notes: str | None = Field(default=None, serialization_alias="from_school_notes")

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("A transfer reason is required")
        return value


class ReviewTransferRequest(BaseModel):
    """Approve or reject a pending transfer."""

    approve: bool
    notes: str | None = None


class CompleteTransferRequest(BaseModel):
    """Place an approved transfer into a class at the receiving school."""

    target_class_id: RecordId
    notes: str | None = None


class CancelTransferRequest(BaseModel):
    """Withdraw a transfer request."""

    reason: str
