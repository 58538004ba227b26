# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic models for records exchanged with the record store."""

from schoolflow.models.common import (
    Actor,
    ClassRef,
    EducationSystemRef,
    Page,
    RecordId,
    SchoolClass,
    SchoolRef,
    StoreModel,
    StudentRef,
)
from schoolflow.models.enrollment import (
    ALL,
    BulkAssignRequest,
    EnrollmentFilter,
    EnrollmentStatistics,
    EnrollmentStatus,
    EnrollmentWorkflow,
    InitializeWorkflowsRequest,
    NewStudentEnrollmentRequest,
    PromotionDecision,
    PromotionStatus,
    SelectClassRequest,
    StudentEnrollment,
    WorkflowFilter,
    WorkflowStage,
)
from schoolflow.models.transfer import (
    CancelTransferRequest,
    CompleteTransferRequest,
    InitiateTransferRequest,
    ReviewTransferRequest,
    TargetClass,
    TransferFilter,
    TransferRequest,
    TransferStatus,
)

__all__ = [
    # Common
    "Actor",
    "ClassRef",
    "EducationSystemRef",
    "Page",
    "RecordId",
    "SchoolClass",
    "SchoolRef",
    "StoreModel",
    "StudentRef",
    # Enrollment
    "ALL",
    "BulkAssignRequest",
    "EnrollmentFilter",
    "EnrollmentStatistics",
    "EnrollmentStatus",
    "EnrollmentWorkflow",
    "InitializeWorkflowsRequest",
    "NewStudentEnrollmentRequest",
    "PromotionDecision",
    "PromotionStatus",
    "SelectClassRequest",
    "StudentEnrollment",
    "WorkflowFilter",
    "WorkflowStage",
    # Transfer
    "CancelTransferRequest",
    "CompleteTransferRequest",
    "InitiateTransferRequest",
    "ReviewTransferRequest",
    "TargetClass",
    "TransferFilter",
    "TransferRequest",
    "TransferStatus",
]
