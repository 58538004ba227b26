# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment workflow domain.

This package provides:
- The workflow stage machine
- Selection of workflows for bulk operations
- Bulk class assignment with per-id outcomes
- Presentation state for workflow rows
- The single-workflow service
"""

from schoolflow.domains.enrollment.bulk import (
    BulkAssignmentResult,
    BulkAssignmentSummary,
    BulkOutcome,
    BulkOutcomeKind,
    BulkTransitionCoordinator,
    SummarySeverity,
    summarize,
)
from schoolflow.domains.enrollment.exceptions import (
    BulkAssignmentError,
    ClassNotSelectableError,
    EnrollmentWorkflowError,
    InvalidStageTransitionError,
)
from schoolflow.domains.enrollment.progression import LEVEL_PROGRESSION, destination_classes
from schoolflow.domains.enrollment.projector import (
    Badge,
    WorkflowAction,
    WorkflowProjection,
    project_workflow,
    suggest_destination,
)
from schoolflow.domains.enrollment.selection import (
    CheckboxState,
    SelectionSet,
    WorkflowFilterState,
)
from schoolflow.domains.enrollment.service import EnrollmentWorkflowService
from schoolflow.domains.enrollment.stages import (
    ALLOWED_TRANSITIONS,
    can_assign_class,
    can_transition,
    ensure_class_assignable,
    ensure_transition,
)

__all__ = [
    # Bulk
    "BulkAssignmentResult",
    "BulkAssignmentSummary",
    "BulkOutcome",
    "BulkOutcomeKind",
    "BulkTransitionCoordinator",
    "SummarySeverity",
    "summarize",
    # Exceptions
    "BulkAssignmentError",
    "ClassNotSelectableError",
    "EnrollmentWorkflowError",
    "InvalidStageTransitionError",
    # Progression
    "LEVEL_PROGRESSION",
    "destination_classes",
    # Projection
    "Badge",
    "WorkflowAction",
    "WorkflowProjection",
    "project_workflow",
    "suggest_destination",
    # Selection
    "CheckboxState",
    "SelectionSet",
    "WorkflowFilterState",
    # Service
    "EnrollmentWorkflowService",
    # Stages
    "ALLOWED_TRANSITIONS",
    "can_assign_class",
    "can_transition",
    "ensure_class_assignable",
    "ensure_transition",
]
