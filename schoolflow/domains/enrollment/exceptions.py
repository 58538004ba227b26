# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the enrollment domain before reaching the store."""

from schoolflow.models.common import RecordId
from schoolflow.models.enrollment import WorkflowStage


class EnrollmentWorkflowError(Exception):
    """Base exception for enrollment workflow errors."""

    pass


class InvalidStageTransitionError(EnrollmentWorkflowError):
    """Raised when a workflow cannot move from its current stage.

    Attributes:
        workflow_id: Workflow concerned, when known.
        current: Stage the workflow is in.
        target: Stage that was requested.
    """

    def __init__(
        self,
        current: WorkflowStage,
        target: WorkflowStage,
        workflow_id: RecordId | None = None,
    ) -> None:
        self.current = current
        self.target = target
        self.workflow_id = workflow_id
        subject = f"Workflow {workflow_id}" if workflow_id is not None else "Workflow"
        super().__init__(
            f"{subject} cannot move from {current.value} to {target.value}"
        )


class ClassNotSelectableError(EnrollmentWorkflowError):
    """Raised when a destination class is not one of the selectable options."""

    pass


class BulkAssignmentError(EnrollmentWorkflowError):
    """Raised when a bulk assignment is refused before submission."""

    pass
