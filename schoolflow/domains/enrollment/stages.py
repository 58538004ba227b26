# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment workflow state machine.

The transition table below is the single authority for which stage a
workflow may move to on the client side. The record store validates
the same transitions and has the final word; the client check exists
to fail fast without a round trip.

    awaiting_promotion_decision
        -> needs_stream_selection | needs_external_results | ready_for_enrollment
    needs_stream_selection
        -> needs_external_results | ready_for_enrollment
    needs_external_results
        -> ready_for_enrollment
    ready_for_enrollment
        -> enrollment_complete   (the "select_class" update)

Which branch is taken after the promotion decision depends on promotion
rules evaluated by the store and is not modelled here.
"""

from schoolflow.domains.enrollment.exceptions import (
    ClassNotSelectableError,
    InvalidStageTransitionError,
)
from schoolflow.models.common import ClassRef, RecordId
from schoolflow.models.enrollment import EnrollmentWorkflow, WorkflowStage

TERMINAL_STAGES = frozenset({WorkflowStage.ENROLLMENT_COMPLETE})

ALLOWED_TRANSITIONS: dict[WorkflowStage, frozenset[WorkflowStage]] = {
    WorkflowStage.AWAITING_PROMOTION_DECISION: frozenset(
        {
            WorkflowStage.NEEDS_STREAM_SELECTION,
            WorkflowStage.NEEDS_EXTERNAL_RESULTS,
            WorkflowStage.READY_FOR_ENROLLMENT,
        }
    ),
    WorkflowStage.NEEDS_STREAM_SELECTION: frozenset(
        {
            WorkflowStage.NEEDS_EXTERNAL_RESULTS,
            WorkflowStage.READY_FOR_ENROLLMENT,
        }
    ),
    WorkflowStage.NEEDS_EXTERNAL_RESULTS: frozenset({WorkflowStage.READY_FOR_ENROLLMENT}),
    WorkflowStage.READY_FOR_ENROLLMENT: frozenset({WorkflowStage.ENROLLMENT_COMPLETE}),
    WorkflowStage.ENROLLMENT_COMPLETE: frozenset(),
}


def allowed_transitions(stage: WorkflowStage) -> frozenset[WorkflowStage]:
    """Return the stages reachable from a stage in one step."""
    return ALLOWED_TRANSITIONS.get(stage, frozenset())


def is_terminal(stage: WorkflowStage) -> bool:
    return stage in TERMINAL_STAGES


def can_transition(current: WorkflowStage, target: WorkflowStage) -> bool:
    """Definitive client-side transition check."""
    if is_terminal(current):
        return False
    return target in allowed_transitions(current)


def ensure_transition(
    current: WorkflowStage,
    target: WorkflowStage,
    workflow_id: RecordId | None = None,
) -> None:
    """Raise unless ``current -> target`` is a legal transition.

    Raises:
        InvalidStageTransitionError: If the transition is not in the table.
    """
    if not can_transition(current, target):
        raise InvalidStageTransitionError(current, target, workflow_id)


def can_assign_class(workflow: EnrollmentWorkflow) -> bool:
    """Whether the workflow accepts a class assignment right now."""
    return can_transition(workflow.current_stage, WorkflowStage.ENROLLMENT_COMPLETE)


def ensure_class_assignable(workflow: EnrollmentWorkflow, class_id: RecordId) -> ClassRef:
    """Validate a single-workflow class assignment before submission.

    Args:
        workflow: Workflow as last seen.
        class_id: Requested destination class.

    Returns:
        The matching option from ``target_class_options``.

    Raises:
        InvalidStageTransitionError: If the workflow is not ready for enrollment.
        ClassNotSelectableError: If there are no options or the class is not one.
    """
    ensure_transition(workflow.current_stage, WorkflowStage.ENROLLMENT_COMPLETE, workflow.id)

    if not workflow.target_class_options:
        raise ClassNotSelectableError(
            f"Workflow {workflow.id} has no compatible class for the next level"
        )
    for option in workflow.target_class_options:
        if option.id == class_id:
            return option
    raise ClassNotSelectableError(
        f"Class {class_id} is not a selectable option for workflow {workflow.id}"
    )
