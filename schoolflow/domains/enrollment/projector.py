# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Presentation state derived from an enrollment workflow.

``project_workflow`` is a pure function of a workflow's stage, promotion
decision, candidate classes and selected class. It decides the badge,
the single action offered for the row, and which class to preselect.
"""

from dataclasses import dataclass
from enum import Enum

from schoolflow.domains.enrollment.stages import can_assign_class
from schoolflow.models.common import ClassRef
from schoolflow.models.enrollment import (
    EnrollmentWorkflow,
    PromotionStatus,
    WorkflowStage,
)


class WorkflowAction(str, Enum):
    """What a workflow row offers the operator."""

    ASSIGN_CLASS = "assign_class"
    NO_COMPATIBLE_CLASS = "no_compatible_class"
    PENDING_DECISION = "pending_decision"
    NONE = "none"


@dataclass(frozen=True)
class Badge:
    """Label and visual variant of a status badge."""

    label: str
    variant: str


STAGE_BADGES: dict[str, Badge] = {
    WorkflowStage.AWAITING_PROMOTION_DECISION.value: Badge("Awaiting Decision", "secondary"),
    WorkflowStage.NEEDS_STREAM_SELECTION.value: Badge("Needs Stream", "warning"),
    WorkflowStage.NEEDS_EXTERNAL_RESULTS.value: Badge("Needs Results", "info"),
    WorkflowStage.READY_FOR_ENROLLMENT.value: Badge("Ready to Enroll", "default"),
    WorkflowStage.ENROLLMENT_COMPLETE.value: Badge("Completed", "success"),
}

PROMOTION_BADGES: dict[str, Badge] = {
    PromotionStatus.PROMOTED.value: Badge("Promoted", "success"),
    PromotionStatus.CONDITIONAL.value: Badge("Conditional", "warning"),
    PromotionStatus.REPEATED.value: Badge("Repeated", "destructive"),
    PromotionStatus.GRADUATED.value: Badge("Graduated", "secondary"),
}


def badge_for(status: str | Enum | None) -> Badge:
    """Resolve a stage or promotion status to its badge.

    Unknown values fall back to their raw text with a secondary variant.
    """
    value = status.value if isinstance(status, Enum) else status
    if not value:
        return Badge("Unknown", "secondary")
    return STAGE_BADGES.get(value) or PROMOTION_BADGES.get(value) or Badge(value, "secondary")


@dataclass(frozen=True)
class WorkflowProjection:
    """Everything a row needs to render a workflow.

    Attributes:
        badge_label: Stage badge text.
        badge_variant: Stage badge style.
        available_action: Action offered for the row.
        suggested_destination: Class preselected in the assignment control.
        selected_class: Class the student was enrolled into, once complete.
        promotion_badge: Badge for the promotion decision, if any.
    """

    badge_label: str
    badge_variant: str
    available_action: WorkflowAction
    suggested_destination: ClassRef | None = None
    selected_class: ClassRef | None = None
    promotion_badge: Badge | None = None

    @property
    def can_assign(self) -> bool:
        """Whether an enabled assign-class control should be shown."""
        return self.available_action is WorkflowAction.ASSIGN_CLASS


def suggest_destination(workflow: EnrollmentWorkflow) -> ClassRef | None:
    """Pick the class to preselect for a workflow.

    Repeaters are steered back to their previous class when it is among
    the options; everyone else gets the first option, which the store
    orders as its own suggestion.
    """
    options = workflow.target_class_options
    if not options:
        return None

    decision = workflow.promotion_decision
    if (
        decision is not None
        and decision.promotion_status is PromotionStatus.REPEATED
        and decision.previous_class is not None
    ):
        for option in options:
            if option.id == decision.previous_class.id:
                return option
    return options[0]


def project_workflow(workflow: EnrollmentWorkflow) -> WorkflowProjection:
    """Derive the presentation state of a workflow.

    Args:
        workflow: Workflow as returned by the store.

    Returns:
        Projection with badge, action and suggested destination.
    """
    badge = badge_for(workflow.current_stage)
    promotion_badge = (
        badge_for(workflow.promotion_status) if workflow.promotion_status is not None else None
    )
    stage = workflow.current_stage

    if stage is WorkflowStage.ENROLLMENT_COMPLETE:
        return WorkflowProjection(
            badge_label=badge.label,
            badge_variant=badge.variant,
            available_action=WorkflowAction.NONE,
            selected_class=workflow.selected_class,
            promotion_badge=promotion_badge,
        )

    if can_assign_class(workflow):
        if not workflow.target_class_options:
            # No class exists yet for the next level
            return WorkflowProjection(
                badge_label=badge.label,
                badge_variant=badge.variant,
                available_action=WorkflowAction.NO_COMPATIBLE_CLASS,
                promotion_badge=promotion_badge,
            )
        return WorkflowProjection(
            badge_label=badge.label,
            badge_variant=badge.variant,
            available_action=WorkflowAction.ASSIGN_CLASS,
            suggested_destination=suggest_destination(workflow),
            promotion_badge=promotion_badge,
        )

    action = (
        WorkflowAction.PENDING_DECISION
        if stage is WorkflowStage.AWAITING_PROMOTION_DECISION
        else WorkflowAction.NONE
    )
    return WorkflowProjection(
        badge_label=badge.label,
        badge_variant=badge.variant,
        available_action=action,
        promotion_badge=promotion_badge,
    )
