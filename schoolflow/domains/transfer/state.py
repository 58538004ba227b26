# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transfer request state machine and role-derived actions.

    pending  -> approved | rejected | cancelled
    approved -> completed | cancelled

completed, rejected and cancelled are terminal.

Which action an operator sees depends on the side of the transfer their
school is on: the sending school may cancel a pending request, the
receiving school reviews it and later completes it.
"""

from dataclasses import dataclass
from enum import Enum

from schoolflow.domains.transfer.exceptions import InvalidTransferTransitionError
from schoolflow.models.common import Actor, RecordId
from schoolflow.models.transfer import TransferRequest, TransferStatus

TERMINAL_STATUSES = frozenset(
    {TransferStatus.COMPLETED, TransferStatus.REJECTED, TransferStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: dict[TransferStatus, frozenset[TransferStatus]] = {
    TransferStatus.PENDING: frozenset(
        {TransferStatus.APPROVED, TransferStatus.REJECTED, TransferStatus.CANCELLED}
    ),
    TransferStatus.APPROVED: frozenset({TransferStatus.COMPLETED, TransferStatus.CANCELLED}),
    TransferStatus.REJECTED: frozenset(),
    TransferStatus.COMPLETED: frozenset(),
    TransferStatus.CANCELLED: frozenset(),
}


def is_terminal(status: TransferStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: TransferStatus, target: TransferStatus) -> bool:
    if is_terminal(current):
        return False
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(
    current: TransferStatus,
    target: TransferStatus,
    request_id: RecordId | None = None,
) -> None:
    """Raise unless ``current -> target`` is a legal transition.

    Raises:
        InvalidTransferTransitionError: If the transition is not in the table.
    """
    if not can_transition(current, target):
        raise InvalidTransferTransitionError(current, target, request_id)


class TransferActionName(str, Enum):
    REVIEW = "review"
    COMPLETE = "complete"
    CANCEL = "cancel"
    NO_ACTIONS = "no_actions"


@dataclass(frozen=True)
class ActionItem:
    """One entry of a transfer request's action menu."""

    name: TransferActionName
    enabled: bool = True


@dataclass(frozen=True)
class TransferActions:
    """Actions an operator may take on a transfer request."""

    can_cancel: bool = False
    can_review: bool = False
    can_complete: bool = False

    @property
    def has_any(self) -> bool:
        return self.can_cancel or self.can_review or self.can_complete

    def menu(self) -> list[ActionItem]:
        """Menu entries for the request; never empty.

        When nothing applies the menu holds a single disabled placeholder,
        so the control stays visible but inert.
        """
        items = []
        if self.can_review:
            items.append(ActionItem(TransferActionName.REVIEW))
        if self.can_complete:
            items.append(ActionItem(TransferActionName.COMPLETE))
        if self.can_cancel:
            items.append(ActionItem(TransferActionName.CANCEL))
        if not items:
            items.append(ActionItem(TransferActionName.NO_ACTIONS, enabled=False))
        return items


def available_actions(request: TransferRequest, actor: Actor) -> TransferActions:
    """Derive the actions visible to an actor for a request.

    Args:
        request: Transfer request as last seen.
        actor: Operator and their school.

    Returns:
        At most one enabled action under normal operation.
    """
    if actor.school_id is None:
        return TransferActions()

    at_sending_school = actor.school_id == request.from_school_id
    at_receiving_school = actor.school_id == request.to_school_id
    status = request.status
    return TransferActions(
        can_cancel=status is TransferStatus.PENDING and at_sending_school,
        can_review=status is TransferStatus.PENDING and at_receiving_school,
        can_complete=status is TransferStatus.APPROVED and at_receiving_school,
    )
