# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Input checks run before a transfer action is sent to the store.

The store enforces the same rules; failing here saves the round trip.
"""

from collections.abc import Sequence

from schoolflow.domains.transfer.exceptions import TransferValidationError
from schoolflow.models.common import RecordId
from schoolflow.models.transfer import TargetClass


def validate_review(approve: bool, notes: str | None) -> None:
    """A rejection must say why.

    Raises:
        TransferValidationError: If rejecting without notes.
    """
    if not approve and not (notes or "").strip():
        raise TransferValidationError("Notes are required when rejecting a transfer", field="notes")


def validate_completion(
    target_class_id: RecordId | None,
    eligible_classes: Sequence[TargetClass],
) -> TargetClass:
    """Check the target class of a completion.

    Args:
        target_class_id: Class chosen at the receiving school.
        eligible_classes: Classes the store reports as eligible.

    Returns:
        The chosen eligible class.

    Raises:
        TransferValidationError: If no class is eligible, none was chosen,
            or the choice is not eligible.
    """
    if not eligible_classes:
        raise TransferValidationError(
            "No eligible class exists at the receiving school; the transfer cannot be completed",
            field="target_class_id",
        )
    if target_class_id is None or target_class_id == "":
        raise TransferValidationError("Select a target class", field="target_class_id")
    for target in eligible_classes:
        if target.id == target_class_id:
            return target
    raise TransferValidationError(
        f"Class {target_class_id} is not eligible for this transfer",
        field="target_class_id",
    )


def validate_cancel(reason: str | None) -> str:
    """A cancellation must carry a reason.

    Returns:
        The stripped reason.
    """
    reason = (reason or "").strip()
    if not reason:
        raise TransferValidationError("A reason is required to cancel a transfer", field="reason")
    return reason
