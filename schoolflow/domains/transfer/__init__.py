# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Inter-school transfer request domain."""

from schoolflow.domains.transfer.exceptions import (
    InvalidTransferTransitionError,
    TransferError,
    TransferValidationError,
)
from schoolflow.domains.transfer.service import TransferService
from schoolflow.domains.transfer.state import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    ActionItem,
    TransferActionName,
    TransferActions,
    available_actions,
    can_transition,
    ensure_transition,
)
from schoolflow.domains.transfer.validators import (
    validate_cancel,
    validate_completion,
    validate_review,
)

__all__ = [
    "InvalidTransferTransitionError",
    "TransferError",
    "TransferValidationError",
    "TransferService",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "ActionItem",
    "TransferActionName",
    "TransferActions",
    "available_actions",
    "can_transition",
    "ensure_transition",
    "validate_cancel",
    "validate_completion",
    "validate_review",
]
