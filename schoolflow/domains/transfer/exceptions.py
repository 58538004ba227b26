# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions raised by the transfer domain before reaching the store."""

from schoolflow.models.common import RecordId
from schoolflow.models.transfer import TransferStatus


class TransferError(Exception):
    """Base exception for transfer request errors."""

    pass


class InvalidTransferTransitionError(TransferError):
    """Raised when a request cannot move from its current status.

    Attributes:
        request_id: Transfer request concerned, when known.
        current: Status the request is in.
        target: Status that was requested.
    """

    def __init__(
        self,
        current: TransferStatus,
        target: TransferStatus,
        request_id: RecordId | None = None,
    ) -> None:
        self.current = current
        self.target = target
        self.request_id = request_id
        subject = f"Transfer request {request_id}" if request_id is not None else "Transfer request"
        super().__init__(f"{subject} cannot move from {current.value} to {target.value}")


class TransferValidationError(TransferError):
    """Raised when a transfer action is missing required input.

    Attributes:
        field: Input field at fault, when there is one.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)
