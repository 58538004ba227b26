# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for the record store client.

This module defines the exception hierarchy for record store calls:
- StoreError: Base exception for all store-related errors
- StoreTransportError: The call did not complete (network, timeout, 5xx)
- StoreValidationError: The store refused the request (4xx)
- StoreNotFoundError: The addressed record does not exist
- StoreProtocolError: The store answered with something unreadable

A transport error means nothing is known to have changed. A validation
error means the store rejected the request and did not apply it.
"""

from typing import Any


class StoreError(Exception):
    """Base exception for all record store errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        """Initialize store error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class StoreTransportError(StoreError):
    """The request did not complete.

    Raised for connection failures, timeouts and 5xx answers. The whole
    operation is considered not to have happened.

    Attributes:
        status_code: HTTP status code when the store answered with a 5xx.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)

    def __str__(self) -> str:
        base = self.message
        if self.status_code:
            base = f"[{self.status_code}] {base}"
        if self.details:
            base = f"{base} - Details: {self.details}"
        return base


class StoreValidationError(StoreError):
    """The store rejected the request because a precondition failed.

    Attributes:
        status_code: HTTP status code from the response.
        field_errors: Field-level errors as returned by the store, if any.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        field_errors: dict[str, Any] | None = None,
        details: dict | None = None,
    ):
        """Initialize store validation error.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code from the response.
            field_errors: Field-level errors keyed by field name.
            details: Optional dictionary with additional error context.
        """
        self.status_code = status_code
        self.field_errors = field_errors or {}
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation with status code."""
        base = self.message
        if self.status_code:
            base = f"[{self.status_code}] {base}"
        return base

    @property
    def flat_messages(self) -> list[str]:
        """All field error messages flattened into one list."""
        messages: list[str] = []
        for value in self.field_errors.values():
            if isinstance(value, list):
                messages.extend(str(v) for v in value)
            else:
                messages.append(str(value))
        return messages


class StoreNotFoundError(StoreValidationError):
    """The addressed record does not exist."""


class StoreProtocolError(StoreError):
    """The store answered with a body that could not be understood.

    Raised for unparseable JSON and for records that violate the
    record invariants (for instance a completed workflow without a class).
    """
