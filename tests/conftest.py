# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

The record store is replaced by an ``AsyncMock`` in domain tests and by
an ``httpx.MockTransport`` in client tests.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from schoolflow.core.config.settings import (
    BulkSettings,
    RecordStoreSettings,
    SelectionSettings,
)
from schoolflow.domains.enrollment.selection import SelectionSet
from schoolflow.infrastructure.cache import QueryCache
from schoolflow.infrastructure.store import RecordStoreClient
from schoolflow.models.enrollment import EnrollmentWorkflow, WorkflowFilter
from schoolflow.models.transfer import TransferRequest
from schoolflow.utils.inflight import InFlightRegistry


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Payload Factories
# =============================================================================


def workflow_payload(
    workflow_id: int = 1,
    stage: str = "ready_for_enrollment",
    promotion_status: str | None = "promoted",
    options: list[dict[str, Any]] | None = None,
    selected_class: dict[str, Any] | None = None,
    previous_class: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a workflow as the store serializes it."""
    decision = None
    if promotion_status is not None:
        decision = {
            "id": 100 + workflow_id,
            "promotion_status": promotion_status,
            "previous_class": previous_class or {"id": 10, "full_name": "Form 1 A", "level": "form_1"},
        }
    return {
        "id": workflow_id,
        "student": {
            "id": 500 + workflow_id,
            "full_name": f"Student {workflow_id}",
            "matricule": f"MAT{workflow_id:04d}",
        },
        "current_stage": stage,
        "promotion_decision": decision,
        "previous_class_name": "Form 1 A",
        "target_class_options": (
            options
            if options is not None
            else [
                {"id": 20, "full_name": "Form 2 A", "level": "form_2"},
                {"id": 21, "full_name": "Form 2 B", "level": "form_2"},
            ]
        ),
        "selected_class": selected_class,
    }


def transfer_payload(
    request_id: int = 1,
    status: str = "pending",
    from_school_id: int = 1,
    to_school_id: int = 2,
) -> dict[str, Any]:
    """Build a transfer request as the store serializes it."""
    return {
        "id": request_id,
        "student": {"id": 900, "full_name": "Amina Bello", "matricule": "MAT0900"},
        "from_school": {"id": from_school_id, "name": "Sending High School"},
        "to_school": {"id": to_school_id, "name": "Receiving College"},
        "effective_academic_year": "2025/2026",
        "status": status,
        "transfer_reason": "Family relocation",
        "request_date": "2025-08-01T09:00:00Z",
    }


def make_workflow(*args: Any, **kwargs: Any) -> EnrollmentWorkflow:
    return EnrollmentWorkflow.model_validate(workflow_payload(*args, **kwargs))


def make_transfer(*args: Any, **kwargs: Any) -> TransferRequest:
    return TransferRequest.model_validate(transfer_payload(*args, **kwargs))


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def store_settings() -> RecordStoreSettings:
    return RecordStoreSettings(base_url="https://store.test/api", api_token="test-token")


@pytest.fixture
def selection_settings() -> SelectionSettings:
    """Selection settings with a short debounce for fast tests."""
    return SelectionSettings(search_debounce_seconds=0.01)


@pytest.fixture
def bulk_settings() -> BulkSettings:
    return BulkSettings()


@pytest.fixture
def mock_store() -> AsyncMock:
    """Record store double with the client's async interface."""
    return AsyncMock(spec=RecordStoreClient)


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


@pytest.fixture
def inflight() -> InFlightRegistry:
    return InFlightRegistry()


@pytest.fixture
def selection(mock_store) -> SelectionSet:
    return SelectionSet(mock_store)


@pytest.fixture
def workflow_filter() -> WorkflowFilter:
    return WorkflowFilter(
        from_academic_year_id=1,
        to_academic_year_id=2,
        previous_class_id=10,
    )


@pytest.fixture
def workflow_factory():
    """Factory building parsed workflows (see ``workflow_payload``)."""
    return make_workflow


@pytest.fixture
def workflow_payload_factory():
    return workflow_payload


@pytest.fixture
def transfer_factory():
    """Factory building parsed transfer requests."""
    return make_transfer


@pytest.fixture
def transfer_payload_factory():
    return transfer_payload
