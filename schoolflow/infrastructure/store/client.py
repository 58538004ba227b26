# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async HTTP client for the school administration REST API.

The record store owns the canonical state of enrollment workflows and
transfer requests. This client is the only place that knows its URLs and
status-code conventions; everything above it works with parsed models
and the exceptions from ``schoolflow.infrastructure.store.exceptions``.

Status handling:
- 200/201: parsed JSON body
- 207: parsed JSON body (bulk operations with per-item outcomes)
- 204: None
- 404: StoreNotFoundError
- other 4xx: StoreValidationError
- 5xx, connection errors, timeouts: StoreTransportError

Example:
    async with RecordStoreClient(settings.store) as store:
        page = await store.list_workflows(workflow_filter)
        ids = await store.fetch_all_workflow_ids(workflow_filter)
        outcome = await store.bulk_assign_class(ids, class_id=42)
"""

import json
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from schoolflow.core.config.settings import RecordStoreSettings
from schoolflow.infrastructure.store.exceptions import (
    StoreNotFoundError,
    StoreProtocolError,
    StoreTransportError,
    StoreValidationError,
)
from schoolflow.models.common import Page, RecordId
from schoolflow.models.enrollment import (
    BulkAssignRequest,
    EnrollmentFilter,
    EnrollmentStatistics,
    EnrollmentWorkflow,
    InitializeWorkflowsRequest,
    NewStudentEnrollmentRequest,
    SelectClassRequest,
    StudentEnrollment,
    WorkflowFilter,
)
from schoolflow.models.transfer import (
    CancelTransferRequest,
    CompleteTransferRequest,
    InitiateTransferRequest,
    ReviewTransferRequest,
    TargetClass,
    TransferFilter,
    TransferRequest,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

WORKFLOWS_PATH = "/promotions/enrollment-workflows/"
BULK_ASSIGN_PATH = "/promotions/bulk-class-assignment/assign/"
ALL_IDS_PATH = "/promotions/bulk-class-assignment/fetch-all-ids/"
ENROLLMENTS_PATH = "/promotions/enrollments/"
STATISTICS_PATH = "/promotions/enrollments/statistics/"
CLASS_ENROLLMENTS_PATH = "/promotions/class-enrollments/"
TRANSFERS_PATH = "/transfers/requests/"


class RecordStoreClient:
    """Async client for the record store REST API.

    Attributes:
        settings: Store connection settings.
    """

    def __init__(
        self,
        settings: RecordStoreSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store client.

        Args:
            settings: Store connection settings.
            client: Optional preconfigured HTTP client (tests inject one
                backed by ``httpx.MockTransport``).
        """
        self.settings = settings
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            headers={"Accept": "application/json", **settings.auth_headers},
            timeout=settings.timeout,
            verify=settings.verify_ssl,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "RecordStoreClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # =========================================================================
    # Enrollment workflows
    # =========================================================================

    async def list_workflows(self, workflow_filter: WorkflowFilter) -> Page[EnrollmentWorkflow]:
        """Fetch one page of enrollment workflows.

        Args:
            workflow_filter: Filter including page and page size.

        Returns:
            Page of workflows.
        """
        data = await self._request(
            "GET",
            WORKFLOWS_PATH,
            "Fetch Workflows",
            params=workflow_filter.to_query(),
        )
        return self._parse_page(EnrollmentWorkflow, data, workflow_filter.page_size, "Fetch Workflows")

    async def fetch_all_workflow_ids(self, workflow_filter: WorkflowFilter) -> list[RecordId]:
        """Fetch the ids of every workflow matching a filter.

        This is a separate endpoint from the paginated listing, so the
        result is not limited to the page currently displayed.

        Args:
            workflow_filter: Filter; its paging fields are ignored.

        Returns:
            All matching workflow ids.
        """
        data = await self._request(
            "GET",
            ALL_IDS_PATH,
            "Fetch All Workflow IDs",
            params=workflow_filter.to_query(include_paging=False),
        )
        if not isinstance(data, dict):
            raise StoreProtocolError("Fetch All Workflow IDs: expected an object body")
        ids = data.get("workflow_ids") or []
        if not isinstance(ids, list):
            raise StoreProtocolError("Fetch All Workflow IDs: workflow_ids is not a list")
        return ids

    async def get_workflow(self, workflow_id: RecordId) -> EnrollmentWorkflow:
        """Fetch the current state of a single workflow."""
        data = await self._request("GET", f"{WORKFLOWS_PATH}{workflow_id}/", "Fetch Workflow")
        return self._parse(EnrollmentWorkflow, data, "Fetch Workflow")

    async def select_class(
        self,
        workflow_id: RecordId,
        class_id: RecordId,
        notes: str | None = None,
    ) -> EnrollmentWorkflow:
        """Assign a destination class to one workflow.

        Args:
            workflow_id: Workflow to update.
            class_id: Destination class.
            notes: Optional assignment notes.

        Returns:
            The workflow as updated by the store.

        Raises:
            StoreValidationError: If the store refuses the transition.
        """
        payload = SelectClassRequest(class_id=class_id, notes=notes)
        data = await self._request(
            "PATCH",
            f"{WORKFLOWS_PATH}{workflow_id}/",
            "Assign Class to Workflow",
            json=payload.model_dump(exclude_none=True),
        )
        return self._parse(EnrollmentWorkflow, data, "Assign Class to Workflow")

    async def bulk_assign_class(
        self,
        workflow_ids: list[RecordId],
        class_id: RecordId,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Submit one class assignment for many workflows in a single call.

        Args:
            workflow_ids: Workflows to assign.
            class_id: Destination class.
            notes: Optional notes recorded on each assignment.

        Returns:
            Raw outcome body with ``success``, ``already_enrolled``,
            ``failed`` and ``not_found_or_ineligible`` lists.
        """
        payload = BulkAssignRequest(workflow_ids=workflow_ids, class_id=class_id, notes=notes or "")
        data = await self._request(
            "POST",
            BULK_ASSIGN_PATH,
            "Bulk Assign Students",
            json=payload.model_dump(),
        )
        if not isinstance(data, dict):
            raise StoreProtocolError("Bulk Assign Students: expected an object body")
        return data

    async def initialize_workflows(
        self,
        from_academic_year_id: RecordId,
        to_academic_year_id: RecordId,
    ) -> dict[str, Any]:
        """Create the workflows of a promotion cycle.

        Returns:
            Store summary of the initialization (counts created/skipped).
        """
        payload = InitializeWorkflowsRequest(
            from_academic_year_id=from_academic_year_id,
            to_academic_year_id=to_academic_year_id,
        )
        data = await self._request(
            "POST",
            WORKFLOWS_PATH,
            "Initialize Workflows",
            json=payload.model_dump(),
        )
        return data or {}

    # =========================================================================
    # Confirmed enrollments
    # =========================================================================

    async def list_enrollments(self, enrollment_filter: EnrollmentFilter) -> Page[StudentEnrollment]:
        """Fetch one page of confirmed enrollments for a class."""
        data = await self._request(
            "GET",
            ENROLLMENTS_PATH,
            "Fetch Enrollments",
            params=enrollment_filter.to_query(),
        )
        return self._parse_page(StudentEnrollment, data, enrollment_filter.page_size, "Fetch Enrollments")

    async def edit_enrollment(self, enrollment_id: RecordId, updates: dict[str, Any]) -> StudentEnrollment:
        """Partially update a confirmed enrollment.

        Args:
            enrollment_id: Enrollment to edit.
            updates: Any of ``assigned_class_id``, ``status``, ``notes``.
        """
        data = await self._request(
            "PATCH",
            f"{ENROLLMENTS_PATH}{enrollment_id}/edit/",
            "Edit Enrollment",
            json=updates,
        )
        return self._parse(StudentEnrollment, data, "Edit Enrollment")

    async def enroll_new_student(
        self, class_id: RecordId, request: NewStudentEnrollmentRequest
    ) -> StudentEnrollment:
        """Register a new student with a parent and enroll them in a class."""
        data = await self._request(
            "POST",
            f"{CLASS_ENROLLMENTS_PATH}{class_id}/enroll-new-student/",
            "Enroll New Student",
            json=request.model_dump(),
        )
        return self._parse(StudentEnrollment, data, "Enroll New Student")

    async def get_statistics(self, academic_year_id: RecordId | None = None) -> EnrollmentStatistics:
        """Fetch aggregate enrollment statistics."""
        params = {"academic_year_id": str(academic_year_id)} if academic_year_id is not None else None
        data = await self._request("GET", STATISTICS_PATH, "Fetch Statistics", params=params)
        return self._parse(EnrollmentStatistics, data or {}, "Fetch Statistics")

    # =========================================================================
    # Transfer requests
    # =========================================================================

    async def list_transfers(self, transfer_filter: TransferFilter) -> Page[TransferRequest]:
        """Fetch one page of transfer requests."""
        data = await self._request(
            "GET",
            TRANSFERS_PATH,
            "Fetch Transfer Requests",
            params=transfer_filter.to_query(),
        )
        return self._parse_page(TransferRequest, data, transfer_filter.page_size, "Fetch Transfer Requests")

    async def get_transfer(self, request_id: RecordId) -> TransferRequest:
        data = await self._request("GET", f"{TRANSFERS_PATH}{request_id}/", "Fetch Transfer Detail")
        return self._parse(TransferRequest, data, "Fetch Transfer Detail")

    async def initiate_transfer(self, request: InitiateTransferRequest) -> TransferRequest:
        data = await self._request(
            "POST",
            f"{TRANSFERS_PATH}initiate/",
            "Initiate Transfer",
            json=request.model_dump(by_alias=True, exclude_none=True),
        )
        return self._parse(TransferRequest, data, "Initiate Transfer")

    async def review_transfer(self, request_id: RecordId, review: ReviewTransferRequest) -> TransferRequest:
        data = await self._request(
            "POST",
            f"{TRANSFERS_PATH}{request_id}/review/",
            "Review Transfer",
            json=review.model_dump(exclude_none=True),
        )
        return self._parse(TransferRequest, data, "Review Transfer")

    async def complete_transfer(self, request_id: RecordId, completion: CompleteTransferRequest) -> TransferRequest:
        data = await self._request(
            "POST",
            f"{TRANSFERS_PATH}{request_id}/complete/",
            "Complete Transfer",
            json=completion.model_dump(exclude_none=True),
        )
        return self._parse(TransferRequest, data, "Complete Transfer")

    async def cancel_transfer(self, request_id: RecordId, cancellation: CancelTransferRequest) -> TransferRequest:
        data = await self._request(
            "POST",
            f"{TRANSFERS_PATH}{request_id}/cancel/",
            "Cancel Transfer",
            json=cancellation.model_dump(),
        )
        return self._parse(TransferRequest, data, "Cancel Transfer")

    async def eligible_target_classes(self, request_id: RecordId) -> list[TargetClass]:
        """Fetch classes at the receiving school that can take the student."""
        data = await self._request(
            "GET",
            f"{TRANSFERS_PATH}{request_id}/eligible-classes/",
            "Fetch Eligible Classes",
        )
        if not isinstance(data, list):
            return []
        return [self._parse(TargetClass, item, "Fetch Eligible Classes") for item in data]

    # =========================================================================
    # Plumbing
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        context: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and decode the response.

        Raises:
            StoreTransportError: If the request did not complete.
            StoreValidationError: If the store rejected the request.
            StoreProtocolError: If the body could not be decoded.
        """
        logger.debug("%s: %s %s params=%s", context, method, path, params)
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            logger.error("%s timed out: %s", context, str(e))
            raise StoreTransportError(
                f"{context}: request timed out",
                details={"error_type": type(e).__name__},
            ) from e
        except httpx.RequestError as e:
            logger.error("%s connection error: %s", context, str(e))
            raise StoreTransportError(
                f"{context}: failed to reach the record store: {str(e)}",
                details={"error_type": type(e).__name__},
            ) from e

        return self._handle_response(response, context)

    def _handle_response(self, response: httpx.Response, context: str) -> Any:
        status = response.status_code
        if status == 204:
            return None

        data: Any = None
        if response.content:
            try:
                data = response.json()
            except ValueError as e:
                if status >= 500:
                    raise StoreTransportError(
                        f"{context}: server error",
                        status_code=status,
                    ) from e
                raise StoreProtocolError(
                    f"{context} failed: invalid response from server (status {status})"
                ) from e

        if status >= 500:
            logger.error("%s server error (%d): %s", context, status, data)
            raise StoreTransportError(
                f"{context}: {self._error_message(data, status)}",
                status_code=status,
            )

        if status >= 400:
            message = f"{context}: {self._error_message(data, status)}"
            field_errors = data if isinstance(data, dict) else None
            logger.warning("%s rejected (%d): %s", context, status, data)
            if status == 404:
                raise StoreNotFoundError(message, status_code=status, field_errors=field_errors)
            raise StoreValidationError(message, status_code=status, field_errors=field_errors)

        if status == 207:
            logger.warning("%s completed with partial results", context)

        return data

    @staticmethod
    def _error_message(data: Any, status: int) -> str:
        """Pick the most useful message from an error body."""
        if isinstance(data, dict):
            if data.get("detail"):
                return str(data["detail"])
            if data.get("error"):
                return str(data["error"])
            for key, value in data.items():
                if isinstance(value, list) and value:
                    return f"{key}: {value[0]}"
            if data:
                return json.dumps(data, default=str)
        if isinstance(data, str) and data:
            return data
        return f"Request failed with status {status}"

    @staticmethod
    def _parse(model: type[M], data: Any, context: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error("%s returned an invalid %s: %s", context, model.__name__, e)
            raise StoreProtocolError(
                f"{context}: invalid {model.__name__} in store response",
                details={"errors": e.errors(include_url=False)},
            ) from e

    @staticmethod
    def _parse_page(model: type[M], data: Any, page_size: int, context: str) -> Page[M]:
        if data is not None and not isinstance(data, dict):
            raise StoreProtocolError(f"{context}: expected a paginated object body")
        try:
            return Page[model].from_payload(data, page_size)  # type: ignore[valid-type]
        except ValidationError as e:
            logger.error("%s returned an invalid page: %s", context, e)
            raise StoreProtocolError(
                f"{context}: invalid {model.__name__} in store response",
                details={"errors": e.errors(include_url=False)},
            ) from e
