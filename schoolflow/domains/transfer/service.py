# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Transfer request service.

This module provides the TransferService class for:
- Cached transfer request listings and eligible target classes
- Initiating, reviewing, completing and cancelling transfers

Each mutation is checked against the state machine and the input
validators first, is guarded against duplicate submission, and
invalidates the transfer listings once the store has answered.
"""

from __future__ import annotations

import logging

from schoolflow.core.config.settings import SelectionSettings
from schoolflow.domains.transfer.state import ensure_transition
from schoolflow.domains.transfer.validators import (
    validate_cancel,
    validate_completion,
    validate_review,
)
from schoolflow.infrastructure.cache import CacheKeys, QueryCache
from schoolflow.infrastructure.store import RecordStoreClient
from schoolflow.models.common import Page, RecordId
from schoolflow.models.transfer import (
    CancelTransferRequest,
    CompleteTransferRequest,
    InitiateTransferRequest,
    ReviewTransferRequest,
    TargetClass,
    TransferFilter,
    TransferRequest,
    TransferStatus,
)
from schoolflow.utils.inflight import InFlightRegistry

logger = logging.getLogger(__name__)

TRANSFER_KIND = "transfer"
STUDENT_KIND = "transfer_student"


class TransferService:
    """Service for inter-school transfer requests.

    Attributes:
        store: Record store client.
        cache: View cache.
        inflight: Duplicate-submission guard.
        settings: Listing defaults; the page size applies to filters
            that do not set one.
    """

    def __init__(
        self,
        store: RecordStoreClient,
        cache: QueryCache,
        inflight: InFlightRegistry,
        settings: SelectionSettings | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.inflight = inflight
        self.settings = settings or SelectionSettings()

    async def list_requests(self, transfer_filter: TransferFilter) -> Page[TransferRequest]:
        if "page_size" not in transfer_filter.model_fields_set:
            transfer_filter = transfer_filter.model_copy(
                update={"page_size": self.settings.transfer_page_size}
            )
        return await self.cache.get_or_fetch(
            CacheKeys.Transfer.REQUESTS,
            transfer_filter.to_query(),
            lambda: self.store.list_transfers(transfer_filter),
        )

    async def get_request(self, request_id: RecordId) -> TransferRequest:
        """Fetch the current state of a request, bypassing the cache."""
        return await self.store.get_transfer(request_id)

    async def eligible_target_classes(self, request_id: RecordId) -> list[TargetClass]:
        """Classes at the receiving school that can take the student."""
        return await self.cache.get_or_fetch(
            CacheKeys.Transfer.ELIGIBLE_CLASSES,
            {"request_id": request_id},
            lambda: self.store.eligible_target_classes(request_id),
        )

    async def initiate(self, request: InitiateTransferRequest) -> TransferRequest:
        """Open a transfer request from the sending school.

        Args:
            request: Student, receiving school, effective year and reason.

        Returns:
            The created request, pending review.
        """
        async with self.inflight.hold(STUDENT_KIND, [request.student_id]):
            created = await self.store.initiate_transfer(request)

        logger.info(
            "Initiated transfer %s for student %s to school %s",
            created.id,
            request.student_id,
            request.to_school_id,
        )
        await self.cache.invalidate(CacheKeys.Transfer.REQUESTS)
        return created

    async def review(
        self,
        request: TransferRequest,
        approve: bool,
        notes: str | None = None,
    ) -> TransferRequest:
        """Approve or reject a pending request.

        Args:
            request: Request as last seen.
            approve: True to approve, False to reject.
            notes: Review notes; required when rejecting.

        Returns:
            The reviewed request.

        Raises:
            TransferValidationError: If rejecting without notes.
            InvalidTransferTransitionError: If the request is not pending.
            OperationInProgressError: If the request is already being submitted.
        """
        validate_review(approve, notes)
        target = TransferStatus.APPROVED if approve else TransferStatus.REJECTED
        ensure_transition(request.status, target, request.id)

        async with self.inflight.hold(TRANSFER_KIND, [request.id]):
            reviewed = await self.store.review_transfer(
                request.id,
                ReviewTransferRequest(approve=approve, notes=notes),
            )

        logger.info("Transfer %s %s", request.id, target.value)
        await self.cache.invalidate(CacheKeys.Transfer.REQUESTS)
        return reviewed

    async def complete(
        self,
        request: TransferRequest,
        target_class_id: RecordId | None,
        notes: str | None = None,
    ) -> TransferRequest:
        """Place an approved transfer into a class at the receiving school.

        Raises:
            InvalidTransferTransitionError: If the request is not approved.
            TransferValidationError: If there is no eligible class or the
                chosen class is not one of them.
        """
        ensure_transition(request.status, TransferStatus.COMPLETED, request.id)
        eligible = await self.eligible_target_classes(request.id)
        target = validate_completion(target_class_id, eligible)

        async with self.inflight.hold(TRANSFER_KIND, [request.id]):
            completed = await self.store.complete_transfer(
                request.id,
                CompleteTransferRequest(target_class_id=target.id, notes=notes),
            )

        logger.info("Transfer %s completed into class %s", request.id, target.id)
        # The student now holds an enrollment at the receiving school
        await self.cache.invalidate(
            CacheKeys.Transfer.REQUESTS,
            CacheKeys.Transfer.ELIGIBLE_CLASSES,
            CacheKeys.Enrollment.ACADEMIC_YEAR_ENROLLMENTS,
            CacheKeys.Enrollment.STATISTICS,
        )
        return completed

    async def cancel(self, request: TransferRequest, reason: str | None) -> TransferRequest:
        """Withdraw a request that has not been completed.

        Raises:
            TransferValidationError: If no reason is given.
            InvalidTransferTransitionError: If the request is terminal.
        """
        reason = validate_cancel(reason)
        ensure_transition(request.status, TransferStatus.CANCELLED, request.id)

        async with self.inflight.hold(TRANSFER_KIND, [request.id]):
            cancelled = await self.store.cancel_transfer(
                request.id,
                CancelTransferRequest(reason=reason),
            )

        logger.info("Transfer %s cancelled", request.id)
        await self.cache.invalidate(CacheKeys.Transfer.REQUESTS)
        return cancelled
