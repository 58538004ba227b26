# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment workflow service.

This module provides the EnrollmentWorkflowService class for:
- Cached workflow, enrollment and statistics listings
- Single-workflow class assignment
- Promotion cycle initialization
- Editing confirmed enrollments
- Enrolling newly registered students

Bulk assignment lives in ``schoolflow.domains.enrollment.bulk``.
"""

from __future__ import annotations

import logging
from typing import Any

from schoolflow.domains.enrollment.stages import ensure_class_assignable
from schoolflow.infrastructure.cache import CacheKeys, QueryCache
from schoolflow.infrastructure.store import RecordStoreClient, StoreValidationError
from schoolflow.models.common import Page, RecordId
from schoolflow.models.enrollment import (
    EnrollmentFilter,
    EnrollmentStatistics,
    EnrollmentWorkflow,
    NewStudentEnrollmentRequest,
    StudentEnrollment,
    WorkflowFilter,
)
from schoolflow.utils.inflight import InFlightRegistry

logger = logging.getLogger(__name__)

WORKFLOW_KIND = "workflow"
ENROLLMENT_KIND = "enrollment"
CLASS_KIND = "class"

EDITABLE_ENROLLMENT_FIELDS = frozenset({"assigned_class_id", "status", "notes"})


class EnrollmentWorkflowService:
    """Service for enrollment workflows and confirmed enrollments.

    Reads go through the query cache; every mutation invalidates the
    views it can affect once the store has answered.

    Attributes:
        store: Record store client.
        cache: View cache.
        inflight: Duplicate-submission guard shared with the bulk path.
    """

    def __init__(
        self,
        store: RecordStoreClient,
        cache: QueryCache,
        inflight: InFlightRegistry,
    ) -> None:
        """Initialize enrollment workflow service.

        Args:
            store: Record store client.
            cache: View cache.
            inflight: In-flight registry, shared with the bulk coordinator
                so that a single and a bulk submission cannot overlap.
        """
        self.store = store
        self.cache = cache
        self.inflight = inflight

    # =========================================================================
    # Listings
    # =========================================================================

    async def list_workflows(self, workflow_filter: WorkflowFilter) -> Page[EnrollmentWorkflow]:
        """List workflows for the per-student workflow screen."""
        return await self.cache.get_or_fetch(
            CacheKeys.Enrollment.WORKFLOWS,
            workflow_filter.to_query(),
            lambda: self.store.list_workflows(workflow_filter),
        )

    async def list_bulk_workflows(self, workflow_filter: WorkflowFilter) -> Page[EnrollmentWorkflow]:
        """List workflows for the bulk assignment screen.

        Same store query as ``list_workflows``, cached under its own
        namespace so that the two screens refresh independently.
        """
        return await self.cache.get_or_fetch(
            CacheKeys.Enrollment.WORKFLOWS_BULK,
            workflow_filter.to_query(),
            lambda: self.store.list_workflows(workflow_filter),
        )

    async def list_enrollments(self, enrollment_filter: EnrollmentFilter) -> Page[StudentEnrollment]:
        """List confirmed enrollments of one class for an academic year."""
        return await self.cache.get_or_fetch(
            CacheKeys.Enrollment.ACADEMIC_YEAR_ENROLLMENTS,
            enrollment_filter.to_query(),
            lambda: self.store.list_enrollments(enrollment_filter),
        )

    async def get_statistics(self, academic_year_id: RecordId | None = None) -> EnrollmentStatistics:
        return await self.cache.get_or_fetch(
            CacheKeys.Enrollment.STATISTICS,
            {"academic_year_id": academic_year_id},
            lambda: self.store.get_statistics(academic_year_id),
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    async def assign_class(
        self,
        workflow_id: RecordId,
        class_id: RecordId,
        notes: str | None = None,
        workflow: EnrollmentWorkflow | None = None,
    ) -> EnrollmentWorkflow:
        """Assign a destination class to a single workflow.

        The workflow is re-read from the store unless a current copy is
        passed in, and the assignment is checked locally before it is
        sent.

        Args:
            workflow_id: Workflow to complete.
            class_id: Destination class, one of the workflow's options.
            notes: Optional assignment notes.
            workflow: Already-fetched workflow, skips the refresh.

        Returns:
            The workflow as updated by the store.

        Raises:
            InvalidStageTransitionError: If the workflow is not ready for enrollment.
            ClassNotSelectableError: If the class is not one of its options.
            OperationInProgressError: If the workflow is already being submitted.
            StoreValidationError: If the store refused the assignment.
            StoreTransportError: If the call did not complete.
        """
        if workflow is None:
            workflow = await self.store.get_workflow(workflow_id)
        destination = ensure_class_assignable(workflow, class_id)

        async with self.inflight.hold(WORKFLOW_KIND, [workflow_id]):
            try:
                updated = await self.store.select_class(workflow_id, class_id, notes)
            except StoreValidationError as e:
                logger.warning(
                    "Store refused class %s for workflow %s: %s",
                    class_id,
                    workflow_id,
                    e.message,
                )
                raise

        logger.info(
            "Assigned workflow %s to class %s (%s)",
            workflow_id,
            class_id,
            destination.display_name,
        )
        await self.cache.invalidate(*CacheKeys.Enrollment.AFFECTED_BY_ASSIGNMENT)
        return updated

    async def initialize_workflows(
        self,
        from_academic_year_id: RecordId,
        to_academic_year_id: RecordId,
    ) -> dict[str, Any]:
        """Create the workflows of a promotion cycle.

        Returns:
            Store summary of the initialization.
        """
        summary = await self.store.initialize_workflows(from_academic_year_id, to_academic_year_id)
        logger.info(
            "Initialized workflows %s -> %s: %s",
            from_academic_year_id,
            to_academic_year_id,
            summary,
        )
        await self.cache.invalidate(
            CacheKeys.Enrollment.WORKFLOWS,
            CacheKeys.Enrollment.WORKFLOWS_BULK,
            CacheKeys.Enrollment.STATISTICS,
        )
        return summary

    async def edit_enrollment(self, enrollment_id: RecordId, **updates: Any) -> StudentEnrollment:
        """Edit a confirmed enrollment.

        Args:
            enrollment_id: Enrollment to edit.
            **updates: Any of ``assigned_class_id``, ``status``, ``notes``.

        Returns:
            The updated enrollment.

        Raises:
            ValueError: If no update or an unknown field is given.
        """
        unknown = set(updates) - EDITABLE_ENROLLMENT_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit enrollment fields: {', '.join(sorted(unknown))}")
        if not updates:
            raise ValueError("No enrollment changes given")

        async with self.inflight.hold(ENROLLMENT_KIND, [enrollment_id]):
            enrollment = await self.store.edit_enrollment(enrollment_id, updates)

        logger.info("Edited enrollment %s: %s", enrollment_id, sorted(updates))
        await self.cache.invalidate(
            CacheKeys.Enrollment.ACADEMIC_YEAR_ENROLLMENTS,
            CacheKeys.Enrollment.STATISTICS,
        )
        return enrollment

    async def enroll_new_student(
        self, class_id: RecordId, request: NewStudentEnrollmentRequest
    ) -> StudentEnrollment:
        """Register a new student and enroll them in a class.

        Args:
            class_id: Class receiving the student.
            request: Student and parent records.

        Returns:
            The created enrollment.
        """
        async with self.inflight.hold(CLASS_KIND, [class_id]):
            enrollment = await self.store.enroll_new_student(class_id, request)

        logger.info("Enrolled new student into class %s: enrollment %s", class_id, enrollment.id)
        await self.cache.invalidate(
            CacheKeys.Enrollment.ACADEMIC_YEAR_ENROLLMENTS,
            CacheKeys.Enrollment.STATISTICS,
        )
        return enrollment
