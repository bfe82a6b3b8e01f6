# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Submission review service.

This module provides the SubmissionReviewService class for:
- Starting and submitting task assignments (buddy side)
- Editing and withdrawing pending submissions
- Review decisions: under review, approve, request revision, reject
- Reading assignments and their submission history

Each call is one transaction. After every assignment status change the
ProgressAggregator recounts the assignment's week and enrollment in the same
transaction.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.domains.errors import (
    AssignmentNotFoundError,
    ForbiddenError,
    InvalidStateTransitionError,
    PersistenceError,
    SubmissionNotFoundError,
    ValidationError,
)
from buddytrack.domains.progress.aggregator import ProgressAggregator
from buddytrack.domains.submission.transitions import (
    ensure_editable,
    ensure_reviewable,
    ensure_transition,
)
from buddytrack.infrastructure.database.models import (
    Submission,
    SubmissionFeedback,
    SubmissionResource,
    TaskAssignment,
)
from buddytrack.models.common import (
    FeedbackType,
    Principal,
    ReviewStatus,
    TaskAssignmentStatus,
    UserRole,
)
from buddytrack.models.enrollment import TaskAssignmentResponse
from buddytrack.models.submission import (
    FeedbackResponse,
    ResourceResponse,
    SubmissionResponse,
    SubmissionUpdate,
    SubmitRequest,
)
from buddytrack.utils.datetime import utc_now

logger = logging.getLogger(__name__)


def ensure_can_access(actor: Principal, buddy_id: str) -> None:
    """Allow staff, or the buddy who owns the row.

    Raises:
        ForbiddenError: If a buddy accesses another buddy's row.
    """
    if actor.is_staff:
        return
    if not actor.owns_buddy_record(buddy_id):
        raise ForbiddenError("Not authorized to access this buddy's work")


def ensure_reviewer(actor: Principal) -> None:
    """Allow mentors and managers only.

    Raises:
        ForbiddenError: If actor is a buddy.
    """
    if not actor.is_staff:
        raise ForbiddenError("Only mentors and managers can review submissions")


async def build_submission_response(
    db: AsyncSession,
    submission: Submission,
    include_feedback: bool = True,
) -> SubmissionResponse:
    """Load a submission's resources (and feedback) into a response model.

    Args:
        db: Async database session.
        submission: Submission row.
        include_feedback: Whether to load the feedback thread.

    Returns:
        Submission response with resources in display order and feedback
        in creation order.
    """
    resources = await db.scalars(
        select(SubmissionResource)
        .where(SubmissionResource.submission_id == submission.id)
        .order_by(SubmissionResource.display_order)
    )
    feedback = []
    if include_feedback:
        feedback_rows = await db.scalars(
            select(SubmissionFeedback)
            .where(SubmissionFeedback.submission_id == submission.id)
            .order_by(SubmissionFeedback.created_at)
        )
        feedback = [FeedbackResponse.model_validate(f) for f in feedback_rows]

    response = SubmissionResponse.model_validate(submission)
    return response.model_copy(
        update={
            "resources": [ResourceResponse.model_validate(r) for r in resources],
            "feedback": feedback,
        }
    )


class SubmissionReviewService:
    """Service driving the task assignment and submission review lifecycle.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize submission review service.

        Args:
            db: Async database session.
        """
        self.db = db
        self._aggregator = ProgressAggregator(db)

    # Buddy side

    async def get_assignment(
        self,
        assignment_id: str | UUID,
        actor: Principal,
    ) -> TaskAssignmentResponse:
        """Get a task assignment.

        Raises:
            AssignmentNotFoundError: If assignment not found.
            ForbiddenError: If a buddy reads another buddy's assignment.
        """
        assignment = await self._get_assignment(assignment_id)
        ensure_can_access(actor, assignment.buddy_id)
        return TaskAssignmentResponse.model_validate(assignment)

    async def start(
        self,
        assignment_id: str | UUID,
        actor: Principal,
    ) -> TaskAssignmentResponse:
        """Mark an assignment as in progress.

        Starting an already started task is allowed and keeps the original
        start time.

        Args:
            assignment_id: Assignment identifier.
            actor: The owning buddy, a mentor or a manager.

        Returns:
            Updated assignment.

        Raises:
            AssignmentNotFoundError: If assignment not found.
            ForbiddenError: If a buddy starts another buddy's task.
            InvalidStateTransitionError: If the task is already completed.
        """
        assignment = await self._get_assignment(assignment_id)
        ensure_can_access(actor, assignment.buddy_id)
        ensure_transition(assignment.status, TaskAssignmentStatus.IN_PROGRESS)

        assignment.status = TaskAssignmentStatus.IN_PROGRESS
        if assignment.started_at is None:
            assignment.started_at = utc_now()

        await self._finish(assignment.id, "start")
        logger.info("Task started: assignment=%s, by=%s", assignment.id, actor.user_id)
        return TaskAssignmentResponse.model_validate(assignment)

    async def submit(
        self,
        assignment_id: str | UUID,
        actor: Principal,
        request: SubmitRequest,
    ) -> SubmissionResponse:
        """Submit a new version of work for an assignment.

        Args:
            assignment_id: Assignment identifier.
            actor: The owning buddy.
            request: Description, notes and at least one resource.

        Returns:
            The new submission with its resources.

        Raises:
            ValidationError: If description is blank or no resources given.
            AssignmentNotFoundError: If assignment not found.
            ForbiddenError: If actor is not the assignment's buddy.
            InvalidStateTransitionError: If the task is already completed,
                or a concurrent submission took the same version.
        """
        if not request.resources:
            raise ValidationError("At least one resource is required")
        if not request.description or not request.description.strip():
            raise ValidationError("Description is required")

        assignment = await self._get_assignment(assignment_id)
        if not actor.owns_buddy_record(assignment.buddy_id):
            raise ForbiddenError("Only the assigned buddy can submit this task")
        ensure_transition(assignment.status, TaskAssignmentStatus.SUBMITTED)

        latest = await self.db.scalar(
            select(func.max(Submission.version)).where(
                Submission.task_assignment_id == assignment.id
            )
        )
        version = (latest or 0) + 1
        assignment_id = assignment.id
        now = utc_now()

        submission = Submission(
            task_assignment_id=assignment.id,
            buddy_id=assignment.buddy_id,
            version=version,
            description=request.description,
            notes=request.notes,
            review_status=ReviewStatus.PENDING,
            submitted_at=now,
        )
        try:
            self.db.add(submission)
            await self.db.flush()

            for index, resource in enumerate(request.resources):
                self.db.add(
                    SubmissionResource(
                        submission_id=submission.id,
                        type=resource.type.value,
                        label=resource.label,
                        url=resource.url,
                        filename=resource.filename,
                        filesize=resource.filesize,
                        display_order=index,
                    )
                )

            assignment.status = TaskAssignmentStatus.SUBMITTED
            assignment.submission_count = version
            if version == 1:
                assignment.first_submission_at = now
            if assignment.started_at is None:
                assignment.started_at = now

            await self._aggregator.update_week_progress(assignment.id)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                "Concurrent submission rejected: assignment=%s, version=%d",
                assignment_id,
                version,
            )
            raise InvalidStateTransitionError(
                f"Version {version} was already submitted for this task"
            ) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Submission failed: assignment=%s, error=%s", assignment_id, str(e))
            raise PersistenceError("Failed to submit task", e) from e

        logger.info(
            "Task submitted: assignment=%s, submission=%s, version=%d, resources=%d",
            assignment.id,
            submission.id,
            version,
            len(request.resources),
        )
        return await build_submission_response(self.db, submission, include_feedback=False)

    async def update_submission(
        self,
        submission_id: str | UUID,
        actor: Principal,
        patch: SubmissionUpdate,
    ) -> SubmissionResponse:
        """Edit a submission that is still pending.

        Raises:
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If actor is not the submitting buddy.
            InvalidStateTransitionError: If review has started.
            ValidationError: If the description would become blank.
        """
        submission = await self._get_submission(submission_id)
        if not actor.owns_buddy_record(submission.buddy_id):
            raise ForbiddenError("Not authorized to update this submission")
        ensure_editable(submission.review_status)

        changes = patch.model_dump(exclude_unset=True)
        if "description" in changes and not (changes["description"] or "").strip():
            raise ValidationError("Description is required")
        for key, value in changes.items():
            setattr(submission, key, value)

        await self._commit("update submission")
        return await build_submission_response(self.db, submission)

    async def delete_submission(self, submission_id: str | UUID, actor: Principal) -> None:
        """Withdraw a pending submission.

        When no submission awaiting review remains, a submitted assignment
        goes back to in progress.

        Raises:
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If actor is neither the owner nor a manager.
            InvalidStateTransitionError: If review has started.
        """
        submission = await self._get_submission(submission_id)
        if not (actor.owns_buddy_record(submission.buddy_id) or actor.is_manager):
            raise ForbiddenError("Not authorized to delete this submission")
        ensure_editable(submission.review_status)

        assignment = await self._get_assignment(submission.task_assignment_id)
        await self.db.delete(submission)
        await self.db.flush()

        awaiting = await self.db.scalar(
            select(func.count(Submission.id)).where(
                Submission.task_assignment_id == assignment.id,
                Submission.review_status.in_([ReviewStatus.PENDING, ReviewStatus.UNDER_REVIEW]),
            )
        )
        if not awaiting and assignment.status == TaskAssignmentStatus.SUBMITTED:
            assignment.status = TaskAssignmentStatus.IN_PROGRESS

        await self._finish(assignment.id, "delete submission")
        logger.info("Submission deleted: submission=%s, by=%s", submission_id, actor.user_id)

    async def list_submissions(
        self,
        assignment_id: str | UUID,
        actor: Principal,
    ) -> list[SubmissionResponse]:
        """List an assignment's submissions, newest version first.

        Raises:
            AssignmentNotFoundError: If assignment not found.
            ForbiddenError: If a buddy reads another buddy's submissions.
        """
        assignment = await self._get_assignment(assignment_id)
        ensure_can_access(actor, assignment.buddy_id)

        submissions = await self.db.scalars(
            select(Submission)
            .where(Submission.task_assignment_id == assignment.id)
            .order_by(Submission.version.desc())
        )
        return [
            await build_submission_response(self.db, s, include_feedback=False)
            for s in submissions.all()
        ]

    async def get_submission(
        self,
        submission_id: str | UUID,
        actor: Principal,
    ) -> SubmissionResponse:
        """Get a submission with its resources and feedback thread.

        Raises:
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If a buddy reads another buddy's submission.
        """
        submission = await self._get_submission(submission_id)
        ensure_can_access(actor, submission.buddy_id)
        return await build_submission_response(self.db, submission)

    # Reviewer side

    async def mark_under_review(
        self,
        submission_id: str | UUID,
        reviewer: Principal,
    ) -> SubmissionResponse:
        """Claim a pending submission for review.

        Raises:
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If reviewer is a buddy.
            InvalidStateTransitionError: If the submission is not pending.
        """
        ensure_reviewer(reviewer)
        submission = await self._get_submission(submission_id)
        if submission.review_status != ReviewStatus.PENDING:
            raise InvalidStateTransitionError(
                f"Only pending submissions can be taken into review "
                f"(status={submission.review_status.value})"
            )

        assignment = await self._get_assignment(submission.task_assignment_id)
        submission.review_status = ReviewStatus.UNDER_REVIEW
        submission.reviewed_by = self._reviewer_id(reviewer)
        if assignment.status == TaskAssignmentStatus.SUBMITTED:
            assignment.status = TaskAssignmentStatus.UNDER_REVIEW

        await self._finish(assignment.id, "mark under review")
        logger.info("Submission under review: submission=%s, reviewer=%s", submission.id, reviewer.user_id)
        return await build_submission_response(self.db, submission)

    async def approve(
        self,
        submission_id: str | UUID,
        reviewer: Principal,
        grade: str | None = None,
    ) -> SubmissionResponse:
        """Approve a submission and complete its assignment.

        Args:
            submission_id: Submission identifier.
            reviewer: Mentor or manager.
            grade: Optional grade.

        Returns:
            Approved submission with its feedback thread.

        Raises:
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If reviewer is a buddy.
            InvalidStateTransitionError: If already reviewed or task completed.
        """
        message = f"Approved with grade: {grade}" if grade else "Approved"
        submission = await self._decide(
            submission_id,
            reviewer,
            review_status=ReviewStatus.APPROVED,
            assignment_status=TaskAssignmentStatus.COMPLETED,
            feedback_type=FeedbackType.APPROVAL,
            message=message,
            grade=grade,
        )
        return await build_submission_response(self.db, submission)

    async def request_revision(
        self,
        submission_id: str | UUID,
        reviewer: Principal,
        message: str,
    ) -> SubmissionResponse:
        """Send a submission back to the buddy for another version.

        Raises:
            ValidationError: If message is blank.
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If reviewer is a buddy.
            InvalidStateTransitionError: If already reviewed.
        """
        if not message or not message.strip():
            raise ValidationError("Revision message is required")

        submission = await self._decide(
            submission_id,
            reviewer,
            review_status=ReviewStatus.NEEDS_REVISION,
            assignment_status=TaskAssignmentStatus.IN_PROGRESS,
            feedback_type=FeedbackType.REVISION_REQUEST,
            message=message,
        )
        return await build_submission_response(self.db, submission)

    async def reject(
        self,
        submission_id: str | UUID,
        reviewer: Principal,
        message: str,
    ) -> SubmissionResponse:
        """Reject a submission; the assignment starts over.

        Raises:
            ValidationError: If message is blank.
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If reviewer is a buddy.
            InvalidStateTransitionError: If already reviewed.
        """
        if not message or not message.strip():
            raise ValidationError("Rejection reason is required")

        submission = await self._decide(
            submission_id,
            reviewer,
            review_status=ReviewStatus.REJECTED,
            assignment_status=TaskAssignmentStatus.NOT_STARTED,
            feedback_type=FeedbackType.REJECTION,
            message=message,
        )
        return await build_submission_response(self.db, submission)

    async def _decide(
        self,
        submission_id: str | UUID,
        reviewer: Principal,
        review_status: ReviewStatus,
        assignment_status: TaskAssignmentStatus,
        feedback_type: FeedbackType,
        message: str,
        grade: str | None = None,
    ) -> Submission:
        """Apply a review decision to submission, assignment and feedback log."""
        ensure_reviewer(reviewer)
        submission = await self._get_submission(submission_id)
        ensure_reviewable(submission.review_status)

        assignment = await self._get_assignment(submission.task_assignment_id)
        ensure_transition(assignment.status, assignment_status)

        now = utc_now()
        submission.review_status = review_status
        submission.reviewed_by = self._reviewer_id(reviewer)
        submission.reviewed_at = now
        if grade is not None:
            submission.grade = grade

        assignment.status = assignment_status
        if assignment_status == TaskAssignmentStatus.COMPLETED:
            assignment.completed_at = now
        else:
            assignment.completed_at = None

        self.db.add(
            SubmissionFeedback(
                submission_id=submission.id,
                author_id=reviewer.user_id,
                author_role=UserRole(reviewer.role),
                message=message,
                feedback_type=feedback_type,
            )
        )

        await self._finish(assignment.id, f"record {review_status.value} review")
        logger.info(
            "Submission reviewed: submission=%s, decision=%s, assignment=%s -> %s, reviewer=%s",
            submission.id,
            review_status.value,
            assignment.id,
            assignment_status.value,
            reviewer.user_id,
        )
        return submission

    # Helpers

    @staticmethod
    def _reviewer_id(reviewer: Principal) -> str:
        return reviewer.mentor_id or reviewer.user_id

    async def _finish(self, assignment_id: str, action: str) -> None:
        """Recount progress for the assignment and commit."""
        try:
            await self.db.flush()
            await self._aggregator.update_week_progress(assignment_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to %s: assignment=%s, error=%s", action, assignment_id, str(e))
            raise PersistenceError(f"Failed to {action}", e) from e

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to %s: %s", action, str(e))
            raise PersistenceError(f"Failed to {action}", e) from e

    async def _get_assignment(self, assignment_id: str | UUID) -> TaskAssignment:
        assignment = await self.db.get(TaskAssignment, str(assignment_id))
        if not assignment:
            raise AssignmentNotFoundError(f"Task assignment {assignment_id} not found")
        return assignment

    async def _get_submission(self, submission_id: str | UUID) -> Submission:
        submission = await self.db.get(Submission, str(submission_id))
        if not submission:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return submission
