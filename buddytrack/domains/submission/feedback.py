# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Feedback thread service.

Feedback entries form a tree per submission through parent_feedback_id.
Adding, editing and deleting entries never changes review state; review
decisions append their own entries through SubmissionReviewService.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.domains.errors import (
    FeedbackNotFoundError,
    ForbiddenError,
    PersistenceError,
    SubmissionNotFoundError,
    ValidationError,
)
from buddytrack.domains.submission.service import ensure_can_access
from buddytrack.infrastructure.database.models import Submission, SubmissionFeedback
from buddytrack.models.common import Principal, UserRole
from buddytrack.models.submission import FeedbackCreate, FeedbackResponse

logger = logging.getLogger(__name__)


class FeedbackService:
    """Service for a submission's threaded feedback log.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize feedback service.

        Args:
            db: Async database session.
        """
        self.db = db

    async def add_feedback(
        self,
        submission_id: str | UUID,
        actor: Principal,
        data: FeedbackCreate,
    ) -> FeedbackResponse:
        """Append an entry to a submission's thread.

        Args:
            submission_id: Submission identifier.
            actor: Author; buddies may only write on their own submissions.
            data: Message, type and optional parent entry.

        Returns:
            The new entry.

        Raises:
            ValidationError: If message is blank.
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If a buddy writes on another buddy's submission.
            FeedbackNotFoundError: If the parent entry is not in this thread.
        """
        if not data.message or not data.message.strip():
            raise ValidationError("Message is required")

        submission = await self._get_submission(submission_id)
        ensure_can_access(actor, submission.buddy_id)

        if data.parent_feedback_id is not None:
            parent = await self.db.get(SubmissionFeedback, str(data.parent_feedback_id))
            if not parent or parent.submission_id != submission.id:
                raise FeedbackNotFoundError(
                    f"Parent feedback {data.parent_feedback_id} not found on this submission"
                )

        feedback = SubmissionFeedback(
            submission_id=submission.id,
            author_id=actor.user_id,
            author_role=UserRole(actor.role),
            message=data.message,
            feedback_type=data.feedback_type,
            parent_feedback_id=str(data.parent_feedback_id) if data.parent_feedback_id else None,
        )
        self.db.add(feedback)
        await self._commit("add feedback")
        await self.db.refresh(feedback)

        logger.info(
            "Feedback added: submission=%s, feedback=%s, type=%s, by=%s",
            submission.id,
            feedback.id,
            feedback.feedback_type.value,
            actor.user_id,
        )
        return FeedbackResponse.model_validate(feedback)

    async def list_feedback(
        self,
        submission_id: str | UUID,
        actor: Principal,
    ) -> list[FeedbackResponse]:
        """List a submission's thread in creation order.

        Raises:
            SubmissionNotFoundError: If submission not found.
            ForbiddenError: If a buddy reads another buddy's thread.
        """
        submission = await self._get_submission(submission_id)
        ensure_can_access(actor, submission.buddy_id)

        result = await self.db.scalars(
            select(SubmissionFeedback)
            .where(SubmissionFeedback.submission_id == submission.id)
            .order_by(SubmissionFeedback.created_at)
        )
        return [FeedbackResponse.model_validate(f) for f in result.all()]

    async def update_feedback(
        self,
        feedback_id: str | UUID,
        actor: Principal,
        message: str,
    ) -> FeedbackResponse:
        """Edit an entry's message.

        Raises:
            ValidationError: If message is blank.
            FeedbackNotFoundError: If entry not found.
            ForbiddenError: If actor is neither the author nor a manager.
        """
        if not message or not message.strip():
            raise ValidationError("Message is required")

        feedback = await self._get_editable(feedback_id, actor)
        feedback.message = message
        await self._commit("update feedback")
        await self.db.refresh(feedback)
        return FeedbackResponse.model_validate(feedback)

    async def delete_feedback(self, feedback_id: str | UUID, actor: Principal) -> None:
        """Delete an entry and its replies.

        Raises:
            FeedbackNotFoundError: If entry not found.
            ForbiddenError: If actor is neither the author nor a manager.
        """
        feedback = await self._get_editable(feedback_id, actor)
        await self.db.delete(feedback)
        await self._commit("delete feedback")
        logger.info("Feedback deleted: feedback=%s, by=%s", feedback_id, actor.user_id)

    async def _get_editable(
        self,
        feedback_id: str | UUID,
        actor: Principal,
    ) -> SubmissionFeedback:
        feedback = await self.db.get(SubmissionFeedback, str(feedback_id))
        if not feedback:
            raise FeedbackNotFoundError(f"Feedback {feedback_id} not found")
        if feedback.author_id != actor.user_id and not actor.is_manager:
            raise ForbiddenError("Only the author or a manager can change this feedback")
        return feedback

    async def _get_submission(self, submission_id: str | UUID) -> Submission:
        submission = await self.db.get(Submission, str(submission_id))
        if not submission:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return submission

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to %s: %s", action, str(e))
            raise PersistenceError(f"Failed to {action}", e) from e
