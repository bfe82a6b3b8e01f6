# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mentor review queue.

Lists submissions of the buddies assigned to one mentor, newest first, with
the assignment, task and week context a reviewer needs.
"""

import logging
from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.domains.errors import ForbiddenError, ValidationError
from buddytrack.domains.submission.service import build_submission_response
from buddytrack.domains.submission.transitions import REVIEWABLE_STATUSES
from buddytrack.infrastructure.database.models import (
    Buddy,
    BuddyWeekProgress,
    CurriculumWeek,
    Submission,
    TaskAssignment,
    TaskTemplate,
)
from buddytrack.models.common import Principal, ReviewStatus
from buddytrack.models.enrollment import TaskAssignmentResponse
from buddytrack.models.submission import AssignedBuddySummary, ReviewQueueItem

logger = logging.getLogger(__name__)

QueueStatus = Literal["pending", "under_review", "all"]


class ReviewQueueService:
    """Read-side service for mentors' review work.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_review_queue(
        self,
        actor: Principal,
        mentor_id: str | None = None,
        buddy_id: str | None = None,
        week_number: int | None = None,
        status: QueueStatus | None = None,
    ) -> list[ReviewQueueItem]:
        """List submissions awaiting review for a mentor's buddies.

        Args:
            actor: Mentor (sees their own queue) or manager.
            mentor_id: Mentor whose queue to read; defaults to the actor's.
            buddy_id: Only this buddy's submissions.
            week_number: Only submissions for tasks in this week.
            status: ``pending``, ``under_review`` or ``all``. By default both
                pending and under-review submissions are listed.

        Returns:
            Queue items, newest submission first.

        Raises:
            ForbiddenError: If a buddy asks, or a mentor reads another queue.
            ValidationError: If no mentor can be determined.
        """
        mentor_id = self._resolve_mentor(actor, mentor_id)

        query = (
            select(Submission, TaskAssignment, TaskTemplate, BuddyWeekProgress, CurriculumWeek, Buddy)
            .join(TaskAssignment, Submission.task_assignment_id == TaskAssignment.id)
            .join(BuddyWeekProgress, TaskAssignment.buddy_week_progress_id == BuddyWeekProgress.id)
            .join(Buddy, TaskAssignment.buddy_id == Buddy.id)
            .outerjoin(TaskTemplate, TaskAssignment.task_template_id == TaskTemplate.id)
            .outerjoin(CurriculumWeek, BuddyWeekProgress.curriculum_week_id == CurriculumWeek.id)
            .where(Buddy.assigned_mentor_id == mentor_id)
            .order_by(Submission.submitted_at.desc())
        )

        if status == "pending":
            query = query.where(Submission.review_status == ReviewStatus.PENDING)
        elif status == "under_review":
            query = query.where(Submission.review_status == ReviewStatus.UNDER_REVIEW)
        elif status != "all":
            query = query.where(Submission.review_status.in_(REVIEWABLE_STATUSES))

        if buddy_id:
            query = query.where(TaskAssignment.buddy_id == str(buddy_id))
        if week_number is not None:
            query = query.where(BuddyWeekProgress.week_number == week_number)

        result = await self.db.execute(query)
        items = [
            ReviewQueueItem(
                submission=await build_submission_response(self.db, submission, include_feedback=False),
                assignment=TaskAssignmentResponse.model_validate(assignment),
                task_title=template.title if template else None,
                week_number=progress.week_number,
                week_title=week.title if week else None,
                buddy_id=buddy.id,
                buddy_user_id=buddy.user_id,
            )
            for submission, assignment, template, progress, week, buddy in result.all()
        ]

        logger.debug("Review queue: mentor=%s, items=%d", mentor_id, len(items))
        return items

    async def list_assigned_buddies(
        self,
        actor: Principal,
        mentor_id: str | None = None,
    ) -> list[AssignedBuddySummary]:
        """List buddies assigned to a mentor.

        Raises:
            ForbiddenError: If a buddy asks, or a mentor reads another list.
            ValidationError: If no mentor can be determined.
        """
        mentor_id = self._resolve_mentor(actor, mentor_id)
        result = await self.db.scalars(
            select(Buddy)
            .where(Buddy.assigned_mentor_id == mentor_id)
            .order_by(Buddy.created_at)
        )
        return [AssignedBuddySummary.model_validate(b) for b in result.all()]

    @staticmethod
    def _resolve_mentor(actor: Principal, mentor_id: str | None) -> str:
        if not actor.is_staff:
            raise ForbiddenError("Only mentors and managers can read review queues")
        if actor.is_manager:
            if not mentor_id:
                raise ValidationError("mentor_id is required")
            return str(mentor_id)
        if mentor_id and str(mentor_id) != actor.mentor_id:
            raise ForbiddenError("Mentors can only read their own review queue")
        return actor.mentor_id
