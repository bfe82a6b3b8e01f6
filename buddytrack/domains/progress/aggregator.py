# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress aggregation for buddy enrollments.

This module keeps the two derived progress levels consistent with the
task assignments underneath them:
- Week level: BuddyWeekProgress totals, percentage and status bucket
- Curriculum level: BuddyCurriculum overall progress, current week, status

Counts are always derived from a fresh query at the time of the write and
never incremented in place, so concurrent changes to the same enrollment
converge on the next recalculation.

The aggregator only flushes. Committing is the caller's job, so the
recalculation lands in the same transaction as the state change that
triggered it.

Usage:
    from buddytrack.domains.progress import ProgressAggregator

    aggregator = ProgressAggregator(db)
    await aggregator.update_week_progress(assignment.id)
    await db.commit()
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.domains.errors import (
    AssignmentNotFoundError,
    EnrollmentNotFoundError,
    WeekProgressNotFoundError,
)
from buddytrack.infrastructure.database.models import (
    BuddyCurriculum,
    BuddyWeekProgress,
    TaskAssignment,
)
from buddytrack.models.common import (
    EnrollmentStatus,
    TaskAssignmentStatus,
    WeekProgressStatus,
)
from buddytrack.utils.datetime import utc_now
from buddytrack.utils.percentages import completion_percentage

logger = logging.getLogger(__name__)


def week_status_for(percentage: int) -> WeekProgressStatus:
    """Map a completion percentage to its week status bucket.

    Args:
        percentage: Completion percentage in [0, 100].

    Returns:
        not_started for 0, completed for 100, in_progress otherwise.
    """
    if percentage >= 100:
        return WeekProgressStatus.COMPLETED
    if percentage > 0:
        return WeekProgressStatus.IN_PROGRESS
    return WeekProgressStatus.NOT_STARTED


class ProgressAggregator:
    """Recomputes week and curriculum progress from task assignments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the aggregator.

        Args:
            db: Async database session.
        """
        self.db = db

    async def recalculate_week_progress(self, week_progress_id: str) -> BuddyWeekProgress:
        """Recount a week-progress row from its task assignments.

        Args:
            week_progress_id: Week-progress identifier.

        Returns:
            The updated week-progress row.

        Raises:
            WeekProgressNotFoundError: If the row does not exist.
        """
        week = await self.db.get(BuddyWeekProgress, str(week_progress_id))
        if not week:
            raise WeekProgressNotFoundError(f"Week progress {week_progress_id} not found")

        await self._apply_week_counts(week)
        await self.db.flush()
        return week

    async def update_week_progress(self, task_assignment_id: str) -> BuddyWeekProgress:
        """Recount the week owning an assignment, then its enrollment.

        Args:
            task_assignment_id: Assignment whose status just changed.

        Returns:
            The updated week-progress row.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist.
            WeekProgressNotFoundError: If its week-progress row is gone.
        """
        assignment = await self.db.get(TaskAssignment, str(task_assignment_id))
        if not assignment:
            raise AssignmentNotFoundError(f"Task assignment {task_assignment_id} not found")

        week = await self.recalculate_week_progress(assignment.buddy_week_progress_id)
        await self.update_curriculum_progress(assignment.buddy_curriculum_id)
        return week

    async def update_curriculum_progress(self, buddy_curriculum_id: str) -> BuddyCurriculum:
        """Recount an enrollment's overall progress across all its assignments.

        The enrollment is completed at 100% and active below it, whatever
        status it had before.

        Args:
            buddy_curriculum_id: Enrollment identifier.

        Returns:
            The updated enrollment row.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
        """
        enrollment = await self.db.get(BuddyCurriculum, str(buddy_curriculum_id))
        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {buddy_curriculum_id} not found")

        await self.db.flush()
        total, completed = await self._count_assignments(
            TaskAssignment.buddy_curriculum_id == enrollment.id
        )
        percentage = completion_percentage(completed, total)

        enrollment.overall_progress = percentage
        enrollment.current_week = await self._current_week(enrollment.id)

        if percentage == 100:
            enrollment.status = EnrollmentStatus.COMPLETED
            if enrollment.completed_at is None:
                enrollment.completed_at = utc_now()
        else:
            enrollment.status = EnrollmentStatus.ACTIVE
            enrollment.completed_at = None

        await self.db.flush()

        logger.debug(
            "Curriculum progress: enrollment=%s, completed=%d/%d (%d%%)",
            enrollment.id,
            completed,
            total,
            percentage,
        )
        return enrollment

    async def recalculate_enrollment(self, buddy_curriculum_id: str) -> BuddyCurriculum:
        """Drift repair: recount every week of an enrollment, then the enrollment.

        Args:
            buddy_curriculum_id: Enrollment identifier.

        Returns:
            The updated enrollment row.

        Raises:
            EnrollmentNotFoundError: If the enrollment does not exist.
        """
        enrollment = await self.db.get(BuddyCurriculum, str(buddy_curriculum_id))
        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {buddy_curriculum_id} not found")

        result = await self.db.execute(
            select(BuddyWeekProgress).where(
                BuddyWeekProgress.buddy_curriculum_id == enrollment.id
            )
        )
        for week in result.scalars().all():
            await self._apply_week_counts(week)

        await self.db.flush()
        return await self.update_curriculum_progress(enrollment.id)

    async def _apply_week_counts(self, week: BuddyWeekProgress) -> None:
        await self.db.flush()
        total, completed = await self._count_assignments(
            TaskAssignment.buddy_week_progress_id == week.id
        )
        percentage = completion_percentage(completed, total)
        status = week_status_for(percentage)

        week.total_tasks = total
        week.completed_tasks = completed
        week.progress_percentage = percentage
        week.status = status

        if status != WeekProgressStatus.NOT_STARTED and week.started_at is None:
            week.started_at = utc_now()
        if status == WeekProgressStatus.COMPLETED:
            if week.completed_at is None:
                week.completed_at = utc_now()
        else:
            week.completed_at = None

    async def _count_assignments(self, criterion) -> tuple[int, int]:
        total = await self.db.scalar(
            select(func.count(TaskAssignment.id)).where(criterion)
        )
        completed = await self.db.scalar(
            select(func.count(TaskAssignment.id)).where(
                criterion,
                TaskAssignment.status == TaskAssignmentStatus.COMPLETED,
            )
        )
        return total or 0, completed or 0

    async def _current_week(self, buddy_curriculum_id: str) -> int:
        """Lowest week number not yet completed, else the last week."""
        open_week = await self.db.scalar(
            select(func.min(BuddyWeekProgress.week_number)).where(
                BuddyWeekProgress.buddy_curriculum_id == buddy_curriculum_id,
                BuddyWeekProgress.status != WeekProgressStatus.COMPLETED,
            )
        )
        if open_week is not None:
            return open_week

        last_week = await self.db.scalar(
            select(func.max(BuddyWeekProgress.week_number)).where(
                BuddyWeekProgress.buddy_curriculum_id == buddy_curriculum_id
            )
        )
        return last_week or 1
