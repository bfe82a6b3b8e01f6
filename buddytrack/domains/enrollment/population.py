# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Check-before-insert population of an enrollment's tracking rows.

Both the enrollment service (new enrollments, repairs) and the template
sync service (weeks and tasks added after enrollment) build week-progress
rows and task assignments through EnrollmentTreeBuilder, so the two paths
cannot drift apart. Every insert is preceded by an existence check on the
same key the unique constraints guard:
- BuddyWeekProgress: (buddy_curriculum_id, curriculum_week_id)
- TaskAssignment: (buddy_id, task_template_id)
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.infrastructure.database.models import (
    BuddyCurriculum,
    BuddyWeekProgress,
    CurriculumWeek,
    TaskAssignment,
    TaskTemplate,
)
from buddytrack.models.common import TaskAssignmentStatus, WeekProgressStatus
from buddytrack.utils.datetime import utc_now, weeks_after

logger = logging.getLogger(__name__)


@dataclass
class PopulationResult:
    """Rows created by one population pass.

    Attributes:
        weeks_created: Week-progress rows inserted.
        assignments_created: Task assignments inserted.
        week_progress_ids: Week-progress rows touched (created or existing).
    """

    weeks_created: int = 0
    assignments_created: int = 0
    week_progress_ids: list[str] | None = None

    @property
    def changed(self) -> bool:
        """Whether anything was inserted."""
        return bool(self.weeks_created or self.assignments_created)

    def merge(self, other: "PopulationResult") -> None:
        """Accumulate another pass into this one."""
        self.weeks_created += other.weeks_created
        self.assignments_created += other.assignments_created
        self.week_progress_ids = (self.week_progress_ids or []) + (
            other.week_progress_ids or []
        )


class EnrollmentTreeBuilder:
    """Creates missing week-progress rows and task assignments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_weeks(self, curriculum_id: str) -> list[CurriculumWeek]:
        """Weeks of a curriculum in display order."""
        result = await self.db.execute(
            select(CurriculumWeek)
            .where(CurriculumWeek.curriculum_id == curriculum_id)
            .order_by(CurriculumWeek.display_order, CurriculumWeek.week_number)
        )
        return list(result.scalars().all())

    async def list_templates(self, week_id: str) -> list[TaskTemplate]:
        """Active task templates of a week in display order."""
        result = await self.db.execute(
            select(TaskTemplate)
            .where(
                TaskTemplate.curriculum_week_id == week_id,
                TaskTemplate.is_active.is_(True),
            )
            .order_by(TaskTemplate.display_order, TaskTemplate.created_at)
        )
        return list(result.scalars().all())

    async def ensure_week_progress(
        self,
        enrollment: BuddyCurriculum,
        week: CurriculumWeek,
        total_tasks: int = 0,
    ) -> tuple[BuddyWeekProgress, bool]:
        """Get or create the week-progress row for an enrollment and week.

        Args:
            enrollment: Enrollment the row belongs to.
            week: Curriculum week the row tracks.
            total_tasks: Initial task total for a new row.

        Returns:
            Tuple of (row, created).
        """
        result = await self.db.execute(
            select(BuddyWeekProgress).where(
                BuddyWeekProgress.buddy_curriculum_id == enrollment.id,
                BuddyWeekProgress.curriculum_week_id == week.id,
            )
        )
        existing = result.scalar_one_or_none()
        if existing:
            return existing, False

        progress = BuddyWeekProgress(
            buddy_curriculum_id=enrollment.id,
            curriculum_week_id=week.id,
            week_number=week.week_number,
            total_tasks=total_tasks,
            completed_tasks=0,
            progress_percentage=0,
            status=WeekProgressStatus.NOT_STARTED,
        )
        self.db.add(progress)
        await self.db.flush()
        return progress, True

    async def ensure_assignment(
        self,
        enrollment: BuddyCurriculum,
        progress: BuddyWeekProgress,
        week: CurriculumWeek,
        template: TaskTemplate,
    ) -> bool:
        """Create the buddy's assignment for a template unless it exists.

        Args:
            enrollment: Enrollment the assignment belongs to.
            progress: Week-progress row the assignment counts towards.
            week: Curriculum week (its number drives the due date).
            template: Task template being assigned.

        Returns:
            True if an assignment was inserted.
        """
        existing = await self.db.scalar(
            select(TaskAssignment.id).where(
                TaskAssignment.buddy_id == enrollment.buddy_id,
                TaskAssignment.task_template_id == template.id,
            )
        )
        if existing:
            return False

        self.db.add(
            TaskAssignment(
                buddy_id=enrollment.buddy_id,
                task_template_id=template.id,
                buddy_curriculum_id=enrollment.id,
                buddy_week_progress_id=progress.id,
                assigned_at=utc_now(),
                due_date=weeks_after(enrollment.enrolled_at, week.week_number),
                status=TaskAssignmentStatus.NOT_STARTED,
                submission_count=0,
            )
        )
        return True

    async def populate_week(
        self,
        enrollment: BuddyCurriculum,
        week: CurriculumWeek,
    ) -> PopulationResult:
        """Ensure one week's progress row and all its assignments exist.

        Args:
            enrollment: Enrollment to populate.
            week: Curriculum week to mirror.

        Returns:
            What was inserted.
        """
        templates = await self.list_templates(week.id)
        progress, week_created = await self.ensure_week_progress(
            enrollment, week, total_tasks=len(templates)
        )

        assignments_created = 0
        for template in templates:
            if await self.ensure_assignment(enrollment, progress, week, template):
                assignments_created += 1

        await self.db.flush()
        return PopulationResult(
            weeks_created=int(week_created),
            assignments_created=assignments_created,
            week_progress_ids=[progress.id],
        )

    async def populate(self, enrollment: BuddyCurriculum) -> PopulationResult:
        """Ensure every week and task of the enrollment's curriculum is mirrored.

        Args:
            enrollment: Enrollment to populate.

        Returns:
            What was inserted across all weeks.
        """
        total = PopulationResult(week_progress_ids=[])
        for week in await self.list_weeks(enrollment.curriculum_id):
            total.merge(await self.populate_week(enrollment, week))

        logger.debug(
            "Populated enrollment %s: weeks_created=%d, assignments_created=%d",
            enrollment.id,
            total.weeks_created,
            total.assignments_created,
        )
        return total
