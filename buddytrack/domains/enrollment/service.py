# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for instantiating curricula for buddies.

This module provides the EnrollmentService class for:
- Auto-enrollment by domain role
- Enrollment into an explicit curriculum
- Repair of partially populated enrollments
- Buddy progress and assignment listings

An enrollment is created in a single transaction: the BuddyCurriculum row,
one BuddyWeekProgress per week (in display order) and one TaskAssignment per
task template. Every assignment is unlocked immediately; buddies may work
ahead of the current week.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.domains.enrollment.population import EnrollmentTreeBuilder
from buddytrack.domains.errors import (
    AlreadyEnrolledError,
    BuddyNotFoundError,
    CurriculumNotFoundError,
    CurriculumNotPublishedError,
    EnrollmentNotFoundError,
    PersistenceError,
)
from buddytrack.domains.progress.aggregator import ProgressAggregator
from buddytrack.infrastructure.database.models import (
    Buddy,
    BuddyCurriculum,
    BuddyWeekProgress,
    Curriculum,
    CurriculumWeek,
    TaskAssignment,
    TaskTemplate,
)
from buddytrack.models.common import CurriculumStatus, DomainRole, EnrollmentStatus
from buddytrack.models.curriculum import CurriculumSummary
from buddytrack.models.enrollment import (
    NO_CURRICULUM_AVAILABLE,
    BuddyAssignmentItem,
    BuddyProgressResponse,
    EnrollmentResponse,
    EnrollmentResult,
    TaskAssignmentResponse,
    WeekProgressResponse,
)
from buddytrack.utils.datetime import utc_now, weeks_after

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Service for enrolling buddies into curricula.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
        """
        self.db = db
        self._builder = EnrollmentTreeBuilder(db)
        self._aggregator = ProgressAggregator(db)

    async def auto_enroll(
        self,
        buddy_id: str | UUID,
        domain_role: DomainRole,
    ) -> EnrollmentResult:
        """Enroll a buddy into the published curriculum for their domain.

        When several published curricula exist for one domain, the most
        recently published one is used.

        Args:
            buddy_id: Buddy identifier.
            domain_role: Domain the buddy works in.

        Returns:
            Enrollment result. If no published, active curriculum exists for
            the domain, ``enrolled`` is False and ``reason`` is
            ``"no_curriculum_available"``.

        Raises:
            BuddyNotFoundError: If buddy not found.
            AlreadyEnrolledError: If the buddy follows another curriculum.
            PersistenceError: If the store fails.
        """
        buddy = await self._get_buddy(buddy_id)

        result = await self.db.execute(
            select(Curriculum)
            .where(
                Curriculum.domain_role == DomainRole(domain_role),
                Curriculum.status == CurriculumStatus.PUBLISHED,
                Curriculum.is_active.is_(True),
            )
            .order_by(Curriculum.published_at.desc(), Curriculum.created_at.desc())
            .limit(1)
        )
        curriculum = result.scalar_one_or_none()

        if not curriculum:
            logger.info(
                "No curriculum available: buddy=%s, domain_role=%s",
                buddy.id,
                DomainRole(domain_role).value,
            )
            return EnrollmentResult(
                enrolled=False,
                reason=NO_CURRICULUM_AVAILABLE,
                message=f"No published curriculum for domain {DomainRole(domain_role).value}",
            )

        return await self._enroll(buddy, curriculum)

    async def enroll_by_curriculum_id(
        self,
        buddy_id: str | UUID,
        curriculum_id: str | UUID,
    ) -> EnrollmentResult:
        """Enroll a buddy into a specific curriculum.

        Args:
            buddy_id: Buddy identifier.
            curriculum_id: Curriculum identifier.

        Returns:
            Enrollment result.

        Raises:
            BuddyNotFoundError: If buddy not found.
            CurriculumNotFoundError: If curriculum not found.
            CurriculumNotPublishedError: If the curriculum is not enrollable.
            AlreadyEnrolledError: If the buddy follows another curriculum.
            PersistenceError: If the store fails.
        """
        buddy = await self._get_buddy(buddy_id)

        curriculum = await self.db.get(Curriculum, str(curriculum_id))
        if not curriculum:
            raise CurriculumNotFoundError(f"Curriculum {curriculum_id} not found")

        if not curriculum.is_enrollable:
            raise CurriculumNotPublishedError(
                f"Curriculum {curriculum.id} is not published (status={curriculum.status.value})"
            )

        return await self._enroll(buddy, curriculum)

    async def repair_enrollment(self, enrollment_id: str | UUID) -> EnrollmentResult:
        """Finish a partially populated enrollment and recount its progress.

        Args:
            enrollment_id: Enrollment identifier.

        Returns:
            Enrollment result with ``repaired`` set.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            PersistenceError: If the store fails.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        curriculum = await self.db.get(Curriculum, enrollment.curriculum_id)
        enrollment_id = enrollment.id

        try:
            population = await self._builder.populate(enrollment)
            await self._aggregator.recalculate_enrollment(enrollment_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Enrollment repair failed: enrollment=%s, error=%s", enrollment_id, str(e))
            raise PersistenceError(f"Failed to repair enrollment {enrollment_id}", e) from e

        logger.info(
            "Repaired enrollment: enrollment=%s, weeks_created=%d, assignments_created=%d",
            enrollment.id,
            population.weeks_created,
            population.assignments_created,
        )
        return await self._build_result(
            enrollment,
            curriculum,
            message="Enrollment repaired",
            repaired=True,
        )

    async def get_buddy_curriculum_progress(self, buddy_id: str | UUID) -> BuddyProgressResponse:
        """Get a buddy's current enrollment with its week-progress rows.

        Args:
            buddy_id: Buddy identifier.

        Returns:
            Enrollment, curriculum summary, weeks ordered by week number and
            totals across the enrollment.

        Raises:
            EnrollmentNotFoundError: If the buddy has no enrollment.
        """
        enrollment = await self._get_current_enrollment(str(buddy_id))
        if not enrollment:
            raise EnrollmentNotFoundError(f"Buddy {buddy_id} has no curriculum enrollment")

        curriculum = await self.db.get(Curriculum, enrollment.curriculum_id)

        weeks_result = await self.db.execute(
            select(BuddyWeekProgress)
            .where(BuddyWeekProgress.buddy_curriculum_id == enrollment.id)
            .order_by(BuddyWeekProgress.week_number)
        )
        weeks = list(weeks_result.scalars().all())

        return BuddyProgressResponse(
            enrollment=EnrollmentResponse.model_validate(enrollment),
            curriculum=CurriculumSummary.model_validate(curriculum) if curriculum else None,
            weeks=[WeekProgressResponse.model_validate(w) for w in weeks],
            total_tasks=sum(w.total_tasks for w in weeks),
            completed_tasks=sum(w.completed_tasks for w in weeks),
            overall_progress=enrollment.overall_progress,
        )

    async def list_buddy_assignments(self, buddy_id: str | UUID) -> list[BuddyAssignmentItem]:
        """List a buddy's assignments with task and week context.

        Args:
            buddy_id: Buddy identifier.

        Returns:
            Assignments ordered by week display order, then task display order.
        """
        query = (
            select(TaskAssignment, TaskTemplate, BuddyWeekProgress, CurriculumWeek)
            .join(
                BuddyWeekProgress,
                TaskAssignment.buddy_week_progress_id == BuddyWeekProgress.id,
            )
            .outerjoin(TaskTemplate, TaskAssignment.task_template_id == TaskTemplate.id)
            .outerjoin(
                CurriculumWeek,
                BuddyWeekProgress.curriculum_week_id == CurriculumWeek.id,
            )
            .where(TaskAssignment.buddy_id == str(buddy_id))
            .order_by(
                func.coalesce(CurriculumWeek.display_order, BuddyWeekProgress.week_number),
                BuddyWeekProgress.week_number,
                func.coalesce(TaskTemplate.display_order, 0),
                TaskAssignment.assigned_at,
            )
        )
        result = await self.db.execute(query)

        return [
            BuddyAssignmentItem(
                assignment=TaskAssignmentResponse.model_validate(assignment),
                task_title=template.title if template else None,
                week_number=progress.week_number,
                week_title=week.title if week else None,
            )
            for assignment, template, progress, week in result.all()
        ]

    async def _enroll(self, buddy: Buddy, curriculum: Curriculum) -> EnrollmentResult:
        """Create (or repair) the enrollment tree in one transaction."""
        existing = await self._get_current_enrollment(buddy.id)
        if existing and existing.curriculum_id != curriculum.id:
            if existing.status == EnrollmentStatus.ACTIVE:
                raise AlreadyEnrolledError(
                    f"Buddy {buddy.id} is already enrolled in curriculum {existing.curriculum_id}"
                )
            existing = None

        if existing is None:
            result = await self.db.execute(
                select(BuddyCurriculum).where(
                    BuddyCurriculum.buddy_id == buddy.id,
                    BuddyCurriculum.curriculum_id == curriculum.id,
                )
            )
            existing = result.scalar_one_or_none()

        if existing:
            logger.info(
                "Buddy already enrolled, repairing: buddy=%s, curriculum=%s",
                buddy.id,
                curriculum.id,
            )
            return await self.repair_enrollment(existing.id)

        buddy_id, curriculum_id = buddy.id, curriculum.id
        enrolled_at = utc_now()
        enrollment = BuddyCurriculum(
            buddy_id=buddy.id,
            curriculum_id=curriculum.id,
            enrolled_at=enrolled_at,
            target_completion_date=weeks_after(enrolled_at, curriculum.total_weeks),
            current_week=1,
            overall_progress=0,
            status=EnrollmentStatus.ACTIVE,
        )

        try:
            self.db.add(enrollment)
            await self.db.flush()

            population = await self._builder.populate(enrollment)
            await self._aggregator.recalculate_enrollment(enrollment.id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "Enrollment failed: buddy=%s, curriculum=%s, error=%s",
                buddy_id,
                curriculum_id,
                str(e),
            )
            raise PersistenceError(f"Failed to enroll buddy {buddy_id}", e) from e

        logger.info(
            "Enrolled buddy: buddy=%s, curriculum=%s, weeks=%d, tasks=%d",
            buddy.id,
            curriculum.id,
            population.weeks_created,
            population.assignments_created,
        )
        return await self._build_result(
            enrollment,
            curriculum,
            message=f"Enrolled in {curriculum.name}",
        )

    async def _build_result(
        self,
        enrollment: BuddyCurriculum,
        curriculum: Curriculum | None,
        message: str,
        repaired: bool = False,
    ) -> EnrollmentResult:
        total_weeks = await self.db.scalar(
            select(func.count(BuddyWeekProgress.id)).where(
                BuddyWeekProgress.buddy_curriculum_id == enrollment.id
            )
        )
        total_tasks = await self.db.scalar(
            select(func.count(TaskAssignment.id)).where(
                TaskAssignment.buddy_curriculum_id == enrollment.id
            )
        )
        return EnrollmentResult(
            enrolled=True,
            message=message,
            enrollment_id=enrollment.id,
            curriculum=CurriculumSummary.model_validate(curriculum) if curriculum else None,
            total_weeks=total_weeks or 0,
            total_tasks=total_tasks or 0,
            repaired=repaired,
        )

    async def _get_buddy(self, buddy_id: str | UUID) -> Buddy:
        buddy = await self.db.get(Buddy, str(buddy_id))
        if not buddy:
            raise BuddyNotFoundError(f"Buddy {buddy_id} not found")
        return buddy

    async def _get_enrollment(self, enrollment_id: str | UUID) -> BuddyCurriculum:
        enrollment = await self.db.get(BuddyCurriculum, str(enrollment_id))
        if not enrollment:
            raise EnrollmentNotFoundError(f"Enrollment {enrollment_id} not found")
        return enrollment

    async def _get_current_enrollment(self, buddy_id: str) -> BuddyCurriculum | None:
        """Active enrollment if any, else the most recent one."""
        result = await self.db.execute(
            select(BuddyCurriculum)
            .where(BuddyCurriculum.buddy_id == buddy_id)
            .order_by(
                (BuddyCurriculum.status == EnrollmentStatus.ACTIVE).desc(),
                BuddyCurriculum.enrolled_at.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
