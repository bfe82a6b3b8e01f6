# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Template sync service.

This module propagates curriculum template edits made after buddies have
enrolled into every active enrollment of the curriculum.

The sync process for each event:
1. Find the active enrollments affected by the template row
2. For each enrollment, inside its own SAVEPOINT, create missing rows
   (check-before-insert) or update/delete rows that carry no learner progress
3. Recount the affected week-progress rows and the enrollment

A failure for one enrollment rolls back that enrollment's savepoint only; it
is logged and counted in the result instead of failing the batch. Every
operation can be re-run safely.

Learner history always wins over template shape:
- Assignments with any progress survive task deletion, orphaned from
  their template
- Due dates move with a renumbered week only while the task is not started

Example:
    >>> sync = TemplateSyncService(db)
    >>> result = await sync.on_task_added(week.id, task.id)
    >>> result.synced_count
    3
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.domains.enrollment.population import EnrollmentTreeBuilder
from buddytrack.domains.errors import (
    CurriculumNotFoundError,
    PersistenceError,
    TaskTemplateNotFoundError,
    WeekNotFoundError,
)
from buddytrack.domains.progress.aggregator import ProgressAggregator
from buddytrack.infrastructure.database.models import (
    BuddyCurriculum,
    BuddyWeekProgress,
    Curriculum,
    CurriculumWeek,
    TaskAssignment,
    TaskTemplate,
)
from buddytrack.models.common import (
    EnrollmentStatus,
    TaskAssignmentStatus,
    WeekProgressStatus,
)
from buddytrack.utils.datetime import weeks_after

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Result of propagating a template change.

    Attributes:
        synced_count: Enrollments that received new or updated rows.
        skipped_count: Enrollments that already matched the template.
        failed_count: Enrollments whose propagation failed.
        errors: One message per failed enrollment.
    """

    synced_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every enrollment was propagated."""
        return self.failed_count == 0


@dataclass
class DeletionResult:
    """Result of propagating a task (or week) deletion.

    Attributes:
        deleted_count: Not-started assignments removed.
        preserved_count: Assignments kept because they carry progress.
        failed_count: Enrollments whose propagation failed.
        errors: One message per failed enrollment.
    """

    deleted_count: int = 0
    preserved_count: int = 0
    failed_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every enrollment was propagated."""
        return self.failed_count == 0


@dataclass
class WeekDeletionResult(DeletionResult):
    """Result of propagating a week deletion.

    Attributes:
        week_progress_deleted_count: Untouched week-progress rows removed.
        week_progress_preserved_count: Week-progress rows kept for history.
    """

    week_progress_deleted_count: int = 0
    week_progress_preserved_count: int = 0


@dataclass
class UpdateResult:
    """Result of propagating a content edit.

    Attributes:
        affected_count: Rows referencing the edited template.
        updated_count: Rows actually changed.
        failed_count: Enrollments whose propagation failed.
        errors: One message per failed enrollment.
    """

    affected_count: int = 0
    updated_count: int = 0
    failed_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Whether every enrollment was propagated."""
        return self.failed_count == 0


class TemplateSyncService:
    """Propagates template edits into active enrollments.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the sync service.

        Args:
            db: Async database session.
        """
        self.db = db
        self._builder = EnrollmentTreeBuilder(db)
        self._aggregator = ProgressAggregator(db)

    async def on_week_added(
        self,
        curriculum_id: str | UUID,
        week_id: str | UUID,
    ) -> SyncResult:
        """Mirror a new week (and its existing tasks) into active enrollments.

        Args:
            curriculum_id: Curriculum the week was added to.
            week_id: The new week.

        Returns:
            Sync summary.

        Raises:
            WeekNotFoundError: If the week does not exist in the curriculum.
        """
        week = await self._get_week(week_id)
        if week.curriculum_id != str(curriculum_id):
            raise WeekNotFoundError(f"Week {week_id} not found in curriculum {curriculum_id}")

        result = SyncResult()
        for enrollment in await self._active_enrollments(week.curriculum_id):

            async def propagate(enrollment: BuddyCurriculum = enrollment) -> bool:
                population = await self._builder.populate_week(enrollment, week)
                if not population.changed:
                    return False
                for progress_id in population.week_progress_ids or []:
                    await self._aggregator.recalculate_week_progress(progress_id)
                await self._aggregator.update_curriculum_progress(enrollment.id)
                return True

            await self._sync_enrollment(enrollment.id, propagate, result)

        await self._commit("week added")
        logger.info(
            "Synced new week: week=%s, synced=%d, skipped=%d, failed=%d",
            week.id,
            result.synced_count,
            result.skipped_count,
            result.failed_count,
        )
        return result

    async def on_task_added(
        self,
        week_id: str | UUID,
        task_template_id: str | UUID,
    ) -> SyncResult:
        """Assign a new task template to every active enrollment.

        The week-progress row is created first when it is missing, and its
        total is recounted rather than incremented.

        Args:
            week_id: Week the task was added to.
            task_template_id: The new task template.

        Returns:
            Sync summary.

        Raises:
            TaskTemplateNotFoundError: If the template does not exist in the week.
            WeekNotFoundError: If the week does not exist.
        """
        template = await self._get_template(task_template_id)
        week = await self._get_week(week_id)
        if template.curriculum_week_id != week.id:
            raise TaskTemplateNotFoundError(
                f"Task template {task_template_id} not found in week {week_id}"
            )

        result = SyncResult()
        if not template.is_active:
            return result

        for enrollment in await self._active_enrollments(week.curriculum_id):

            async def propagate(enrollment: BuddyCurriculum = enrollment) -> bool:
                progress, week_created = await self._builder.ensure_week_progress(enrollment, week)
                created = await self._builder.ensure_assignment(enrollment, progress, week, template)
                if not (created or week_created):
                    return False
                await self.db.flush()
                await self._aggregator.recalculate_week_progress(progress.id)
                await self._aggregator.update_curriculum_progress(enrollment.id)
                return True

            await self._sync_enrollment(enrollment.id, propagate, result)

        await self._commit("task added")
        logger.info(
            "Synced new task: task=%s, synced=%d, skipped=%d, failed=%d",
            template.id,
            result.synced_count,
            result.skipped_count,
            result.failed_count,
        )
        return result

    async def on_task_deleted(self, task_template_id: str | UUID) -> DeletionResult:
        """Remove not-started assignments of a task template being deleted.

        Assignments with any progress are preserved. Call this before the
        template row is deleted; the row's deletion then orphans the
        preserved assignments.

        Args:
            task_template_id: Template being deleted.

        Returns:
            Deleted and preserved counts.
        """
        result = DeletionResult()
        await self._delete_template_assignments(str(task_template_id), result)

        await self._commit("task deleted")
        logger.info(
            "Synced deleted task: task=%s, deleted=%d, preserved=%d, failed=%d",
            task_template_id,
            result.deleted_count,
            result.preserved_count,
            result.failed_count,
        )
        return result

    async def on_week_deleted(self, week_id: str | UUID) -> WeekDeletionResult:
        """Propagate a week deletion.

        Runs task deletion for every template in the week, then removes
        week-progress rows that are not started, have nothing completed and
        no remaining (preserved) assignments.

        Args:
            week_id: Week being deleted.

        Returns:
            Task and week-progress deletion counts.
        """
        week_id = str(week_id)
        result = WeekDeletionResult()

        template_ids = await self.db.scalars(
            select(TaskTemplate.id).where(TaskTemplate.curriculum_week_id == week_id)
        )
        for template_id in list(template_ids):
            await self._delete_template_assignments(template_id, result)

        progress_result = await self.db.execute(
            select(BuddyWeekProgress).where(BuddyWeekProgress.curriculum_week_id == week_id)
        )
        for progress in progress_result.scalars().all():
            remaining = await self.db.scalar(
                select(func.count(TaskAssignment.id)).where(
                    TaskAssignment.buddy_week_progress_id == progress.id
                )
            )
            removable = (
                progress.status == WeekProgressStatus.NOT_STARTED
                and progress.completed_tasks == 0
                and not remaining
            )

            enrollment_id = progress.buddy_curriculum_id

            async def propagate(
                progress: BuddyWeekProgress = progress,
                removable: bool = removable,
                enrollment_id: str = enrollment_id,
            ) -> bool:
                if removable:
                    await self.db.delete(progress)
                    await self.db.flush()
                await self._aggregator.update_curriculum_progress(enrollment_id)
                return removable

            if await self._sync_enrollment(enrollment_id, propagate, result):
                if removable:
                    result.week_progress_deleted_count += 1
                else:
                    result.week_progress_preserved_count += 1

        await self._commit("week deleted")
        logger.info(
            "Synced deleted week: week=%s, tasks_deleted=%d, tasks_preserved=%d, "
            "weeks_deleted=%d, weeks_preserved=%d, failed=%d",
            week_id,
            result.deleted_count,
            result.preserved_count,
            result.week_progress_deleted_count,
            result.week_progress_preserved_count,
            result.failed_count,
        )
        return result

    async def on_task_template_updated(
        self,
        task_template_id: str | UUID,
        changes: dict[str, Any],
    ) -> UpdateResult:
        """Report assignments affected by a task content edit.

        Assignments reference their template by id, so content edits are
        visible immediately and no assignment row changes.

        Args:
            task_template_id: Edited template.
            changes: Fields that were changed.

        Returns:
            Count of affected assignments; ``updated_count`` is always 0.
        """
        affected = await self.db.scalar(
            select(func.count(TaskAssignment.id)).where(
                TaskAssignment.task_template_id == str(task_template_id)
            )
        )
        logger.info(
            "Task template updated: task=%s, fields=%s, affected_assignments=%d",
            task_template_id,
            sorted(changes),
            affected or 0,
        )
        return UpdateResult(affected_count=affected or 0)

    async def on_week_updated(
        self,
        week_id: str | UUID,
        changes: dict[str, Any],
    ) -> UpdateResult:
        """Propagate a week renumbering.

        When ``week_number`` changes, the stored number on every active
        enrollment's progress row is updated and not-started assignments
        get a due date recomputed from the enrollment date. Started work
        keeps its due date.

        Args:
            week_id: Edited week.
            changes: Fields that were changed.

        Returns:
            ``affected_count`` progress rows, ``updated_count`` assignments
            whose due date moved.
        """
        result = UpdateResult()
        new_number = changes.get("week_number")
        if new_number is None:
            return result

        rows = await self.db.execute(
            select(BuddyWeekProgress, BuddyCurriculum)
            .join(BuddyCurriculum, BuddyWeekProgress.buddy_curriculum_id == BuddyCurriculum.id)
            .where(
                BuddyWeekProgress.curriculum_week_id == str(week_id),
                BuddyCurriculum.status == EnrollmentStatus.ACTIVE,
            )
        )
        for progress, enrollment in rows.all():
            if progress.week_number == new_number:
                continue
            moved: list[str] = []

            async def propagate(
                progress: BuddyWeekProgress = progress,
                enrollment: BuddyCurriculum = enrollment,
                moved: list[str] = moved,
            ) -> bool:
                progress.week_number = new_number
                due_date = weeks_after(enrollment.enrolled_at, new_number)
                assignments = await self.db.scalars(
                    select(TaskAssignment).where(
                        TaskAssignment.buddy_week_progress_id == progress.id,
                        TaskAssignment.status == TaskAssignmentStatus.NOT_STARTED,
                    )
                )
                for assignment in assignments:
                    assignment.due_date = due_date
                    moved.append(assignment.id)
                await self.db.flush()
                await self._aggregator.update_curriculum_progress(enrollment.id)
                return True

            if await self._sync_enrollment(enrollment.id, propagate, result):
                result.affected_count += 1
                result.updated_count += len(moved)

        await self._commit("week updated")
        logger.info(
            "Synced week update: week=%s, week_number=%s, progress_rows=%d, due_dates=%d",
            week_id,
            new_number,
            result.affected_count,
            result.updated_count,
        )
        return result

    async def on_curriculum_updated(
        self,
        curriculum_id: str | UUID,
        changes: dict[str, Any],
    ) -> UpdateResult:
        """Propagate a change of curriculum length.

        When ``total_weeks`` changes, every active enrollment's target
        completion date is recomputed from its enrollment date.

        Args:
            curriculum_id: Edited curriculum.
            changes: Fields that were changed.

        Returns:
            ``updated_count`` enrollments whose target date changed.

        Raises:
            CurriculumNotFoundError: If curriculum not found.
        """
        curriculum = await self.db.get(Curriculum, str(curriculum_id))
        if not curriculum:
            raise CurriculumNotFoundError(f"Curriculum {curriculum_id} not found")

        result = UpdateResult()
        total_weeks = changes.get("total_weeks")
        if total_weeks is None:
            return result

        for enrollment in await self._active_enrollments(curriculum.id):
            result.affected_count += 1
            target = weeks_after(enrollment.enrolled_at, total_weeks)
            if enrollment.target_completion_date != target:
                enrollment.target_completion_date = target
                result.updated_count += 1

        await self._commit("curriculum updated")
        logger.info(
            "Synced curriculum update: curriculum=%s, total_weeks=%d, enrollments=%d",
            curriculum.id,
            total_weeks,
            result.updated_count,
        )
        return result

    async def _delete_template_assignments(
        self,
        task_template_id: str,
        result: DeletionResult,
    ) -> None:
        assignments = await self.db.scalars(
            select(TaskAssignment).where(TaskAssignment.task_template_id == task_template_id)
        )
        by_enrollment: dict[str, list[TaskAssignment]] = defaultdict(list)
        for assignment in assignments:
            by_enrollment[assignment.buddy_curriculum_id].append(assignment)

        for enrollment_id, group in by_enrollment.items():
            deleted_ids = [a.id for a in group if a.status == TaskAssignmentStatus.NOT_STARTED]
            preserved = len(group) - len(deleted_ids)
            progress_ids = {a.buddy_week_progress_id for a in group}

            async def propagate(
                deleted_ids: list[str] = deleted_ids,
                progress_ids: set[str] = progress_ids,
                enrollment_id: str = enrollment_id,
            ) -> bool:
                if deleted_ids:
                    await self.db.execute(
                        delete(TaskAssignment).where(TaskAssignment.id.in_(deleted_ids))
                    )
                for progress_id in progress_ids:
                    await self._aggregator.recalculate_week_progress(progress_id)
                await self._aggregator.update_curriculum_progress(enrollment_id)
                return True

            if await self._sync_enrollment(enrollment_id, propagate, result):
                result.deleted_count += len(deleted_ids)
                result.preserved_count += preserved

    async def _sync_enrollment(
        self,
        enrollment_id: str,
        propagate: Callable[[], Awaitable[bool]],
        result: SyncResult | DeletionResult | UpdateResult,
    ) -> bool:
        """Run one enrollment's propagation inside a savepoint.

        A rolled-back savepoint expires the rows it touched, so failures are
        reported by the id captured before it opened.

        Returns:
            True if the savepoint committed.
        """
        try:
            async with self.db.begin_nested():
                changed = await propagate()
        except SQLAlchemyError as e:
            logger.error("Sync failed for enrollment %s: %s", enrollment_id, str(e))
            result.failed_count += 1
            result.errors.append(f"enrollment {enrollment_id}: {e}")
            return False

        if isinstance(result, SyncResult):
            if changed:
                result.synced_count += 1
            else:
                result.skipped_count += 1
        return True

    async def _commit(self, event: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Sync commit failed (%s): %s", event, str(e))
            raise PersistenceError(f"Failed to commit sync for {event}", e) from e

    async def _active_enrollments(self, curriculum_id: str) -> list[BuddyCurriculum]:
        result = await self.db.execute(
            select(BuddyCurriculum)
            .where(
                BuddyCurriculum.curriculum_id == curriculum_id,
                BuddyCurriculum.status == EnrollmentStatus.ACTIVE,
            )
            .order_by(BuddyCurriculum.enrolled_at)
        )
        return list(result.scalars().all())

    async def _get_week(self, week_id: str | UUID) -> CurriculumWeek:
        week = await self.db.get(CurriculumWeek, str(week_id))
        if not week:
            raise WeekNotFoundError(f"Week {week_id} not found")
        return week

    async def _get_template(self, task_template_id: str | UUID) -> TaskTemplate:
        template = await self.db.get(TaskTemplate, str(task_template_id))
        if not template:
            raise TaskTemplateNotFoundError(f"Task template {task_template_id} not found")
        return template
