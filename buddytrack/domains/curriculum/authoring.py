# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum authoring service.

This module provides CRUD for curriculum templates (curricula, weeks and
task templates) for managers and mentors. Every mutation that changes the
shape of a curriculum is committed first and then handed to the
TemplateSyncService, so active enrollments converge on the new template.

Deletions run the sync before the template row is removed: the sync needs
the template's assignments to decide what to delete and what to preserve.
"""

import logging
import re
from dataclasses import dataclass
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.domains.curriculum.sync_service import (
    DeletionResult,
    SyncResult,
    TemplateSyncService,
    UpdateResult,
    WeekDeletionResult,
)
from buddytrack.domains.errors import (
    CurriculumNotFoundError,
    ForbiddenError,
    PersistenceError,
    TaskTemplateNotFoundError,
    ValidationError,
    WeekNotFoundError,
)
from buddytrack.infrastructure.database.models import (
    BuddyCurriculum,
    Curriculum,
    CurriculumWeek,
    TaskTemplate,
)
from buddytrack.models.common import CurriculumStatus, DomainRole, Principal
from buddytrack.models.curriculum import (
    CurriculumCreate,
    CurriculumResponse,
    CurriculumUpdate,
    TaskTemplateCreate,
    TaskTemplateResponse,
    TaskTemplateUpdate,
    WeekCreate,
    WeekResponse,
    WeekUpdate,
)
from buddytrack.utils.datetime import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


def generate_slug(name: str) -> str:
    """Build a URL slug from a curriculum name.

    Example:
        >>> generate_slug("Frontend Basics: HTML & CSS")
        'frontend-basics-html-css'
    """
    slug = name.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-") or "curriculum"


@dataclass
class AuthoringResult(Generic[T]):
    """Authored row together with the sync summary it triggered.

    Attributes:
        item: The created or updated row, None after a deletion.
        sync: Propagation summary, None when nothing was propagated.
        archived: True when a delete request archived the row instead.
    """

    item: T | None
    sync: SyncResult | DeletionResult | UpdateResult | None = None
    archived: bool = False


class CurriculumAuthoringService:
    """Service for authoring curriculum templates.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize authoring service.

        Args:
            db: Async database session.
        """
        self.db = db
        self.sync = TemplateSyncService(db)

    # Curricula

    async def list_curricula(
        self,
        domain_role: DomainRole | None = None,
        status: CurriculumStatus | None = None,
    ) -> list[CurriculumResponse]:
        """List curricula, newest first.

        Args:
            domain_role: Optional domain filter.
            status: Optional status filter.

        Returns:
            Matching curricula.
        """
        query = select(Curriculum).order_by(Curriculum.created_at.desc())
        if domain_role:
            query = query.where(Curriculum.domain_role == domain_role)
        if status:
            query = query.where(Curriculum.status == status)

        result = await self.db.execute(query)
        return [CurriculumResponse.model_validate(c) for c in result.scalars().all()]

    async def get_curriculum(self, curriculum_id: str | UUID) -> CurriculumResponse:
        """Get a curriculum by id.

        Raises:
            CurriculumNotFoundError: If curriculum not found.
        """
        return CurriculumResponse.model_validate(await self._get_curriculum(curriculum_id))

    async def create_curriculum(
        self,
        actor: Principal,
        data: CurriculumCreate,
    ) -> CurriculumResponse:
        """Create a draft curriculum.

        Args:
            actor: Authenticated manager or mentor.
            data: Curriculum data.

        Returns:
            The new curriculum.

        Raises:
            ForbiddenError: If actor is a buddy.
        """
        self._require_author(actor)

        curriculum = Curriculum(
            name=data.name,
            slug=await self._unique_slug(data.name),
            description=data.description,
            domain_role=data.domain_role,
            total_weeks=data.total_weeks,
            status=CurriculumStatus.DRAFT,
            version=data.version,
            tags=data.tags,
            is_active=True,
            created_by=actor.user_id,
            last_modified_by=actor.user_id,
        )
        self.db.add(curriculum)
        await self._commit("create curriculum")
        await self.db.refresh(curriculum)

        logger.info("Created curriculum: id=%s, slug=%s, by=%s", curriculum.id, curriculum.slug, actor.user_id)
        return CurriculumResponse.model_validate(curriculum)

    async def update_curriculum(
        self,
        actor: Principal,
        curriculum_id: str | UUID,
        data: CurriculumUpdate,
    ) -> AuthoringResult[CurriculumResponse]:
        """Update a curriculum and propagate a length change.

        Raises:
            ForbiddenError: If actor is a buddy.
            CurriculumNotFoundError: If curriculum not found.
        """
        self._require_author(actor)
        curriculum = await self._get_curriculum(curriculum_id)

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(curriculum, key, value)
        curriculum.last_modified_by = actor.user_id

        await self._commit("update curriculum")
        await self.db.refresh(curriculum)

        sync = await self.sync.on_curriculum_updated(curriculum.id, changes)
        logger.info("Updated curriculum: id=%s, fields=%s", curriculum.id, sorted(changes))
        return AuthoringResult(item=CurriculumResponse.model_validate(curriculum), sync=sync)

    async def publish_curriculum(
        self,
        actor: Principal,
        curriculum_id: str | UUID,
    ) -> CurriculumResponse:
        """Publish a curriculum, making it enrollable.

        Raises:
            ForbiddenError: If actor is a buddy.
            CurriculumNotFoundError: If curriculum not found.
        """
        self._require_author(actor)
        curriculum = await self._get_curriculum(curriculum_id)

        curriculum.status = CurriculumStatus.PUBLISHED
        curriculum.published_at = utc_now()
        curriculum.is_active = True
        curriculum.last_modified_by = actor.user_id

        await self._commit("publish curriculum")
        await self.db.refresh(curriculum)

        logger.info("Published curriculum: id=%s, by=%s", curriculum.id, actor.user_id)
        return CurriculumResponse.model_validate(curriculum)

    async def archive_curriculum(
        self,
        actor: Principal,
        curriculum_id: str | UUID,
    ) -> CurriculumResponse:
        """Archive a curriculum; existing enrollments are untouched.

        Raises:
            ForbiddenError: If actor is a buddy.
            CurriculumNotFoundError: If curriculum not found.
        """
        self._require_author(actor)
        curriculum = await self._get_curriculum(curriculum_id)

        curriculum.status = CurriculumStatus.ARCHIVED
        curriculum.last_modified_by = actor.user_id

        await self._commit("archive curriculum")
        await self.db.refresh(curriculum)

        logger.info("Archived curriculum: id=%s, by=%s", curriculum.id, actor.user_id)
        return CurriculumResponse.model_validate(curriculum)

    async def delete_curriculum(
        self,
        actor: Principal,
        curriculum_id: str | UUID,
    ) -> AuthoringResult[CurriculumResponse]:
        """Delete a curriculum, or archive it if buddies are enrolled.

        Returns:
            ``archived`` True (with the archived row) when enrollments exist.

        Raises:
            ForbiddenError: If actor is a buddy.
            CurriculumNotFoundError: If curriculum not found.
        """
        self._require_author(actor)
        curriculum = await self._get_curriculum(curriculum_id)

        enrollments = await self.db.scalar(
            select(func.count(BuddyCurriculum.id)).where(
                BuddyCurriculum.curriculum_id == curriculum.id
            )
        )
        if enrollments:
            archived = await self.archive_curriculum(actor, curriculum.id)
            return AuthoringResult(item=archived, archived=True)

        await self.db.delete(curriculum)
        await self._commit("delete curriculum")

        logger.info("Deleted curriculum: id=%s, by=%s", curriculum_id, actor.user_id)
        return AuthoringResult(item=None)

    # Weeks

    async def list_weeks(self, curriculum_id: str | UUID) -> list[WeekResponse]:
        """List a curriculum's weeks in display order.

        Raises:
            CurriculumNotFoundError: If curriculum not found.
        """
        curriculum = await self._get_curriculum(curriculum_id)
        result = await self.db.execute(
            select(CurriculumWeek)
            .where(CurriculumWeek.curriculum_id == curriculum.id)
            .order_by(CurriculumWeek.display_order, CurriculumWeek.week_number)
        )
        return [WeekResponse.model_validate(w) for w in result.scalars().all()]

    async def add_week(
        self,
        actor: Principal,
        curriculum_id: str | UUID,
        data: WeekCreate,
    ) -> AuthoringResult[WeekResponse]:
        """Add a week and mirror it into active enrollments.

        Raises:
            ForbiddenError: If actor is a buddy.
            CurriculumNotFoundError: If curriculum not found.
            ValidationError: If the week number is already taken.
        """
        self._require_author(actor)
        curriculum = await self._get_curriculum(curriculum_id)
        await self._check_week_number_free(curriculum.id, data.week_number)

        week = CurriculumWeek(
            curriculum_id=curriculum.id,
            week_number=data.week_number,
            title=data.title,
            description=data.description,
            learning_objectives=data.learning_objectives,
            resources=data.resources,
            display_order=data.display_order if data.display_order is not None else data.week_number,
        )
        self.db.add(week)
        await self._commit("add week")
        await self.db.refresh(week)

        sync = await self.sync.on_week_added(curriculum.id, week.id)
        logger.info(
            "Added week: curriculum=%s, week=%s, number=%d",
            curriculum.id,
            week.id,
            week.week_number,
        )
        return AuthoringResult(item=WeekResponse.model_validate(week), sync=sync)

    async def update_week(
        self,
        actor: Principal,
        week_id: str | UUID,
        data: WeekUpdate,
    ) -> AuthoringResult[WeekResponse]:
        """Update a week and propagate a renumbering.

        Raises:
            ForbiddenError: If actor is a buddy.
            WeekNotFoundError: If week not found.
            ValidationError: If the new week number is already taken.
        """
        self._require_author(actor)
        week = await self._get_week(week_id)

        changes = data.model_dump(exclude_unset=True)
        new_number = changes.get("week_number")
        if new_number is not None and new_number != week.week_number:
            await self._check_week_number_free(week.curriculum_id, new_number)

        for key, value in changes.items():
            setattr(week, key, value)

        await self._commit("update week")
        await self.db.refresh(week)

        sync = await self.sync.on_week_updated(week.id, changes)
        return AuthoringResult(item=WeekResponse.model_validate(week), sync=sync)

    async def delete_week(
        self,
        actor: Principal,
        week_id: str | UUID,
    ) -> AuthoringResult[WeekResponse]:
        """Delete a week and its task templates, preserving learner history.

        Raises:
            ForbiddenError: If actor is a buddy.
            WeekNotFoundError: If week not found.
        """
        self._require_author(actor)
        week = await self._get_week(week_id)

        sync: WeekDeletionResult = await self.sync.on_week_deleted(week.id)

        week = await self._get_week(week_id)
        await self.db.delete(week)
        await self._commit("delete week")

        logger.info("Deleted week: week=%s, by=%s", week_id, actor.user_id)
        return AuthoringResult(item=None, sync=sync)

    # Task templates

    async def list_tasks(self, week_id: str | UUID) -> list[TaskTemplateResponse]:
        """List a week's task templates in display order.

        Raises:
            WeekNotFoundError: If week not found.
        """
        week = await self._get_week(week_id)
        result = await self.db.execute(
            select(TaskTemplate)
            .where(TaskTemplate.curriculum_week_id == week.id)
            .order_by(TaskTemplate.display_order, TaskTemplate.created_at)
        )
        return [TaskTemplateResponse.model_validate(t) for t in result.scalars().all()]

    async def get_task(self, task_template_id: str | UUID) -> TaskTemplateResponse:
        """Get a task template by id.

        Raises:
            TaskTemplateNotFoundError: If task template not found.
        """
        return TaskTemplateResponse.model_validate(await self._get_task(task_template_id))

    async def add_task(
        self,
        actor: Principal,
        week_id: str | UUID,
        data: TaskTemplateCreate,
    ) -> AuthoringResult[TaskTemplateResponse]:
        """Add a task template and assign it to active enrollments.

        Raises:
            ForbiddenError: If actor is a buddy.
            WeekNotFoundError: If week not found.
        """
        self._require_author(actor)
        week = await self._get_week(week_id)

        task = TaskTemplate(
            curriculum_week_id=week.id,
            title=data.title,
            description=data.description,
            requirements=data.requirements,
            difficulty=data.difficulty,
            estimated_hours=data.estimated_hours,
            expected_resource_types=data.expected_resource_types,
            resources=data.resources,
            display_order=data.display_order,
            is_active=True,
            created_by=actor.user_id,
            last_modified_by=actor.user_id,
        )
        self.db.add(task)
        await self._commit("add task")
        await self.db.refresh(task)

        sync = await self.sync.on_task_added(week.id, task.id)
        logger.info("Added task template: week=%s, task=%s", week.id, task.id)
        return AuthoringResult(item=TaskTemplateResponse.model_validate(task), sync=sync)

    async def update_task(
        self,
        actor: Principal,
        task_template_id: str | UUID,
        data: TaskTemplateUpdate,
    ) -> AuthoringResult[TaskTemplateResponse]:
        """Update task template content.

        Raises:
            ForbiddenError: If actor is a buddy.
            TaskTemplateNotFoundError: If task template not found.
        """
        self._require_author(actor)
        task = await self._get_task(task_template_id)

        changes = data.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(task, key, value)
        task.last_modified_by = actor.user_id

        await self._commit("update task")
        await self.db.refresh(task)

        sync = await self.sync.on_task_template_updated(task.id, changes)
        return AuthoringResult(item=TaskTemplateResponse.model_validate(task), sync=sync)

    async def delete_task(
        self,
        actor: Principal,
        task_template_id: str | UUID,
    ) -> AuthoringResult[TaskTemplateResponse]:
        """Delete a task template, preserving assignments with progress.

        Raises:
            ForbiddenError: If actor is a buddy.
            TaskTemplateNotFoundError: If task template not found.
        """
        self._require_author(actor)
        task = await self._get_task(task_template_id)

        sync = await self.sync.on_task_deleted(task.id)

        task = await self._get_task(task_template_id)
        await self.db.delete(task)
        await self._commit("delete task")

        logger.info("Deleted task template: task=%s, by=%s", task_template_id, actor.user_id)
        return AuthoringResult(item=None, sync=sync)

    # Helpers

    def _require_author(self, actor: Principal) -> None:
        if not actor.is_staff:
            raise ForbiddenError("Only managers and mentors can author curricula")

    async def _unique_slug(self, name: str) -> str:
        base = generate_slug(name)
        slug = base
        suffix = 2
        while await self.db.scalar(select(Curriculum.id).where(Curriculum.slug == slug)):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    async def _check_week_number_free(self, curriculum_id: str, week_number: int) -> None:
        taken = await self.db.scalar(
            select(CurriculumWeek.id).where(
                CurriculumWeek.curriculum_id == curriculum_id,
                CurriculumWeek.week_number == week_number,
            )
        )
        if taken:
            raise ValidationError(f"Week {week_number} already exists in curriculum {curriculum_id}")

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Authoring failed (%s): %s", action, str(e))
            raise PersistenceError(f"Failed to {action}", e) from e

    async def _get_curriculum(self, curriculum_id: str | UUID) -> Curriculum:
        curriculum = await self.db.get(Curriculum, str(curriculum_id))
        if not curriculum:
            raise CurriculumNotFoundError(f"Curriculum {curriculum_id} not found")
        return curriculum

    async def _get_week(self, week_id: str | UUID) -> CurriculumWeek:
        week = await self.db.get(CurriculumWeek, str(week_id))
        if not week:
            raise WeekNotFoundError(f"Week {week_id} not found")
        return week

    async def _get_task(self, task_template_id: str | UUID) -> TaskTemplate:
        task = await self.db.get(TaskTemplate, str(task_template_id))
        if not task:
            raise TaskTemplateNotFoundError(f"Task template {task_template_id} not found")
        return task
