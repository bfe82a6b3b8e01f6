# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for integration tests.

Each test gets a fresh in-memory SQLite database (aiosqlite) with every
table created from model metadata, plus factories for seeding buddies and
curriculum trees.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from typing import Any, TypeVar
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.core.config.settings import DatabaseSettings
from buddytrack.domains.curriculum.authoring import generate_slug
from buddytrack.infrastructure.database import Database
from buddytrack.infrastructure.database.models import (
    Buddy,
    BuddyCurriculum,
    BuddyWeekProgress,
    Curriculum,
    CurriculumWeek,
    TaskAssignment,
    TaskTemplate,
)
from buddytrack.models.common import (
    CurriculumStatus,
    DomainRole,
    Principal,
    UserRole,
)
from buddytrack.utils.datetime import utc_now

ModelT = TypeVar("ModelT")

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def database() -> AsyncGenerator[Database, None]:
    """Create an initialized database handle with all tables."""
    db = Database(DatabaseSettings(explicit_url=TEST_DB_URL))
    await db.init()
    await db.create_all()

    yield db

    await db.close()


@pytest_asyncio.fixture(scope="function")
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Create async session for integration tests."""
    async with database.sessionmaker() as session:
        yield session


@pytest.fixture
def reload(db_session: AsyncSession) -> Callable[[type[ModelT], str], Awaitable[ModelT | None]]:
    """Re-read a row from the store, overwriting the cached identity.

    Needed after ON DELETE CASCADE / SET NULL actions, which the session
    does not see.
    """

    async def _reload(model: type[ModelT], row_id: str) -> ModelT | None:
        result = await db_session.execute(
            select(model)
            .where(model.id == str(row_id))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    return _reload


# =============================================================================
# Seed Data
# =============================================================================


@pytest_asyncio.fixture
async def buddy(db_session: AsyncSession) -> Buddy:
    """Frontend buddy mentored by mentor-1."""
    row = Buddy(
        user_id="buddy-user-1",
        domain_role=DomainRole.FRONTEND,
        assigned_mentor_id="mentor-1",
    )
    db_session.add(row)
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def second_buddy(db_session: AsyncSession) -> Buddy:
    """Another frontend buddy, mentored by mentor-2."""
    row = Buddy(
        user_id="buddy-user-2",
        domain_role=DomainRole.FRONTEND,
        assigned_mentor_id="mentor-2",
    )
    db_session.add(row)
    await db_session.commit()
    return row


@pytest.fixture
def buddy_principal(buddy: Buddy) -> Principal:
    """Principal for the seeded buddy."""
    return Principal(user_id=buddy.user_id, role=UserRole.BUDDY, buddy_id=buddy.id)


@pytest.fixture
def second_buddy_principal(second_buddy: Buddy) -> Principal:
    """Principal for the second buddy."""
    return Principal(user_id=second_buddy.user_id, role=UserRole.BUDDY, buddy_id=second_buddy.id)


@pytest.fixture
def make_curriculum(db_session: AsyncSession) -> Callable[..., Awaitable[Curriculum]]:
    """Factory seeding a curriculum with weeks and task templates.

    ``tasks_per_week`` gives the number of templates of each week, in week
    order; its length is the number of weeks.
    """

    async def _make(
        name: str = "Frontend Basics",
        domain_role: DomainRole = DomainRole.FRONTEND,
        tasks_per_week: Sequence[int] = (2, 1),
        status: CurriculumStatus = CurriculumStatus.PUBLISHED,
        **fields: Any,
    ) -> Curriculum:
        fields.setdefault(
            "published_at",
            utc_now() if status == CurriculumStatus.PUBLISHED else None,
        )
        curriculum = Curriculum(
            name=name,
            slug=f"{generate_slug(name)}-{uuid4().hex[:8]}",
            domain_role=domain_role,
            total_weeks=len(tasks_per_week),
            status=status,
            **fields,
        )
        db_session.add(curriculum)
        await db_session.flush()

        for week_number, task_count in enumerate(tasks_per_week, start=1):
            week = CurriculumWeek(
                curriculum_id=curriculum.id,
                week_number=week_number,
                title=f"Week {week_number}",
                display_order=week_number,
            )
            db_session.add(week)
            await db_session.flush()

            for position in range(1, task_count + 1):
                db_session.add(
                    TaskTemplate(
                        curriculum_week_id=week.id,
                        title=f"Week {week_number} Task {position}",
                        description=f"Complete task {position} of week {week_number}",
                        display_order=position,
                    )
                )

        await db_session.commit()
        return curriculum

    return _make


@pytest_asyncio.fixture
async def frontend_curriculum(make_curriculum) -> Curriculum:
    """Published "Frontend Basics": week 1 has 2 tasks, week 2 has 1."""
    return await make_curriculum()


@pytest.fixture
def weeks_of(db_session: AsyncSession) -> Callable[[str], Awaitable[list[CurriculumWeek]]]:
    """List a curriculum's weeks by week number."""

    async def _weeks(curriculum_id: str) -> list[CurriculumWeek]:
        result = await db_session.scalars(
            select(CurriculumWeek)
            .where(CurriculumWeek.curriculum_id == curriculum_id)
            .order_by(CurriculumWeek.week_number)
        )
        return list(result.all())

    return _weeks


@pytest.fixture
def templates_of(db_session: AsyncSession) -> Callable[[str], Awaitable[list[TaskTemplate]]]:
    """List a week's task templates in display order."""

    async def _templates(week_id: str) -> list[TaskTemplate]:
        result = await db_session.scalars(
            select(TaskTemplate)
            .where(TaskTemplate.curriculum_week_id == week_id)
            .order_by(TaskTemplate.display_order)
        )
        return list(result.all())

    return _templates


@pytest.fixture
def assignments_of(db_session: AsyncSession) -> Callable[[str], Awaitable[list[TaskAssignment]]]:
    """List a buddy's task assignments, freshly read from the store."""

    async def _assignments(buddy_id: str) -> list[TaskAssignment]:
        result = await db_session.scalars(
            select(TaskAssignment)
            .where(TaskAssignment.buddy_id == buddy_id)
            .order_by(TaskAssignment.assigned_at)
            .execution_options(populate_existing=True)
        )
        return list(result.all())

    return _assignments


@pytest.fixture
def enrollment_of(db_session: AsyncSession) -> Callable[[str], Awaitable[BuddyCurriculum | None]]:
    """Read a buddy's most recent enrollment from the store."""

    async def _enrollment(buddy_id: str) -> BuddyCurriculum | None:
        result = await db_session.scalars(
            select(BuddyCurriculum)
            .where(BuddyCurriculum.buddy_id == buddy_id)
            .order_by(BuddyCurriculum.enrolled_at.desc())
            .execution_options(populate_existing=True)
        )
        return result.first()

    return _enrollment


@pytest.fixture
def week_progress_of(db_session: AsyncSession) -> Callable[[str], Awaitable[list[BuddyWeekProgress]]]:
    """List an enrollment's week-progress rows by week number."""

    async def _weeks(enrollment_id: str) -> list[BuddyWeekProgress]:
        result = await db_session.scalars(
            select(BuddyWeekProgress)
            .where(BuddyWeekProgress.buddy_curriculum_id == enrollment_id)
            .order_by(BuddyWeekProgress.week_number)
            .execution_options(populate_existing=True)
        )
        return list(result.all())

    return _weeks
