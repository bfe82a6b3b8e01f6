# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum template models: Curriculum -> CurriculumWeek -> TaskTemplate.

Templates are authored independently of any buddy. Deleting a curriculum
cascades to its weeks, and deleting a week cascades to its task templates.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from buddytrack.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    status_enum,
    uuid_pk,
)
from buddytrack.models.common import CurriculumStatus, Difficulty, DomainRole


class Curriculum(Base, TimestampMixin):
    """Reusable, domain-scoped program template.

    Only ``published`` and active curricula are enrollable.
    """

    __tablename__ = "curriculums"

    id: Mapped[str] = uuid_pk()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    domain_role: Mapped[DomainRole] = mapped_column(
        status_enum(DomainRole, "ck_curriculums_domain_role"),
        nullable=False,
        index=True,
    )
    total_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[CurriculumStatus] = mapped_column(
        status_enum(CurriculumStatus, "ck_curriculums_status"),
        default=CurriculumStatus.DRAFT,
        nullable=False,
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    version: Mapped[str] = mapped_column(String(20), default="1.0", nullable=False)
    tags: Mapped[Optional[list[str]]] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    last_modified_by: Mapped[Optional[str]] = mapped_column(String(36))

    @property
    def is_enrollable(self) -> bool:
        """Whether new buddies may enroll in this curriculum."""
        return self.status == CurriculumStatus.PUBLISHED and self.is_active


class CurriculumWeek(Base, TimestampMixin):
    """One week of a curriculum; week_number is 1-based and unique per curriculum."""

    __tablename__ = "curriculum_weeks"
    __table_args__ = (
        UniqueConstraint("curriculum_id", "week_number", name="uq_curriculum_weeks_number"),
    )

    id: Mapped[str] = uuid_pk()
    curriculum_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("curriculums.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    learning_objectives: Mapped[Optional[list[str]]] = mapped_column(JSON)
    resources: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSON)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TaskTemplate(Base, TimestampMixin):
    """Task definition inside a week. Identity is immutable, content is not."""

    __tablename__ = "task_templates"

    id: Mapped[str] = uuid_pk()
    curriculum_week_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("curriculum_weeks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[Optional[str]] = mapped_column(Text)
    difficulty: Mapped[Optional[Difficulty]] = mapped_column(
        status_enum(Difficulty, "ck_task_templates_difficulty"),
    )
    estimated_hours: Mapped[Optional[int]] = mapped_column(Integer)
    expected_resource_types: Mapped[Optional[list[str]]] = mapped_column(JSON)
    resources: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSON)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    last_modified_by: Mapped[Optional[str]] = mapped_column(String(36))
