# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Buddy-side tracking models.

Hierarchy per enrollment:
- BuddyCurriculum (one per buddy + curriculum)
- BuddyWeekProgress (one per enrollment + week)
- TaskAssignment (one per buddy + task template)

Rows are created only by the enrollment service and the template sync
service, and are never hard-deleted by learner actions. References back to
template rows use ON DELETE SET NULL so learner history outlives a deleted
week or task template.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from buddytrack.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    status_enum,
    uuid_pk,
)
from buddytrack.models.common import (
    DomainRole,
    EnrollmentStatus,
    TaskAssignmentStatus,
    WeekProgressStatus,
)
from buddytrack.utils.datetime import utc_now


class Buddy(Base, TimestampMixin):
    """Minimal learner record: who the buddy is and who mentors them."""

    __tablename__ = "buddies"

    id: Mapped[str] = uuid_pk()
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    domain_role: Mapped[Optional[DomainRole]] = mapped_column(
        status_enum(DomainRole, "ck_buddies_domain_role"),
    )
    assigned_mentor_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)


class BuddyCurriculum(Base, TimestampMixin):
    """A buddy's live enrollment in one curriculum."""

    __tablename__ = "buddy_curriculums"
    __table_args__ = (
        UniqueConstraint("buddy_id", "curriculum_id", name="uq_buddy_curriculums_buddy_curriculum"),
    )

    id: Mapped[str] = uuid_pk()
    buddy_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buddies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    curriculum_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("curriculums.id"),
        nullable=False,
        index=True,
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    target_completion_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    current_week: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    overall_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[EnrollmentStatus] = mapped_column(
        status_enum(EnrollmentStatus, "ck_buddy_curriculums_status"),
        default=EnrollmentStatus.ACTIVE,
        nullable=False,
    )


class BuddyWeekProgress(Base, TimestampMixin):
    """Per-enrollment, per-week aggregation of task completion.

    Invariants once a sync settles:
    - total_tasks == number of task assignments pointing at this row
    - progress_percentage == round(100 * completed_tasks / total_tasks)
    """

    __tablename__ = "buddy_week_progress"
    __table_args__ = (
        UniqueConstraint(
            "buddy_curriculum_id",
            "curriculum_week_id",
            name="uq_buddy_week_progress_enrollment_week",
        ),
    )

    id: Mapped[str] = uuid_pk()
    buddy_curriculum_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buddy_curriculums.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    curriculum_week_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("curriculum_weeks.id", ondelete="SET NULL"),
        index=True,
    )
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    total_tasks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_tasks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[WeekProgressStatus] = mapped_column(
        status_enum(WeekProgressStatus, "ck_buddy_week_progress_status"),
        default=WeekProgressStatus.NOT_STARTED,
        nullable=False,
    )


class TaskAssignment(Base, TimestampMixin):
    """Buddy-specific instance of a task template."""

    __tablename__ = "task_assignments"
    __table_args__ = (
        UniqueConstraint("buddy_id", "task_template_id", name="uq_task_assignments_buddy_template"),
    )

    id: Mapped[str] = uuid_pk()
    buddy_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buddies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_template_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("task_templates.id", ondelete="SET NULL"),
        index=True,
    )
    buddy_curriculum_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buddy_curriculums.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    buddy_week_progress_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buddy_week_progress.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[TaskAssignmentStatus] = mapped_column(
        status_enum(TaskAssignmentStatus, "ck_task_assignments_status"),
        default=TaskAssignmentStatus.NOT_STARTED,
        nullable=False,
        index=True,
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    first_submission_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    submission_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
