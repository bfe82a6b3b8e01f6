# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment and progress response models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from buddytrack.models.common import (
    EnrollmentStatus,
    TaskAssignmentStatus,
    WeekProgressStatus,
)
from buddytrack.models.curriculum import CurriculumSummary

NO_CURRICULUM_AVAILABLE = "no_curriculum_available"


class EnrollmentResult(BaseModel):
    """Outcome of instantiating a curriculum for a buddy.

    A domain lookup miss is a successful-but-empty result
    (``enrolled=False, reason="no_curriculum_available"``), not an error.

    Attributes:
        enrolled: Whether the buddy now has an enrollment tree.
        message: Human-readable summary.
        reason: Machine-readable reason when nothing was enrolled.
        enrollment_id: Enrollment identifier when enrolled.
        curriculum: Curriculum the buddy was enrolled into.
        total_weeks: Week-progress rows belonging to the enrollment.
        total_tasks: Task assignments belonging to the enrollment.
        repaired: True when an existing enrollment was re-populated.
    """

    enrolled: bool
    message: str
    reason: str | None = None
    enrollment_id: UUID | None = None
    curriculum: CurriculumSummary | None = None
    total_weeks: int = 0
    total_tasks: int = 0
    repaired: bool = False

    @property
    def no_curriculum_available(self) -> bool:
        """Whether the result is the non-fatal domain lookup miss."""
        return self.reason == NO_CURRICULUM_AVAILABLE


class EnrollmentResponse(BaseModel):
    """Buddy enrollment row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    buddy_id: UUID
    curriculum_id: UUID
    enrolled_at: datetime
    target_completion_date: datetime | None = None
    completed_at: datetime | None = None
    current_week: int
    overall_progress: int
    status: EnrollmentStatus


class WeekProgressResponse(BaseModel):
    """Week-progress row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    buddy_curriculum_id: UUID
    curriculum_week_id: UUID | None = None
    week_number: int
    total_tasks: int
    completed_tasks: int
    progress_percentage: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    status: WeekProgressStatus


class TaskAssignmentResponse(BaseModel):
    """Task assignment row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    buddy_id: UUID
    task_template_id: UUID | None = None
    buddy_curriculum_id: UUID
    buddy_week_progress_id: UUID
    assigned_at: datetime
    due_date: datetime | None = None
    status: TaskAssignmentStatus
    started_at: datetime | None = None
    first_submission_at: datetime | None = None
    completed_at: datetime | None = None
    submission_count: int


class BuddyProgressResponse(BaseModel):
    """Enrollment with curriculum summary, weeks and overall totals."""

    enrollment: EnrollmentResponse
    curriculum: CurriculumSummary | None = None
    weeks: list[WeekProgressResponse]
    total_tasks: int
    completed_tasks: int
    overall_progress: int


class BuddyAssignmentItem(BaseModel):
    """Assignment joined with its template and week for the buddy's task list."""

    assignment: TaskAssignmentResponse
    task_title: str | None = None
    week_number: int
    week_title: str | None = None
