# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Submission, feedback and review queue models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from buddytrack.models.common import (
    DomainRole,
    FeedbackType,
    ResourceType,
    ReviewStatus,
    UserRole,
)
from buddytrack.models.enrollment import TaskAssignmentResponse


class ResourceInput(BaseModel):
    """Artifact supplied with a submission."""

    type: ResourceType
    label: str = Field(min_length=1, max_length=200)
    url: str = Field(min_length=1)
    filename: str | None = None
    filesize: int | None = Field(default=None, ge=0)


class SubmitRequest(BaseModel):
    """Buddy's submission for a task assignment.

    Emptiness of description and resources is checked by the review
    service so it surfaces as an invalid-state error, not a schema error.
    """

    description: str = ""
    notes: str | None = None
    resources: list[ResourceInput] = Field(default_factory=list)


class SubmissionUpdate(BaseModel):
    """Edit of a still-pending submission."""

    description: str | None = None
    notes: str | None = None


class FeedbackCreate(BaseModel):
    """New entry in a submission's feedback thread."""

    message: str = ""
    feedback_type: FeedbackType = FeedbackType.COMMENT
    parent_feedback_id: UUID | None = None


class ResourceResponse(BaseModel):
    """Attached artifact."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    label: str
    url: str
    filename: str | None = None
    filesize: int | None = None
    display_order: int


class FeedbackResponse(BaseModel):
    """Feedback thread entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    author_id: str
    author_role: UserRole
    message: str
    feedback_type: FeedbackType
    parent_feedback_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class SubmissionResponse(BaseModel):
    """Submission with its resources and (optionally) its feedback thread."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    task_assignment_id: UUID
    buddy_id: UUID
    version: int
    description: str
    notes: str | None = None
    review_status: ReviewStatus
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    grade: str | None = None
    submitted_at: datetime
    resources: list[ResourceResponse] = Field(default_factory=list)
    feedback: list[FeedbackResponse] = Field(default_factory=list)


class ReviewQueueItem(BaseModel):
    """Submission awaiting a mentor, with the context needed to review it."""

    submission: SubmissionResponse
    assignment: TaskAssignmentResponse
    task_title: str | None = None
    week_number: int
    week_title: str | None = None
    buddy_id: UUID
    buddy_user_id: str


class AssignedBuddySummary(BaseModel):
    """Buddy mentored by a given mentor."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    domain_role: DomainRole | None = None
    status: str
