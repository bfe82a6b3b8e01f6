# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enums and the authenticated principal.

Every status column in the store maps to one of the enums below, and every
service operation receives a validated Principal instead of a raw request
user object.
"""

from enum import Enum
from typing import Self

from pydantic import BaseModel, ConfigDict, model_validator


class DomainRole(str, Enum):
    """Engineering track a curriculum (and buddy) belongs to."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    FULLSTACK = "fullstack"
    DEVOPS = "devops"
    QA = "qa"
    HR = "hr"


class CurriculumStatus(str, Enum):
    """Authoring lifecycle of a curriculum template."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class EnrollmentStatus(str, Enum):
    """Lifecycle of a buddy's enrollment."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    DROPPED = "dropped"


class WeekProgressStatus(str, Enum):
    """Completion bucket of a week-progress row."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskAssignmentStatus(str, Enum):
    """Lifecycle of a buddy's task assignment."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    NEEDS_REVISION = "needs_revision"
    COMPLETED = "completed"


class ReviewStatus(str, Enum):
    """Review lifecycle of a single submission version."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    NEEDS_REVISION = "needs_revision"
    REJECTED = "rejected"


class FeedbackType(str, Enum):
    """Kind of message in a submission's feedback thread."""

    COMMENT = "comment"
    QUESTION = "question"
    APPROVAL = "approval"
    REVISION_REQUEST = "revision_request"
    REJECTION = "rejection"
    REPLY = "reply"


class Difficulty(str, Enum):
    """Task template difficulty."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ResourceType(str, Enum):
    """Kind of artifact attached to a submission."""

    URL = "url"
    GITHUB = "github"
    FILE = "file"
    DOCUMENT = "document"
    VIDEO = "video"
    OTHER = "other"


class UserRole(str, Enum):
    """Role carried by the authenticated principal."""

    MANAGER = "manager"
    MENTOR = "mentor"
    BUDDY = "buddy"


class Principal(BaseModel):
    """Authenticated caller, validated once at the boundary.

    Attributes:
        user_id: User identifier (author of feedback entries).
        role: Role of the user.
        buddy_id: Buddy record id, required for buddy principals.
        mentor_id: Mentor record id, required for mentor principals.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
    buddy_id: str | None = None
    mentor_id: str | None = None

    @model_validator(mode="after")
    def validate_role_identity(self) -> Self:
        """Ensure role-specific identifiers are present.

        Raises:
            ValueError: If a buddy has no buddy_id or a mentor no mentor_id.
        """
        if self.role == UserRole.BUDDY and not self.buddy_id:
            raise ValueError("buddy principal requires buddy_id")
        if self.role == UserRole.MENTOR and not self.mentor_id:
            raise ValueError("mentor principal requires mentor_id")
        return self

    @property
    def is_manager(self) -> bool:
        """Check if the principal is a manager."""
        return self.role == UserRole.MANAGER

    @property
    def is_staff(self) -> bool:
        """Check if the principal is a mentor or manager."""
        return self.role in (UserRole.MANAGER, UserRole.MENTOR)

    def owns_buddy_record(self, buddy_id: str) -> bool:
        """Check if the principal is the buddy identified by buddy_id.

        Args:
            buddy_id: Buddy identifier stored on a row.

        Returns:
            True if the principal is that buddy.
        """
        return self.buddy_id is not None and self.buddy_id == str(buddy_id)
