# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic models shared across BuddyTrack services."""

from buddytrack.models.common import (
    CurriculumStatus,
    Difficulty,
    DomainRole,
    EnrollmentStatus,
    FeedbackType,
    Principal,
    ResourceType,
    ReviewStatus,
    TaskAssignmentStatus,
    UserRole,
    WeekProgressStatus,
)
from buddytrack.models.curriculum import (
    CurriculumCreate,
    CurriculumResponse,
    CurriculumSummary,
    CurriculumUpdate,
    TaskTemplateCreate,
    TaskTemplateResponse,
    TaskTemplateUpdate,
    WeekCreate,
    WeekResponse,
    WeekUpdate,
)
from buddytrack.models.enrollment import (
    NO_CURRICULUM_AVAILABLE,
    BuddyAssignmentItem,
    BuddyProgressResponse,
    EnrollmentResponse,
    EnrollmentResult,
    TaskAssignmentResponse,
    WeekProgressResponse,
)
from buddytrack.models.submission import (
    AssignedBuddySummary,
    FeedbackCreate,
    FeedbackResponse,
    ResourceInput,
    ResourceResponse,
    ReviewQueueItem,
    SubmissionResponse,
    SubmissionUpdate,
    SubmitRequest,
)

__all__ = [
    # Enums and principal
    "CurriculumStatus",
    "Difficulty",
    "DomainRole",
    "EnrollmentStatus",
    "FeedbackType",
    "Principal",
    "ResourceType",
    "ReviewStatus",
    "TaskAssignmentStatus",
    "UserRole",
    "WeekProgressStatus",
    # Curriculum
    "CurriculumCreate",
    "CurriculumResponse",
    "CurriculumSummary",
    "CurriculumUpdate",
    "TaskTemplateCreate",
    "TaskTemplateResponse",
    "TaskTemplateUpdate",
    "WeekCreate",
    "WeekResponse",
    "WeekUpdate",
    # Enrollment
    "NO_CURRICULUM_AVAILABLE",
    "BuddyAssignmentItem",
    "BuddyProgressResponse",
    "EnrollmentResponse",
    "EnrollmentResult",
    "TaskAssignmentResponse",
    "WeekProgressResponse",
    # Submission
    "AssignedBuddySummary",
    "FeedbackCreate",
    "FeedbackResponse",
    "ResourceInput",
    "ResourceResponse",
    "ReviewQueueItem",
    "SubmissionResponse",
    "SubmissionUpdate",
    "SubmitRequest",
]
