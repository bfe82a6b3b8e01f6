# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the BuddyTrack store.

Importing this package registers every table on Base.metadata.
"""

from buddytrack.infrastructure.database.models.base import Base, TimestampMixin, new_uuid
from buddytrack.infrastructure.database.models.curriculum import (
    Curriculum,
    CurriculumWeek,
    TaskTemplate,
)
from buddytrack.infrastructure.database.models.enrollment import (
    Buddy,
    BuddyCurriculum,
    BuddyWeekProgress,
    TaskAssignment,
)
from buddytrack.infrastructure.database.models.submission import (
    Submission,
    SubmissionFeedback,
    SubmissionResource,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "new_uuid",
    # Templates
    "Curriculum",
    "CurriculumWeek",
    "TaskTemplate",
    # Enrollment tracking
    "Buddy",
    "BuddyCurriculum",
    "BuddyWeekProgress",
    "TaskAssignment",
    # Review
    "Submission",
    "SubmissionResource",
    "SubmissionFeedback",
]
