# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Submission domain package.

This package provides the task assignment review workflow:
- SubmissionReviewService: start, submit, review decisions, history
- FeedbackService: threaded feedback on submissions
- ReviewQueueService: mentor review queue and assigned buddies
"""

from buddytrack.domains.submission.feedback import FeedbackService
from buddytrack.domains.submission.review_queue import ReviewQueueService
from buddytrack.domains.submission.service import (
    SubmissionReviewService,
    build_submission_response,
    ensure_can_access,
    ensure_reviewer,
)
from buddytrack.domains.submission.transitions import (
    ASSIGNMENT_TRANSITIONS,
    EDITABLE_STATUSES,
    REVIEWABLE_STATUSES,
    can_transition,
    ensure_transition,
)

__all__ = [
    # Services
    "SubmissionReviewService",
    "FeedbackService",
    "ReviewQueueService",
    # Helpers
    "build_submission_response",
    "ensure_can_access",
    "ensure_reviewer",
    # Transitions
    "ASSIGNMENT_TRANSITIONS",
    "EDITABLE_STATUSES",
    "REVIEWABLE_STATUSES",
    "can_transition",
    "ensure_transition",
]
