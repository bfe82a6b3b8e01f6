# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for assignment and submission status transitions."""

import pytest

from buddytrack.domains.errors import InvalidStateTransitionError
from buddytrack.domains.submission.transitions import (
    can_transition,
    ensure_editable,
    ensure_reviewable,
    ensure_transition,
)
from buddytrack.models.common import ReviewStatus, TaskAssignmentStatus as S


class TestAssignmentTransitions:
    """Tests for the assignment state machine."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (S.NOT_STARTED, S.IN_PROGRESS),
            (S.NOT_STARTED, S.SUBMITTED),
            (S.IN_PROGRESS, S.SUBMITTED),
            (S.SUBMITTED, S.UNDER_REVIEW),
            (S.SUBMITTED, S.COMPLETED),
            (S.UNDER_REVIEW, S.IN_PROGRESS),
            (S.UNDER_REVIEW, S.NOT_STARTED),
            (S.IN_PROGRESS, S.COMPLETED),
            (S.IN_PROGRESS, S.NOT_STARTED),
            (S.NEEDS_REVISION, S.COMPLETED),
        ],
    )
    def test_allowed(self, current: S, target: S) -> None:
        """Test legal moves pass."""
        assert can_transition(current, target) is True
        ensure_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (S.NOT_STARTED, S.COMPLETED),
            (S.IN_PROGRESS, S.UNDER_REVIEW),
            (S.COMPLETED, S.IN_PROGRESS),
            (S.COMPLETED, S.SUBMITTED),
        ],
    )
    def test_rejected(self, current: S, target: S) -> None:
        """Test illegal moves raise InvalidStateTransitionError."""
        assert can_transition(current, target) is False
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            ensure_transition(current, target)

        assert exc_info.value.status_code == 400

    def test_accepts_raw_values(self) -> None:
        """Test statuses read from rows as plain strings are understood."""
        assert can_transition("not_started", "in_progress") is True


class TestSubmissionGuards:
    """Tests for review and edit guards."""

    def test_reviewable(self) -> None:
        """Test only pending and under-review submissions can be decided."""
        ensure_reviewable(ReviewStatus.PENDING)
        ensure_reviewable(ReviewStatus.UNDER_REVIEW)
        with pytest.raises(InvalidStateTransitionError):
            ensure_reviewable(ReviewStatus.APPROVED)

    def test_editable(self) -> None:
        """Test only pending submissions can be edited."""
        ensure_editable(ReviewStatus.PENDING)
        for status in (ReviewStatus.UNDER_REVIEW, ReviewStatus.NEEDS_REVISION, ReviewStatus.REJECTED):
            with pytest.raises(InvalidStateTransitionError):
                ensure_editable(status)
