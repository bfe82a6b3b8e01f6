# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Legal status transitions for task assignments and submissions.

Every status write in the submission domain goes through ensure_transition()
or the review status sets below; no service assigns a status directly
without checking it here first.

Assignment lifecycle:
    not_started -> in_progress -> submitted -> under_review -> completed
    request revision: submitted/under_review -> in_progress
    reject:           submitted/under_review -> not_started

    A buddy may submit a new version while an older one is still pending.
    When the older one is sent back the assignment is in_progress again,
    so the remaining pending versions can still be approved or rejected
    from in_progress (or needs_revision).
"""

from buddytrack.domains.errors import InvalidStateTransitionError
from buddytrack.models.common import ReviewStatus, TaskAssignmentStatus

_S = TaskAssignmentStatus

ASSIGNMENT_TRANSITIONS: dict[TaskAssignmentStatus, frozenset[TaskAssignmentStatus]] = {
    _S.NOT_STARTED: frozenset({_S.IN_PROGRESS, _S.SUBMITTED}),
    _S.IN_PROGRESS: frozenset({_S.IN_PROGRESS, _S.SUBMITTED, _S.COMPLETED, _S.NOT_STARTED}),
    _S.SUBMITTED: frozenset(
        {_S.IN_PROGRESS, _S.SUBMITTED, _S.UNDER_REVIEW, _S.COMPLETED, _S.NOT_STARTED}
    ),
    _S.UNDER_REVIEW: frozenset({_S.IN_PROGRESS, _S.SUBMITTED, _S.COMPLETED, _S.NOT_STARTED}),
    _S.NEEDS_REVISION: frozenset({_S.IN_PROGRESS, _S.SUBMITTED, _S.COMPLETED, _S.NOT_STARTED}),
    _S.COMPLETED: frozenset(),
}

# Submissions a reviewer may still decide on.
REVIEWABLE_STATUSES = frozenset({ReviewStatus.PENDING, ReviewStatus.UNDER_REVIEW})

# Submissions the buddy may still edit or withdraw.
EDITABLE_STATUSES = frozenset({ReviewStatus.PENDING})


def can_transition(current: TaskAssignmentStatus, target: TaskAssignmentStatus) -> bool:
    """Check whether an assignment may move from current to target."""
    return target in ASSIGNMENT_TRANSITIONS.get(TaskAssignmentStatus(current), frozenset())


def ensure_transition(current: TaskAssignmentStatus, target: TaskAssignmentStatus) -> None:
    """Validate an assignment status transition.

    Args:
        current: Current assignment status.
        target: Requested status.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed.
    """
    if not can_transition(current, target):
        raise InvalidStateTransitionError(
            f"Cannot move task assignment from {TaskAssignmentStatus(current).value} "
            f"to {TaskAssignmentStatus(target).value}"
        )


def ensure_reviewable(status: ReviewStatus) -> None:
    """Validate that a submission still awaits a review decision.

    Raises:
        InvalidStateTransitionError: If the submission was already decided.
    """
    if ReviewStatus(status) not in REVIEWABLE_STATUSES:
        raise InvalidStateTransitionError(
            f"Submission already reviewed (status={ReviewStatus(status).value})"
        )


def ensure_editable(status: ReviewStatus) -> None:
    """Validate that a submission can still be edited or deleted.

    Raises:
        InvalidStateTransitionError: If review has started.
    """
    if ReviewStatus(status) not in EDITABLE_STATUSES:
        raise InvalidStateTransitionError(
            f"Cannot modify submission after review has started (status={ReviewStatus(status).value})"
        )
