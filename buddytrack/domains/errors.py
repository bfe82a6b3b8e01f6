# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain error taxonomy shared by every service.

Each error kind carries the status code the HTTP layer maps it to:
- NotFoundError: 404
- ForbiddenError: 403
- InvalidStateError: 400 (precondition or input validation failure)
- PersistenceError: 500

"No curriculum available" is deliberately not an error; see
EnrollmentResult.
"""


class DomainError(Exception):
    """Base exception for domain service errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status the error maps to.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """Raised when a referenced row does not exist."""

    status_code = 404


class ForbiddenError(DomainError):
    """Raised on ownership or role violations."""

    status_code = 403


class InvalidStateError(DomainError):
    """Raised when an operation's precondition on current state is violated."""

    status_code = 400


class PersistenceError(DomainError):
    """Raised when the store fails underneath an operation.

    Attributes:
        original_error: The underlying store exception.
    """

    status_code = 500

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error description.
            original_error: The exception raised by the store.
        """
        super().__init__(message)
        self.original_error = original_error


# Not found

class CurriculumNotFoundError(NotFoundError):
    """Raised when curriculum is not found."""

    pass


class WeekNotFoundError(NotFoundError):
    """Raised when curriculum week is not found."""

    pass


class TaskTemplateNotFoundError(NotFoundError):
    """Raised when task template is not found."""

    pass


class EnrollmentNotFoundError(NotFoundError):
    """Raised when buddy enrollment is not found."""

    pass


class WeekProgressNotFoundError(NotFoundError):
    """Raised when week-progress row is not found."""

    pass


class AssignmentNotFoundError(NotFoundError):
    """Raised when task assignment is not found."""

    pass


class SubmissionNotFoundError(NotFoundError):
    """Raised when submission is not found."""

    pass


class FeedbackNotFoundError(NotFoundError):
    """Raised when feedback entry is not found."""

    pass


class BuddyNotFoundError(NotFoundError):
    """Raised when buddy is not found."""

    pass


# Invalid state

class CurriculumNotPublishedError(InvalidStateError):
    """Raised when enrolling into a curriculum that is not published."""

    pass


class AlreadyEnrolledError(InvalidStateError):
    """Raised when a buddy already follows a different curriculum."""

    pass


class InvalidStateTransitionError(InvalidStateError):
    """Raised when a status transition is not allowed from the current state."""

    pass


class ValidationError(InvalidStateError):
    """Raised when operation input is missing or malformed."""

    pass
