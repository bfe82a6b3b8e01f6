# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the submission review service and review queue guards."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from buddytrack.domains.errors import (
    AssignmentNotFoundError,
    ForbiddenError,
    InvalidStateTransitionError,
    SubmissionNotFoundError,
    ValidationError,
)
from buddytrack.domains.submission.review_queue import ReviewQueueService
from buddytrack.domains.submission.service import SubmissionReviewService
from buddytrack.models.common import (
    Principal,
    ResourceType,
    ReviewStatus,
    TaskAssignmentStatus,
    UserRole,
)
from buddytrack.models.submission import ResourceInput, SubmitRequest


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.get = AsyncMock(return_value=None)
    return db


@pytest.fixture
def review_service(mock_db):
    """Create submission review service with mock database."""
    return SubmissionReviewService(db=mock_db)


@pytest.fixture
def buddy_actor():
    """Buddy principal for buddy b-1."""
    return Principal(user_id="buddy-user-1", role=UserRole.BUDDY, buddy_id="b-1")


@pytest.fixture
def sample_assignment():
    """Create a sample assignment owned by buddy b-1."""
    assignment = MagicMock()
    assignment.id = str(uuid4())
    assignment.buddy_id = "b-1"
    assignment.status = TaskAssignmentStatus.NOT_STARTED
    return assignment


def request(description: str = "Done", with_resource: bool = True) -> SubmitRequest:
    resources = (
        [ResourceInput(type=ResourceType.URL, label="Repo", url="https://example.com/repo")]
        if with_resource
        else []
    )
    return SubmitRequest(description=description, resources=resources)


class TestSubmitValidation:
    """Tests for submit preconditions."""

    @pytest.mark.asyncio
    async def test_requires_resource(self, review_service, mock_db, buddy_actor):
        """Test submitting without resources fails before any lookup."""
        with pytest.raises(ValidationError) as exc_info:
            await review_service.submit(uuid4(), buddy_actor, request(with_resource=False))

        assert exc_info.value.status_code == 400
        mock_db.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_description(self, review_service, mock_db, buddy_actor):
        """Test a blank description is rejected."""
        with pytest.raises(ValidationError):
            await review_service.submit(uuid4(), buddy_actor, request(description="   "))

        mock_db.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_assignment(self, review_service, buddy_actor):
        """Test submitting to a missing assignment raises AssignmentNotFoundError."""
        with pytest.raises(AssignmentNotFoundError):
            await review_service.submit(uuid4(), buddy_actor, request())

    @pytest.mark.asyncio
    async def test_only_owner_submits(self, review_service, mock_db, sample_assignment, mentor):
        """Test staff and other buddies cannot submit for a buddy."""
        mock_db.get.return_value = sample_assignment
        other = Principal(user_id="buddy-user-2", role=UserRole.BUDDY, buddy_id="b-2")

        with pytest.raises(ForbiddenError):
            await review_service.submit(sample_assignment.id, other, request())
        with pytest.raises(ForbiddenError):
            await review_service.submit(sample_assignment.id, mentor, request())

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_completed_task_cannot_be_resubmitted(
        self, review_service, mock_db, sample_assignment, buddy_actor
    ):
        """Test a completed assignment rejects new versions."""
        sample_assignment.status = TaskAssignmentStatus.COMPLETED
        mock_db.get.return_value = sample_assignment

        with pytest.raises(InvalidStateTransitionError):
            await review_service.submit(sample_assignment.id, buddy_actor, request())


class TestReviewGuards:
    """Tests for review decision preconditions."""

    @pytest.mark.asyncio
    async def test_buddy_cannot_review(self, review_service, mock_db, buddy_actor):
        """Test buddies are refused before the submission is loaded."""
        with pytest.raises(ForbiddenError):
            await review_service.approve(uuid4(), buddy_actor)

        mock_db.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_messages_required(self, review_service, mentor):
        """Test revision requests and rejections need a message."""
        with pytest.raises(ValidationError):
            await review_service.request_revision(uuid4(), mentor, "")
        with pytest.raises(ValidationError):
            await review_service.reject(uuid4(), mentor, "  ")

    @pytest.mark.asyncio
    async def test_unknown_submission(self, review_service, mentor):
        """Test deciding on a missing submission raises SubmissionNotFoundError."""
        with pytest.raises(SubmissionNotFoundError):
            await review_service.approve(uuid4(), mentor, grade="A")

    @pytest.mark.asyncio
    async def test_decided_submission_is_final(self, review_service, mock_db, mentor):
        """Test an approved submission cannot be decided again."""
        submission = MagicMock()
        submission.review_status = ReviewStatus.APPROVED
        mock_db.get.return_value = submission

        with pytest.raises(InvalidStateTransitionError):
            await review_service.reject(uuid4(), mentor, "Late change of mind")

        mock_db.commit.assert_not_called()


class TestResolveMentor:
    """Tests for review queue ownership rules."""

    def test_mentor_defaults_to_own_queue(self, mentor):
        """Test a mentor without mentor_id reads their own queue."""
        assert ReviewQueueService._resolve_mentor(mentor, None) == "mentor-1"
        assert ReviewQueueService._resolve_mentor(mentor, "mentor-1") == "mentor-1"

    def test_mentor_cannot_read_other_queue(self, mentor):
        """Test a mentor naming another mentor is refused."""
        with pytest.raises(ForbiddenError):
            ReviewQueueService._resolve_mentor(mentor, "mentor-2")

    def test_manager_must_name_mentor(self, manager):
        """Test a manager has no default queue."""
        with pytest.raises(ValidationError):
            ReviewQueueService._resolve_mentor(manager, None)
        assert ReviewQueueService._resolve_mentor(manager, "mentor-2") == "mentor-2"

    def test_buddy_has_no_queue(self, buddy_actor):
        """Test buddies cannot read review queues."""
        with pytest.raises(ForbiddenError):
            ReviewQueueService._resolve_mentor(buddy_actor, None)
