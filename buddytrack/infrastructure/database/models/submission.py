# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Submission, attached resources and the threaded feedback log."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from buddytrack.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    status_enum,
    uuid_pk,
)
from buddytrack.models.common import FeedbackType, ReviewStatus, UserRole
from buddytrack.utils.datetime import utc_now


class Submission(Base, TimestampMixin):
    """One versioned piece of work for a task assignment.

    Versions start at 1 and increase strictly per assignment.
    """

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("task_assignment_id", "version", name="uq_submissions_assignment_version"),
    )

    id: Mapped[str] = uuid_pk()
    task_assignment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("task_assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    buddy_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buddies.id"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    review_status: Mapped[ReviewStatus] = mapped_column(
        status_enum(ReviewStatus, "ck_submissions_review_status"),
        default=ReviewStatus.PENDING,
        nullable=False,
        index=True,
    )
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(36))
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    grade: Mapped[Optional[str]] = mapped_column(String(20))
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )


class SubmissionResource(Base):
    """Artifact attached to a submission; display_order keeps caller order."""

    __tablename__ = "submission_resources"

    id: Mapped[str] = uuid_pk()
    submission_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    filename: Mapped[Optional[str]] = mapped_column(String(255))
    filesize: Mapped[Optional[int]] = mapped_column(Integer)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )


class SubmissionFeedback(Base, TimestampMixin):
    """Threaded message on a submission. parent_feedback_id forms the tree."""

    __tablename__ = "submission_feedback"

    id: Mapped[str] = uuid_pk()
    submission_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[str] = mapped_column(String(36), nullable=False)
    author_role: Mapped[UserRole] = mapped_column(
        status_enum(UserRole, "ck_submission_feedback_author_role"),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    feedback_type: Mapped[FeedbackType] = mapped_column(
        status_enum(FeedbackType, "ck_submission_feedback_type"),
        default=FeedbackType.COMMENT,
        nullable=False,
    )
    parent_feedback_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("submission_feedback.id", ondelete="CASCADE"),
    )
