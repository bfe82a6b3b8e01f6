# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial BuddyTrack schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-06-02

This migration creates all tables based on the SQLAlchemy models in
buddytrack/infrastructure/database/models/.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DOMAIN_ROLES = ("frontend", "backend", "fullstack", "devops", "qa", "hr")
CURRICULUM_STATUSES = ("draft", "published", "archived")
DIFFICULTIES = ("easy", "medium", "hard")
ENROLLMENT_STATUSES = ("active", "paused", "completed", "dropped")
WEEK_STATUSES = ("not_started", "in_progress", "completed")
ASSIGNMENT_STATUSES = (
    "not_started",
    "in_progress",
    "submitted",
    "under_review",
    "needs_revision",
    "completed",
)
REVIEW_STATUSES = ("pending", "under_review", "approved", "needs_revision", "rejected")
FEEDBACK_TYPES = ("comment", "question", "approval", "revision_request", "rejection", "reply")
USER_ROLES = ("manager", "mentor", "buddy")


def _in(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    """Create all BuddyTrack tables."""
    # ==========================================================================
    # 1. Curriculum templates
    # ==========================================================================
    op.create_table(
        "curriculums",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(220), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("domain_role", sa.String(32), nullable=False),
        sa.Column("total_weeks", sa.Integer, nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.String(20), nullable=False, server_default="1.0"),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(36), nullable=True),
        sa.Column("last_modified_by", sa.String(36), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(_in("domain_role", DOMAIN_ROLES), name="ck_curriculums_domain_role"),
        sa.CheckConstraint(_in("status", CURRICULUM_STATUSES), name="ck_curriculums_status"),
    )
    op.create_index("ix_curriculums_domain_role", "curriculums", ["domain_role"])

    op.create_table(
        "curriculum_weeks",
        _id(),
        sa.Column(
            "curriculum_id",
            sa.String(36),
            sa.ForeignKey("curriculums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("week_number", sa.Integer, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("learning_objectives", sa.JSON, nullable=True),
        sa.Column("resources", sa.JSON, nullable=True),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("curriculum_id", "week_number", name="uq_curriculum_weeks_number"),
    )
    op.create_index("ix_curriculum_weeks_curriculum_id", "curriculum_weeks", ["curriculum_id"])

    op.create_table(
        "task_templates",
        _id(),
        sa.Column(
            "curriculum_week_id",
            sa.String(36),
            sa.ForeignKey("curriculum_weeks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("requirements", sa.Text, nullable=True),
        sa.Column("difficulty", sa.String(32), nullable=True),
        sa.Column("estimated_hours", sa.Integer, nullable=True),
        sa.Column("expected_resource_types", sa.JSON, nullable=True),
        sa.Column("resources", sa.JSON, nullable=True),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(36), nullable=True),
        sa.Column("last_modified_by", sa.String(36), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(_in("difficulty", DIFFICULTIES), name="ck_task_templates_difficulty"),
    )
    op.create_index("ix_task_templates_curriculum_week_id", "task_templates", ["curriculum_week_id"])

    # ==========================================================================
    # 2. Buddies and enrollment tracking
    # ==========================================================================
    op.create_table(
        "buddies",
        _id(),
        sa.Column("user_id", sa.String(36), nullable=False, unique=True),
        sa.Column("domain_role", sa.String(32), nullable=True),
        sa.Column("assigned_mentor_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint(_in("domain_role", DOMAIN_ROLES), name="ck_buddies_domain_role"),
    )
    op.create_index("ix_buddies_assigned_mentor_id", "buddies", ["assigned_mentor_id"])

    op.create_table(
        "buddy_curriculums",
        _id(),
        sa.Column(
            "buddy_id",
            sa.String(36),
            sa.ForeignKey("buddies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "curriculum_id",
            sa.String(36),
            sa.ForeignKey("curriculums.id"),
            nullable=False,
        ),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("target_completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_week", sa.Integer, nullable=False, server_default="1"),
        sa.Column("overall_progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint(
            "buddy_id", "curriculum_id", name="uq_buddy_curriculums_buddy_curriculum"
        ),
        sa.CheckConstraint(_in("status", ENROLLMENT_STATUSES), name="ck_buddy_curriculums_status"),
    )
    op.create_index("ix_buddy_curriculums_buddy_id", "buddy_curriculums", ["buddy_id"])
    op.create_index("ix_buddy_curriculums_curriculum_id", "buddy_curriculums", ["curriculum_id"])

    op.create_table(
        "buddy_week_progress",
        _id(),
        sa.Column(
            "buddy_curriculum_id",
            sa.String(36),
            sa.ForeignKey("buddy_curriculums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "curriculum_week_id",
            sa.String(36),
            sa.ForeignKey("curriculum_weeks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("week_number", sa.Integer, nullable=False),
        sa.Column("total_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completed_tasks", sa.Integer, nullable=False, server_default="0"),
        sa.Column("progress_percentage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="not_started"),
        *_timestamps(),
        sa.UniqueConstraint(
            "buddy_curriculum_id",
            "curriculum_week_id",
            name="uq_buddy_week_progress_enrollment_week",
        ),
        sa.CheckConstraint(_in("status", WEEK_STATUSES), name="ck_buddy_week_progress_status"),
    )
    op.create_index(
        "ix_buddy_week_progress_buddy_curriculum_id", "buddy_week_progress", ["buddy_curriculum_id"]
    )
    op.create_index(
        "ix_buddy_week_progress_curriculum_week_id", "buddy_week_progress", ["curriculum_week_id"]
    )

    op.create_table(
        "task_assignments",
        _id(),
        sa.Column(
            "buddy_id",
            sa.String(36),
            sa.ForeignKey("buddies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "task_template_id",
            sa.String(36),
            sa.ForeignKey("task_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "buddy_curriculum_id",
            sa.String(36),
            sa.ForeignKey("buddy_curriculums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "buddy_week_progress_id",
            sa.String(36),
            sa.ForeignKey("buddy_week_progress.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="not_started"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("first_submission_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submission_count", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("buddy_id", "task_template_id", name="uq_task_assignments_buddy_template"),
        sa.CheckConstraint(_in("status", ASSIGNMENT_STATUSES), name="ck_task_assignments_status"),
    )
    op.create_index("ix_task_assignments_buddy_id", "task_assignments", ["buddy_id"])
    op.create_index("ix_task_assignments_task_template_id", "task_assignments", ["task_template_id"])
    op.create_index(
        "ix_task_assignments_buddy_curriculum_id", "task_assignments", ["buddy_curriculum_id"]
    )
    op.create_index(
        "ix_task_assignments_buddy_week_progress_id", "task_assignments", ["buddy_week_progress_id"]
    )
    op.create_index("ix_task_assignments_status", "task_assignments", ["status"])

    # ==========================================================================
    # 3. Submissions and review
    # ==========================================================================
    op.create_table(
        "submissions",
        _id(),
        sa.Column(
            "task_assignment_id",
            sa.String(36),
            sa.ForeignKey("task_assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("buddy_id", sa.String(36), sa.ForeignKey("buddies.id"), nullable=False),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("review_status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("reviewed_by", sa.String(36), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("grade", sa.String(20), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "task_assignment_id", "version", name="uq_submissions_assignment_version"
        ),
        sa.CheckConstraint(
            _in("review_status", REVIEW_STATUSES), name="ck_submissions_review_status"
        ),
    )
    op.create_index("ix_submissions_task_assignment_id", "submissions", ["task_assignment_id"])
    op.create_index("ix_submissions_buddy_id", "submissions", ["buddy_id"])
    op.create_index("ix_submissions_review_status", "submissions", ["review_status"])

    op.create_table(
        "submission_resources",
        _id(),
        sa.Column(
            "submission_id",
            sa.String(36),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("label", sa.String(200), nullable=False),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column("filename", sa.String(255), nullable=True),
        sa.Column("filesize", sa.Integer, nullable=True),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_submission_resources_submission_id", "submission_resources", ["submission_id"]
    )

    op.create_table(
        "submission_feedback",
        _id(),
        sa.Column(
            "submission_id",
            sa.String(36),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(36), nullable=False),
        sa.Column("author_role", sa.String(32), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("feedback_type", sa.String(32), nullable=False, server_default="comment"),
        sa.Column(
            "parent_feedback_id",
            sa.String(36),
            sa.ForeignKey("submission_feedback.id", ondelete="CASCADE"),
            nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint(
            _in("author_role", USER_ROLES), name="ck_submission_feedback_author_role"
        ),
        sa.CheckConstraint(
            _in("feedback_type", FEEDBACK_TYPES), name="ck_submission_feedback_type"
        ),
    )
    op.create_index(
        "ix_submission_feedback_submission_id", "submission_feedback", ["submission_id"]
    )


def downgrade() -> None:
    """Drop all BuddyTrack tables."""
    op.drop_table("submission_feedback")
    op.drop_table("submission_resources")
    op.drop_table("submissions")
    op.drop_table("task_assignments")
    op.drop_table("buddy_week_progress")
    op.drop_table("buddy_curriculums")
    op.drop_table("buddies")
    op.drop_table("task_templates")
    op.drop_table("curriculum_weeks")
    op.drop_table("curriculums")
