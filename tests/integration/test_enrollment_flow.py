# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for curriculum enrollment."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from buddytrack.domains.enrollment import EnrollmentService
from buddytrack.domains.errors import (
    AlreadyEnrolledError,
    BuddyNotFoundError,
    CurriculumNotFoundError,
    CurriculumNotPublishedError,
    EnrollmentNotFoundError,
)
from buddytrack.infrastructure.database.models import (
    BuddyCurriculum,
    BuddyWeekProgress,
    TaskAssignment,
)
from buddytrack.models.common import (
    CurriculumStatus,
    DomainRole,
    EnrollmentStatus,
    TaskAssignmentStatus,
    WeekProgressStatus,
)
from buddytrack.models.enrollment import NO_CURRICULUM_AVAILABLE
from buddytrack.utils.datetime import ensure_utc, utc_now, weeks_after

pytestmark = pytest.mark.integration


class TestAutoEnroll:
    """Tests for enrollment by domain role."""

    @pytest.mark.asyncio
    async def test_creates_full_enrollment_tree(
        self, db_session, buddy, frontend_curriculum, assignments_of, enrollment_of, week_progress_of
    ) -> None:
        """Test enrolling into Frontend Basics mirrors every week and task."""
        service = EnrollmentService(db_session)

        result = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        assert result.enrolled is True
        assert result.repaired is False
        assert result.total_weeks == 2
        assert result.total_tasks == 3
        assert str(result.curriculum.id) == frontend_curriculum.id

        enrollment = await enrollment_of(buddy.id)
        assert str(result.enrollment_id) == enrollment.id
        assert enrollment.status == EnrollmentStatus.ACTIVE
        assert enrollment.overall_progress == 0
        assert enrollment.current_week == 1

        weeks = await week_progress_of(enrollment.id)
        assert [w.week_number for w in weeks] == [1, 2]
        assert [w.total_tasks for w in weeks] == [2, 1]
        assert all(w.status == WeekProgressStatus.NOT_STARTED for w in weeks)
        assert all(w.completed_tasks == 0 for w in weeks)

        assignments = await assignments_of(buddy.id)
        assert len(assignments) == 3
        assert all(a.status == TaskAssignmentStatus.NOT_STARTED for a in assignments)
        assert all(a.buddy_curriculum_id == enrollment.id for a in assignments)

    @pytest.mark.asyncio
    async def test_week_totals_match_assignment_counts(
        self, db_session, buddy, make_curriculum, week_progress_of
    ) -> None:
        """Test every week's total equals its number of assignments."""
        await make_curriculum(tasks_per_week=(3, 0, 2))
        service = EnrollmentService(db_session)

        result = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        weeks = await week_progress_of(str(result.enrollment_id))
        for week in weeks:
            count = await db_session.scalar(
                select(func.count(TaskAssignment.id)).where(
                    TaskAssignment.buddy_week_progress_id == week.id
                )
            )
            assert week.total_tasks == count
        assert [w.total_tasks for w in weeks] == [3, 0, 2]
        assert result.total_tasks == 5

    @pytest.mark.asyncio
    async def test_due_and_target_dates_follow_enrollment_date(
        self, db_session, buddy, frontend_curriculum, assignments_of, enrollment_of, week_progress_of
    ) -> None:
        """Test due dates are week_number weeks and target total_weeks weeks after enrolling."""
        service = EnrollmentService(db_session)
        await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        enrollment = await enrollment_of(buddy.id)
        week_numbers = {w.id: w.week_number for w in await week_progress_of(enrollment.id)}

        assert ensure_utc(enrollment.target_completion_date) == weeks_after(enrollment.enrolled_at, 2)
        for assignment in await assignments_of(buddy.id):
            expected = weeks_after(
                enrollment.enrolled_at, week_numbers[assignment.buddy_week_progress_id]
            )
            assert ensure_utc(assignment.due_date) == expected

    @pytest.mark.asyncio
    async def test_reenrolling_is_idempotent(
        self, db_session, buddy, frontend_curriculum, assignments_of
    ) -> None:
        """Test a second enrollment repairs instead of duplicating rows."""
        service = EnrollmentService(db_session)
        first = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        second = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        assert second.enrolled is True
        assert second.repaired is True
        assert second.enrollment_id == first.enrollment_id
        assert second.total_tasks == 3
        assert len(await assignments_of(buddy.id)) == 3
        enrollments = await db_session.scalar(
            select(func.count(BuddyCurriculum.id)).where(BuddyCurriculum.buddy_id == buddy.id)
        )
        assert enrollments == 1

    @pytest.mark.asyncio
    async def test_no_curriculum_for_domain_is_not_an_error(
        self, db_session, buddy, frontend_curriculum
    ) -> None:
        """Test a domain without a published curriculum returns an empty result."""
        service = EnrollmentService(db_session)

        result = await service.auto_enroll(buddy.id, DomainRole.BACKEND)

        assert result.enrolled is False
        assert result.reason == NO_CURRICULUM_AVAILABLE
        assert result.no_curriculum_available is True
        assert result.enrollment_id is None
        count = await db_session.scalar(select(func.count(BuddyCurriculum.id)))
        assert count == 0

    @pytest.mark.asyncio
    async def test_draft_and_inactive_curricula_are_skipped(
        self, db_session, buddy, make_curriculum
    ) -> None:
        """Test only published, active curricula are enrollable."""
        await make_curriculum(status=CurriculumStatus.DRAFT)
        await make_curriculum(name="Frontend Legacy", is_active=False)
        service = EnrollmentService(db_session)

        result = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        assert result.no_curriculum_available is True

    @pytest.mark.asyncio
    async def test_picks_most_recently_published(self, db_session, buddy, make_curriculum) -> None:
        """Test the newest published curriculum wins when several exist."""
        now = utc_now()
        await make_curriculum(name="Frontend 2024", published_at=now - timedelta(days=30))
        newest = await make_curriculum(name="Frontend 2025", tasks_per_week=(1,), published_at=now)
        service = EnrollmentService(db_session)

        result = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        assert str(result.curriculum.id) == newest.id
        assert result.total_tasks == 1

    @pytest.mark.asyncio
    async def test_unknown_buddy_raises(self, db_session, frontend_curriculum) -> None:
        """Test enrolling a missing buddy raises BuddyNotFoundError."""
        service = EnrollmentService(db_session)

        with pytest.raises(BuddyNotFoundError):
            await service.auto_enroll("missing-buddy", DomainRole.FRONTEND)

    @pytest.mark.asyncio
    async def test_inactive_templates_are_not_assigned(
        self, db_session, buddy, frontend_curriculum, weeks_of, templates_of, week_progress_of
    ) -> None:
        """Test deactivated task templates are left out of a new enrollment."""
        week_one = (await weeks_of(frontend_curriculum.id))[0]
        template = (await templates_of(week_one.id))[0]
        template.is_active = False
        await db_session.commit()
        service = EnrollmentService(db_session)

        result = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        assert result.total_tasks == 2
        weeks = await week_progress_of(str(result.enrollment_id))
        assert [w.total_tasks for w in weeks] == [1, 1]


class TestEnrollByCurriculumId:
    """Tests for enrollment into an explicit curriculum."""

    @pytest.mark.asyncio
    async def test_enrolls_into_given_curriculum(self, db_session, buddy, make_curriculum) -> None:
        """Test explicit enrollment ignores the buddy's domain."""
        devops = await make_curriculum(
            name="DevOps Basics", domain_role=DomainRole.DEVOPS, tasks_per_week=(1, 1, 1)
        )
        service = EnrollmentService(db_session)

        result = await service.enroll_by_curriculum_id(buddy.id, devops.id)

        assert result.enrolled is True
        assert result.total_weeks == 3
        assert result.total_tasks == 3
        assert result.curriculum.domain_role == DomainRole.DEVOPS

    @pytest.mark.asyncio
    async def test_unpublished_curriculum_raises(self, db_session, buddy, make_curriculum) -> None:
        """Test a draft curriculum cannot be enrolled into."""
        draft = await make_curriculum(status=CurriculumStatus.DRAFT)
        service = EnrollmentService(db_session)

        with pytest.raises(CurriculumNotPublishedError) as exc_info:
            await service.enroll_by_curriculum_id(buddy.id, draft.id)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_curriculum_raises(self, db_session, buddy) -> None:
        """Test a missing curriculum raises CurriculumNotFoundError."""
        service = EnrollmentService(db_session)

        with pytest.raises(CurriculumNotFoundError):
            await service.enroll_by_curriculum_id(buddy.id, "missing-curriculum")

    @pytest.mark.asyncio
    async def test_active_enrollment_elsewhere_raises(
        self, db_session, buddy, frontend_curriculum, make_curriculum
    ) -> None:
        """Test a buddy follows at most one active curriculum."""
        other = await make_curriculum(name="Frontend Advanced")
        service = EnrollmentService(db_session)
        await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        with pytest.raises(AlreadyEnrolledError):
            await service.enroll_by_curriculum_id(buddy.id, other.id)

    @pytest.mark.asyncio
    async def test_dropped_enrollment_allows_new_curriculum(
        self, db_session, buddy, frontend_curriculum, make_curriculum
    ) -> None:
        """Test a buddy who dropped out can enroll into another curriculum."""
        other = await make_curriculum(name="Frontend Advanced", tasks_per_week=(1,))
        service = EnrollmentService(db_session)
        first = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)
        enrollment = await db_session.get(BuddyCurriculum, str(first.enrollment_id))
        enrollment.status = EnrollmentStatus.DROPPED
        await db_session.commit()

        result = await service.enroll_by_curriculum_id(buddy.id, other.id)

        assert result.enrolled is True
        assert result.enrollment_id != first.enrollment_id
        assert result.total_tasks == 1


class TestRepairEnrollment:
    """Tests for re-populating partial enrollments."""

    @pytest.mark.asyncio
    async def test_restores_missing_rows(
        self, db_session, buddy, frontend_curriculum, assignments_of, week_progress_of
    ) -> None:
        """Test repair recreates deleted assignments and recounts totals."""
        service = EnrollmentService(db_session)
        enrolled = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)
        enrollment_id = str(enrolled.enrollment_id)

        weeks = await week_progress_of(enrollment_id)
        await db_session.delete(weeks[1])
        assignment = (await assignments_of(buddy.id))[0]
        await db_session.delete(assignment)
        weeks[0].total_tasks = 99
        await db_session.commit()

        result = await service.repair_enrollment(enrollment_id)

        assert result.repaired is True
        assert result.total_weeks == 2
        assert result.total_tasks == 3
        assert [w.total_tasks for w in await week_progress_of(enrollment_id)] == [2, 1]
        assert len(await assignments_of(buddy.id)) == 3

    @pytest.mark.asyncio
    async def test_unknown_enrollment_raises(self, db_session) -> None:
        """Test repairing a missing enrollment raises EnrollmentNotFoundError."""
        service = EnrollmentService(db_session)

        with pytest.raises(EnrollmentNotFoundError):
            await service.repair_enrollment("missing-enrollment")


class TestBuddyViews:
    """Tests for buddy progress and assignment listings."""

    @pytest.mark.asyncio
    async def test_curriculum_progress(self, db_session, buddy, frontend_curriculum) -> None:
        """Test the progress view carries weeks and totals."""
        service = EnrollmentService(db_session)
        await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        progress = await service.get_buddy_curriculum_progress(buddy.id)

        assert progress.curriculum.name == "Frontend Basics"
        assert [w.week_number for w in progress.weeks] == [1, 2]
        assert progress.total_tasks == 3
        assert progress.completed_tasks == 0
        assert progress.overall_progress == 0
        assert progress.enrollment.status == EnrollmentStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_curriculum_progress_without_enrollment_raises(self, db_session, buddy) -> None:
        """Test a buddy without an enrollment has no progress view."""
        service = EnrollmentService(db_session)

        with pytest.raises(EnrollmentNotFoundError) as exc_info:
            await service.get_buddy_curriculum_progress(buddy.id)

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_assignments_listed_in_curriculum_order(
        self, db_session, buddy, frontend_curriculum
    ) -> None:
        """Test assignments come back by week, then task display order."""
        service = EnrollmentService(db_session)
        await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        items = await service.list_buddy_assignments(buddy.id)

        assert [item.task_title for item in items] == [
            "Week 1 Task 1",
            "Week 1 Task 2",
            "Week 2 Task 1",
        ]
        assert [item.week_number for item in items] == [1, 1, 2]
        assert all(item.week_title for item in items)

    @pytest.mark.asyncio
    async def test_assignments_empty_for_unenrolled_buddy(self, db_session, buddy) -> None:
        """Test listing assignments of an unenrolled buddy returns nothing."""
        service = EnrollmentService(db_session)

        assert await service.list_buddy_assignments(buddy.id) == []

    @pytest.mark.asyncio
    async def test_week_progress_rows_reference_curriculum_weeks(
        self, db_session, buddy, frontend_curriculum, weeks_of, week_progress_of
    ) -> None:
        """Test each progress row points at its curriculum week."""
        service = EnrollmentService(db_session)
        result = await service.auto_enroll(buddy.id, DomainRole.FRONTEND)

        weeks = await weeks_of(frontend_curriculum.id)
        progress = await week_progress_of(str(result.enrollment_id))

        assert [p.curriculum_week_id for p in progress] == [w.id for w in weeks]
        rows = await db_session.scalar(select(func.count(BuddyWeekProgress.id)))
        assert rows == 2
