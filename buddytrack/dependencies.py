# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Service wiring for BuddyTrack.

The process entry point owns one Database handle. Each request opens a
service scope: one session shared by every service it uses, so a request
sees its own writes and fails as a unit.

Example:
    database = await init_database()
    async with service_scope(database) as services:
        result = await services.enrollment.auto_enroll(buddy_id, DomainRole.FRONTEND)
    await database.close()
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from buddytrack.core.config import Settings, get_settings
from buddytrack.domains.curriculum import CurriculumAuthoringService, TemplateSyncService
from buddytrack.domains.enrollment import EnrollmentService
from buddytrack.domains.progress import ProgressAggregator
from buddytrack.domains.submission import (
    FeedbackService,
    ReviewQueueService,
    SubmissionReviewService,
)
from buddytrack.infrastructure.database import Database
from buddytrack.models.common import Principal
from buddytrack.utils.logging import bind_actor, get_logger, setup_logging, unbind_actor

logger = get_logger(__name__)


@dataclass
class Services:
    """Every domain service bound to one session.

    Attributes:
        db: The shared async session.
    """

    db: AsyncSession
    enrollment: EnrollmentService = field(init=False)
    authoring: CurriculumAuthoringService = field(init=False)
    sync: TemplateSyncService = field(init=False)
    progress: ProgressAggregator = field(init=False)
    review: SubmissionReviewService = field(init=False)
    feedback: FeedbackService = field(init=False)
    review_queue: ReviewQueueService = field(init=False)

    def __post_init__(self) -> None:
        self.enrollment = EnrollmentService(self.db)
        self.authoring = CurriculumAuthoringService(self.db)
        self.sync = self.authoring.sync
        self.progress = ProgressAggregator(self.db)
        self.review = SubmissionReviewService(self.db)
        self.feedback = FeedbackService(self.db)
        self.review_queue = ReviewQueueService(self.db)


async def init_database(settings: Settings | None = None) -> Database:
    """Configure logging and open the database handle.

    Args:
        settings: Application settings. Defaults to get_settings().

    Returns:
        Initialized database handle. The caller closes it.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    database = Database(settings.database)
    await database.init()
    logger.info("BuddyTrack database initialized", environment=settings.environment)
    return database


@asynccontextmanager
async def service_scope(
    database: Database,
    actor: Principal | None = None,
) -> AsyncIterator[Services]:
    """Open a session and bind every service to it.

    Args:
        database: Initialized database handle.
        actor: Caller of the request; bound to the logging context.

    Yields:
        Services sharing one session.
    """
    if actor is not None:
        bind_actor(actor)
    try:
        async with database.session() as session:
            yield Services(session)
    finally:
        if actor is not None:
            unbind_actor()
