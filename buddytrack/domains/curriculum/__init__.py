# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum domain services.

This package provides curriculum services:
- CurriculumAuthoringService: CRUD for curricula, weeks and task templates
- TemplateSyncService: Propagate template edits into active enrollments

Authoring commits each template change and then runs the matching sync
operation, so enrolled buddies converge on the edited template.
"""

from buddytrack.domains.curriculum.authoring import (
    AuthoringResult,
    CurriculumAuthoringService,
    generate_slug,
)
from buddytrack.domains.curriculum.sync_service import (
    DeletionResult,
    SyncResult,
    TemplateSyncService,
    UpdateResult,
    WeekDeletionResult,
)

__all__ = [
    # Authoring
    "CurriculumAuthoringService",
    "AuthoringResult",
    "generate_slug",
    # Sync
    "TemplateSyncService",
    "SyncResult",
    "DeletionResult",
    "WeekDeletionResult",
    "UpdateResult",
]
