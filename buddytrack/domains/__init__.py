# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for BuddyTrack.

This package contains domain services that encapsulate business logic.
Each service takes an AsyncSession and raises DomainError subclasses
(see errors.py) that carry the HTTP status they map to.

Domains:
    curriculum: Template authoring and propagation of template edits.
    enrollment: Instantiating a curriculum for one buddy.
    progress: Week and curriculum completion aggregation.
    submission: Task lifecycle, submission review and feedback threads.
"""
