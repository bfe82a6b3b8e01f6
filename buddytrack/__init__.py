# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""BuddyTrack - mentorship curriculum enrollment and review engine.

The package is organised like a service backend:
- core: configuration
- domains: enrollment, curriculum sync/authoring, progress, submission review
- infrastructure: database connection, ORM models, migrations
- models: pydantic DTOs and the authenticated principal
- utils: logging and datetime helpers
"""

__version__ = "0.1.0"
