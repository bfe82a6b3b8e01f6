# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

Provides the SQLAlchemy async Database handle, the ORM models and the
Alembic migrations for the relational store.

Example:
    from buddytrack.infrastructure.database import Database

    database = Database(settings.database)
    await database.init()
    async with database.session() as session:
        ...
"""

from buddytrack.infrastructure.database.connection import (
    Database,
    DatabaseError,
    configure_sqlite_engine,
)

__all__ = [
    "Database",
    "DatabaseError",
    "configure_sqlite_engine",
]
