# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

The Database handle owns the async engine and sessionmaker. It is created
once by the process entry point and passed to whatever needs sessions;
there is no module-level connection state.

Example:
    from buddytrack.infrastructure.database.connection import Database

    database = Database(settings.database)
    await database.init()

    async with database.session() as session:
        result = await session.execute(select(Curriculum))
        curriculums = result.scalars().all()

    await database.close()
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from buddytrack.core.config.settings import DatabaseSettings
from buddytrack.infrastructure.database.models import Base


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def configure_sqlite_engine(engine: AsyncEngine) -> None:
    """Enable foreign keys and SAVEPOINT support on a SQLite engine.

    The sqlite3 driver manages transactions on its own and breaks nested
    transactions; handing BEGIN back to SQLAlchemy makes begin_nested()
    behave like it does on PostgreSQL. Foreign keys are off by default in
    SQLite, and the ON DELETE rules depend on them.

    Args:
        engine: Async engine bound to a SQLite database.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


class Database:
    """Explicitly constructed handle on the relational store.

    Attributes:
        settings: Database settings used to build the engine.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        """Initialize the handle without connecting.

        Args:
            settings: Database configuration.
        """
        self.settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    async def init(self) -> None:
        """Create the engine and session factory.

        Raises:
            DatabaseError: If engine creation fails.
        """
        engine_kwargs: dict = {
            "pool_pre_ping": True,
            "echo": self.settings.echo,
        }
        if self.settings.is_sqlite:
            if ":memory:" in self.settings.url:
                # every session must see the same in-memory database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs.update(
                pool_size=self.settings.pool_size,
                max_overflow=self.settings.max_overflow,
                pool_recycle=1800,
            )

        try:
            self._engine = create_async_engine(self.settings.url, **engine_kwargs)
            if self.settings.is_sqlite:
                configure_sqlite_engine(self._engine)
            self._sessionmaker = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to initialize database connection", e) from e

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None

    @property
    def engine(self) -> AsyncEngine:
        """The async engine.

        Raises:
            DatabaseError: If init() has not been called.
        """
        if self._engine is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        """The async session factory.

        Raises:
            DatabaseError: If init() has not been called.
        """
        if self._sessionmaker is None:
            raise DatabaseError("Database not initialized. Call init() first.")
        return self._sessionmaker

    async def create_all(self) -> None:
        """Create every table directly from model metadata.

        Used for local development and tests; deployed stores are
        managed by the Alembic migrations.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Get an async session scoped to one logical operation.

        The session is committed on success and rolled back on exception.

        Yields:
            AsyncSession for database operations.

        Raises:
            DatabaseError: If a database operation fails.
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError("Database operation failed", e) from e
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if the database is reachable.

        Returns:
            True if the database is reachable, False otherwise.
        """
        if self._engine is None:
            return False

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False
