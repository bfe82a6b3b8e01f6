# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base, mixins and column helpers shared by all models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from buddytrack.utils.datetime import utc_now


class Base(DeclarativeBase):
    """Declarative base for every BuddyTrack table."""


def new_uuid() -> str:
    """Generate a string primary key."""
    return str(uuid4())


def uuid_pk() -> Mapped[str]:
    """String UUID primary key column."""
    return mapped_column(String(36), primary_key=True, default=new_uuid)


def status_enum(enum_cls: type[Enum], name: str) -> SAEnum:
    """VARCHAR-backed enum column type storing the enum values.

    Args:
        enum_cls: Python enum class.
        name: Constraint name for the CHECK constraint.

    Returns:
        SQLAlchemy Enum type.
    """
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class TimestampMixin:
    """Adds created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )
