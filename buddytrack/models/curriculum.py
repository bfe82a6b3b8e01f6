# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum authoring request and response models."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from buddytrack.models.common import CurriculumStatus, Difficulty, DomainRole


class CurriculumCreate(BaseModel):
    """Request to create a curriculum template (always starts as draft)."""

    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    domain_role: DomainRole
    total_weeks: int = Field(ge=1)
    version: str = "1.0"
    tags: list[str] | None = None


class CurriculumUpdate(BaseModel):
    """Partial curriculum update; only fields explicitly set are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    total_weeks: int | None = Field(default=None, ge=1)
    version: str | None = None
    tags: list[str] | None = None
    is_active: bool | None = None


class WeekCreate(BaseModel):
    """Request to add a week to a curriculum."""

    week_number: int = Field(ge=1)
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    learning_objectives: list[str] | None = None
    resources: list[dict[str, Any]] | None = None
    display_order: int | None = None


class WeekUpdate(BaseModel):
    """Partial week update."""

    week_number: int | None = Field(default=None, ge=1)
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    learning_objectives: list[str] | None = None
    resources: list[dict[str, Any]] | None = None
    display_order: int | None = None


class TaskTemplateCreate(BaseModel):
    """Request to add a task template to a week."""

    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    requirements: str | None = None
    difficulty: Difficulty | None = None
    estimated_hours: int | None = Field(default=None, ge=0)
    expected_resource_types: list[str] | None = None
    resources: list[dict[str, Any]] | None = None
    display_order: int = 0


class TaskTemplateUpdate(BaseModel):
    """Partial task template update."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    requirements: str | None = None
    difficulty: Difficulty | None = None
    estimated_hours: int | None = Field(default=None, ge=0)
    expected_resource_types: list[str] | None = None
    resources: list[dict[str, Any]] | None = None
    display_order: int | None = None


class CurriculumResponse(BaseModel):
    """Curriculum template as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    description: str | None = None
    domain_role: DomainRole
    total_weeks: int
    status: CurriculumStatus
    published_at: datetime | None = None
    version: str
    tags: list[str] | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CurriculumSummary(BaseModel):
    """Short curriculum reference embedded in enrollment results."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    domain_role: DomainRole
    total_weeks: int


class WeekResponse(BaseModel):
    """Curriculum week as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    curriculum_id: UUID
    week_number: int
    title: str
    description: str | None = None
    learning_objectives: list[str] | None = None
    resources: list[dict[str, Any]] | None = None
    display_order: int


class TaskTemplateResponse(BaseModel):
    """Task template as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    curriculum_week_id: UUID
    title: str
    description: str
    requirements: str | None = None
    difficulty: Difficulty | None = None
    estimated_hours: int | None = None
    expected_resource_types: list[str] | None = None
    resources: list[dict[str, Any]] | None = None
    display_order: int
    is_active: bool
