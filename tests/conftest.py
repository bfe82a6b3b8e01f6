# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (mocked sessions, pure logic)
- Integration tests (in-memory SQLite through aiosqlite)
"""

import pytest

from buddytrack.models.common import Principal, UserRole


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (uses a database)"
    )


# =============================================================================
# Principal Fixtures
# =============================================================================


@pytest.fixture
def manager() -> Principal:
    """Provide a manager principal."""
    return Principal(user_id="manager-user-1", role=UserRole.MANAGER)


@pytest.fixture
def mentor() -> Principal:
    """Provide a mentor principal (mentor record mentor-1)."""
    return Principal(user_id="mentor-user-1", role=UserRole.MENTOR, mentor_id="mentor-1")


@pytest.fixture
def other_mentor() -> Principal:
    """Provide a second mentor principal."""
    return Principal(user_id="mentor-user-2", role=UserRole.MENTOR, mentor_id="mentor-2")
