# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for curriculum slug generation."""

from buddytrack.domains.curriculum.authoring import generate_slug


class TestGenerateSlug:
    """Tests for generate_slug."""

    def test_basic(self) -> None:
        """Test punctuation is dropped and spaces become dashes."""
        assert generate_slug("Frontend Basics: HTML & CSS") == "frontend-basics-html-css"

    def test_collapses_separators(self) -> None:
        """Test underscores and repeated spaces collapse to one dash."""
        assert generate_slug("  QA__Track   2025 ") == "qa-track-2025"

    def test_empty_falls_back(self) -> None:
        """Test a name without slug characters still yields a slug."""
        assert generate_slug("!!!") == "curriculum"
