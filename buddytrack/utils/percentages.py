# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Completion percentage arithmetic shared by every progress level."""


def completion_percentage(completed: int, total: int) -> int:
    """Return ``round(100 * completed / total)`` as an integer in [0, 100].

    Halves round up (12.5 -> 13), matching how percentages are shown to
    learners, rather than Python's round-half-to-even. Integer arithmetic
    keeps the result exact.

    Args:
        completed: Number of completed items.
        total: Number of items.

    Returns:
        Percentage; 0 when total is 0.
    """
    if total <= 0:
        return 0
    completed = max(0, min(completed, total))
    return (200 * completed + total) // (2 * total)
