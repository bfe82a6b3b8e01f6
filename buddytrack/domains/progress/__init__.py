# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress domain package.

Recomputes week-progress and enrollment progress from task assignments.
"""

from buddytrack.domains.progress.aggregator import ProgressAggregator, week_status_for

__all__ = [
    "ProgressAggregator",
    "week_status_for",
]
