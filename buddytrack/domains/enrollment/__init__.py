# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides buddy enrollment functionality including:
- Auto-enrollment by domain role
- Enrollment into a specific curriculum
- Repair of partially populated enrollments
"""

from buddytrack.domains.enrollment.population import EnrollmentTreeBuilder, PopulationResult
from buddytrack.domains.enrollment.service import EnrollmentService

__all__ = [
    "EnrollmentService",
    "EnrollmentTreeBuilder",
    "PopulationResult",
]
