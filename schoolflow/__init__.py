"""SchoolFlow.

Enrollment promotion workflows, bulk class assignment and inter-school
transfer requests for the school administration dashboard.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "0.1.0"
