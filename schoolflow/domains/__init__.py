# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for SchoolFlow.

This package contains domain services that encapsulate business logic.
Each domain module keeps its state machines pure and talks to the
record store only through its service class.

Domains:
    enrollment: Promotion workflows, selection, bulk class assignment.
    transfer: Inter-school transfer requests.
"""
