# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external service integrations.

This package contains:
- store: Async HTTP client for the school administration REST API
- cache: In-memory view cache with namespace invalidation
"""
