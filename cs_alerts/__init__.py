# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer-success alert engine.

Turns per-school usage metrics into deduplicated, stateful alerts for the
customer-success team, with a durable store and an in-process fallback.
"""

__version__ = "0.1.0"
