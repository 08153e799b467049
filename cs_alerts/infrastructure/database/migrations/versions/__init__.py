# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alert store revisions.

- 001_customer_alerts: alert, history and generation log tables
- 002_alert_status_function: update_alert_status() stored procedure
"""
