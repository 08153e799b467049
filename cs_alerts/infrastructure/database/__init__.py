# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the PostgreSQL alert store.

Example:
    from cs_alerts.infrastructure.database import init_database, get_session

    await init_database(settings)

    async with get_session() as session:
        result = await session.execute(select(CustomerAlert))
"""

from cs_alerts.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)
from cs_alerts.infrastructure.database.models import (
    AlertHistory,
    Base,
    CustomerAlert,
    GenerationLog,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
    "AlertHistory",
    "Base",
    "CustomerAlert",
    "GenerationLog",
]
