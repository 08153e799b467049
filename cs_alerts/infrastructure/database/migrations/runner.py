# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migration runner.

Applies the alert store migrations programmatically, without the alembic
CLI. Revisions are tracked in the standard ``alembic_version`` table.

Example:
    from cs_alerts.infrastructure.database.migrations.runner import run_migrations

    applied = await run_migrations(settings.database.url)
"""

import importlib
import logging
from typing import Any, Callable

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

logger = logging.getLogger(__name__)

VERSIONS_PACKAGE = "cs_alerts.infrastructure.database.migrations.versions"

# Migration files in order (must be maintained manually)
MIGRATIONS = [
    "001_customer_alerts",
    "002_alert_status_function",
]


async def run_migrations(
    db_url: str,
    target_revision: str | None = None,
) -> list[str]:
    """Run pending migrations against the alert store.

    Args:
        db_url: Database connection URL (asyncpg format).
        target_revision: Optional revision to stop at. If None, runs all
            pending migrations.

    Returns:
        List of applied migration revision IDs.

    Raises:
        Exception: If any migration fails.
    """
    engine = create_async_engine(db_url, echo=False)

    try:
        await _ensure_version_table(engine)

        current_version = await _get_current_version(engine)
        logger.info("Current migration version: %s", current_version or "None")

        migrations_to_apply = _get_pending_migrations(current_version, target_revision)

        if not migrations_to_apply:
            logger.info("No pending migrations")
            return []

        logger.info(
            "Applying %d migrations: %s",
            len(migrations_to_apply),
            ", ".join(migrations_to_apply),
        )

        applied = []
        for revision in migrations_to_apply:
            await _apply_migration(engine, revision)
            applied.append(revision)
            logger.info("Applied migration: %s", revision)

        return applied

    finally:
        await engine.dispose()


async def _ensure_version_table(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.execute(
            text("""
                CREATE TABLE IF NOT EXISTS alembic_version (
                    version_num VARCHAR(128) NOT NULL,
                    CONSTRAINT alembic_version_pkc PRIMARY KEY (version_num)
                )
            """)
        )


async def _get_current_version(engine: AsyncEngine) -> str | None:
    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
        row = result.fetchone()
        return row[0] if row else None


def _get_pending_migrations(
    current_version: str | None,
    target_revision: str | None = None,
) -> list[str]:
    """Get list of migrations to apply.

    Args:
        current_version: Current database version.
        target_revision: Target revision to migrate to.

    Returns:
        List of revision IDs to apply in order. Empty if either version is
        unknown.
    """
    if current_version is None:
        start_idx = 0
    else:
        try:
            start_idx = MIGRATIONS.index(current_version) + 1
        except ValueError:
            logger.warning("Current version %s not in known migrations list", current_version)
            return []

    if target_revision:
        try:
            end_idx = MIGRATIONS.index(target_revision) + 1
        except ValueError:
            logger.warning("Target revision %s not found", target_revision)
            return []
    else:
        end_idx = len(MIGRATIONS)

    return MIGRATIONS[start_idx:end_idx]


def _load_upgrade(revision: str) -> Callable[[], None]:
    module_name = f"{VERSIONS_PACKAGE}.{revision}"
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ImportError(f"Cannot import migration {revision}: {e}") from e

    upgrade_fn = getattr(module, "upgrade", None)
    if upgrade_fn is None:
        raise ValueError(f"Migration {revision} has no upgrade() function")
    return upgrade_fn


async def _apply_migration(engine: AsyncEngine, revision: str) -> None:
    """Apply one migration and record it, in a single transaction."""
    upgrade_fn = _load_upgrade(revision)

    async with engine.begin() as conn:
        await conn.run_sync(_run_upgrade_sync, upgrade_fn)

        await conn.execute(text("DELETE FROM alembic_version"))
        await conn.execute(
            text("INSERT INTO alembic_version (version_num) VALUES (:version)"),
            {"version": revision},
        )


def _run_upgrade_sync(connection: Connection, upgrade_fn: Callable[[], None]) -> None:
    # alembic operations are sync and bound through a proxy context
    from alembic.operations import Operations
    from alembic.runtime.migration import MigrationContext

    context = MigrationContext.configure(connection)

    with context.begin_transaction():
        with Operations.context(context):
            upgrade_fn()


async def get_migration_status(db_url: str) -> dict[str, Any]:
    """Get migration status for the alert store.

    Args:
        db_url: Database connection URL.

    Returns:
        Dict with current version, pending migrations and up-to-date flag.
    """
    engine = create_async_engine(db_url, echo=False)

    try:
        await _ensure_version_table(engine)
        current_version = await _get_current_version(engine)
        pending = _get_pending_migrations(current_version)

        return {
            "current_version": current_version,
            "latest_version": MIGRATIONS[-1] if MIGRATIONS else None,
            "pending_migrations": pending,
            "is_up_to_date": len(pending) == 0,
        }
    finally:
        await engine.dispose()
