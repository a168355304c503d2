"""
Idempotent schema management for the audit tables

Every step runs in its own transaction, so a failure while building
indexes never undoes the table creation before it. Errors are logged
and reported through the return value; nothing here raises.
"""
import logging

from sqlalchemy import inspect, select, text, update
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from radio_api.core.async_database import Base
from radio_api.db.models.activity_log import (
    ACTION_CONSTRAINT_NAME,
    ActivityLog,
    action_check_sql,
)
from radio_api.db.models.schema_migration import SchemaMigration
from radio_api.db.models.user import User

logger = logging.getLogger(__name__)

# Bump whenever AuditAction gains or loses a member
ACTION_CONSTRAINT_VERSION = 2


def _has_table(sync_conn, table_name: str) -> bool:
    return inspect(sync_conn).has_table(table_name)


async def ensure_users_schema(engine: AsyncEngine) -> bool:
    """
    Create the users table if it does not exist

    Returns:
        True when the table is in place, False if creation failed
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=[User.__table__])
        logger.info('Table "users" created/verified')
        return True
    except Exception as e:
        logger.error(f"Error creating table users: {e}", exc_info=True)
        return False


async def _get_migration_version(conn: AsyncConnection, name: str):
    result = await conn.execute(
        select(SchemaMigration.version).where(SchemaMigration.name == name)
    )
    return result.scalar_one_or_none()


async def _record_migration_version(conn: AsyncConnection, name: str, version: int, previous) -> None:
    if previous is None:
        await conn.execute(SchemaMigration.__table__.insert().values(name=name, version=version))
    else:
        await conn.execute(
            update(SchemaMigration).where(SchemaMigration.name == name).values(version=version)
        )


async def migrate_action_constraint(conn: AsyncConnection, table_existed: bool) -> bool:
    """
    Bring the action CHECK constraint up to ACTION_CONSTRAINT_VERSION

    A table created in this run already carries the current constraint,
    so only the version is recorded. A pre-existing table has its
    constraint dropped and re-added once per version bump.

    Returns:
        True if the migration was applied, False if it was already current
    """
    current = await _get_migration_version(conn, ACTION_CONSTRAINT_NAME)
    if current is not None and current >= ACTION_CONSTRAINT_VERSION:
        return False

    if table_existed:
        if conn.dialect.name == "postgresql":
            await conn.execute(text(
                f"ALTER TABLE {ActivityLog.__tablename__} "
                f"DROP CONSTRAINT IF EXISTS {ACTION_CONSTRAINT_NAME}"
            ))
            await conn.execute(text(
                f"ALTER TABLE {ActivityLog.__tablename__} "
                f"ADD CONSTRAINT {ACTION_CONSTRAINT_NAME} CHECK ({action_check_sql()})"
            ))
        else:
            logger.warning(
                f"Dialect {conn.dialect.name} cannot alter constraints; "
                f"keeping the existing {ACTION_CONSTRAINT_NAME}"
            )

    await _record_migration_version(conn, ACTION_CONSTRAINT_NAME, ACTION_CONSTRAINT_VERSION, current)
    return True


async def ensure_activity_log_schema(engine: AsyncEngine) -> bool:
    """
    Create or evolve the activity_logs table, its constraint and indexes

    Safe to call repeatedly and from several processes at once.

    Returns:
        True when every step succeeded, False if any step failed
    """
    try:
        async with engine.begin() as conn:
            table_existed = await conn.run_sync(_has_table, ActivityLog.__tablename__)
            await conn.run_sync(
                Base.metadata.create_all,
                tables=[SchemaMigration.__table__, ActivityLog.__table__]
            )
        logger.info('Table "activity_logs" created/verified')
    except Exception as e:
        logger.error(f"Error creating table activity_logs: {e}", exc_info=True)
        return False

    ok = True

    try:
        async with engine.begin() as conn:
            if await migrate_action_constraint(conn, table_existed):
                logger.info(f"Action constraint updated to version {ACTION_CONSTRAINT_VERSION}")
    except Exception as e:
        logger.error(f"Error updating action constraint: {e}", exc_info=True)
        ok = False

    try:
        async with engine.begin() as conn:
            for index in sorted(ActivityLog.__table__.indexes, key=lambda ix: ix.name):
                await conn.run_sync(index.create, checkfirst=True)
        logger.info("Indexes for activity_logs created/verified")
    except Exception as e:
        logger.error(f"Error creating indexes for activity_logs: {e}", exc_info=True)
        ok = False

    return ok
