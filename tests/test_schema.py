"""Tests for the activity log schema manager."""
from types import SimpleNamespace

import pytest
from sqlalchemy import Insert, TextClause, Update, inspect, text, update

from radio_api.core.async_database import build_engine
from radio_api.db.models.activity_log import ACTION_CONSTRAINT_NAME, action_check_sql
from radio_api.db.models.enums import AuditAction
from radio_api.db.models.schema_migration import SchemaMigration
from radio_api.db.schema import (
    ACTION_CONSTRAINT_VERSION,
    ensure_activity_log_schema,
    ensure_users_schema,
    migrate_action_constraint,
)

EXPECTED_INDEXES = {
    "idx_activity_logs_user_id",
    "idx_activity_logs_action",
    "idx_activity_logs_created_at",
    "idx_activity_logs_entity",
}


async def _table_sql(engine) -> str:
    async with engine.connect() as conn:
        result = await conn.execute(
            text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = 'activity_logs'")
        )
        return result.scalar_one()


async def _index_names(engine) -> set:
    async with engine.connect() as conn:
        indexes = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_indexes("activity_logs"))
    return {index["name"] for index in indexes}


async def _constraint_version(engine):
    async with engine.connect() as conn:
        result = await conn.execute(
            text("SELECT version FROM schema_migrations WHERE name = :name"),
            {"name": ACTION_CONSTRAINT_NAME}
        )
        return result.scalar_one_or_none()


async def test_creates_table_constraint_and_indexes(engine):
    assert await ensure_users_schema(engine)
    assert await ensure_activity_log_schema(engine)

    table_sql = await _table_sql(engine)
    assert ACTION_CONSTRAINT_NAME in table_sql
    assert "system_error" in table_sql
    assert await _index_names(engine) >= EXPECTED_INDEXES
    assert await _constraint_version(engine) == ACTION_CONSTRAINT_VERSION


async def test_is_idempotent(engine):
    assert await ensure_users_schema(engine)
    for _ in range(3):
        assert await ensure_activity_log_schema(engine)

    table_sql = await _table_sql(engine)
    assert table_sql.count(ACTION_CONSTRAINT_NAME) == 1
    assert await _index_names(engine) >= EXPECTED_INDEXES

    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT COUNT(*) FROM schema_migrations"))
        assert result.scalar_one() == 1


async def test_restores_missing_index(engine):
    assert await ensure_users_schema(engine)
    assert await ensure_activity_log_schema(engine)

    async with engine.begin() as conn:
        await conn.execute(text("DROP INDEX idx_activity_logs_action"))

    assert await ensure_activity_log_schema(engine)
    assert "idx_activity_logs_action" in await _index_names(engine)


async def test_records_version_bump_on_existing_table(engine):
    assert await ensure_users_schema(engine)
    assert await ensure_activity_log_schema(engine)

    async with engine.begin() as conn:
        await conn.execute(
            update(SchemaMigration)
            .where(SchemaMigration.name == ACTION_CONSTRAINT_NAME)
            .values(version=1)
        )

    assert await ensure_activity_log_schema(engine)
    assert await _constraint_version(engine) == ACTION_CONSTRAINT_VERSION


async def test_reports_failure_instead_of_raising(tmp_path):
    # Directory that does not exist: the database file cannot be opened
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'audit.db'}")
    try:
        assert await ensure_users_schema(engine) is False
        assert await ensure_activity_log_schema(engine) is False
    finally:
        await engine.dispose()


class RecordingConnection:
    """Connection double for a given dialect that keeps every executed statement"""

    def __init__(self, dialect_name: str, recorded_version=None):
        self.dialect = SimpleNamespace(name=dialect_name)
        self.recorded_version = recorded_version
        self.statements = []

    async def execute(self, statement, *args):
        self.statements.append(statement)
        return SimpleNamespace(scalar_one_or_none=lambda: self.recorded_version)

    @property
    def ddl(self) -> list:
        return [str(s) for s in self.statements if isinstance(s, TextClause)]


class TestPostgresConstraintMigration:
    async def test_replaces_stale_constraint(self):
        conn = RecordingConnection("postgresql", recorded_version=1)

        assert await migrate_action_constraint(conn, table_existed=True) is True

        assert conn.ddl == [
            f"ALTER TABLE activity_logs DROP CONSTRAINT IF EXISTS {ACTION_CONSTRAINT_NAME}",
            f"ALTER TABLE activity_logs ADD CONSTRAINT {ACTION_CONSTRAINT_NAME} CHECK ({action_check_sql()})",
        ]
        for action in AuditAction:
            assert f"'{action.value}'" in conn.ddl[1]
        assert isinstance(conn.statements[-1], Update)

    async def test_unrecorded_existing_table(self):
        conn = RecordingConnection("postgresql", recorded_version=None)

        assert await migrate_action_constraint(conn, table_existed=True) is True

        assert len(conn.ddl) == 2
        assert isinstance(conn.statements[-1], Insert)

    async def test_fresh_table_only_records_version(self):
        conn = RecordingConnection("postgresql", recorded_version=None)

        assert await migrate_action_constraint(conn, table_existed=False) is True

        assert conn.ddl == []
        assert isinstance(conn.statements[-1], Insert)

    @pytest.mark.parametrize("version", [ACTION_CONSTRAINT_VERSION, ACTION_CONSTRAINT_VERSION + 1])
    async def test_current_version_is_a_no_op(self, version):
        conn = RecordingConnection("postgresql", recorded_version=version)

        assert await migrate_action_constraint(conn, table_existed=True) is False

        # Only the version lookup ran
        assert len(conn.statements) == 1
        assert conn.ddl == []
