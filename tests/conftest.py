"""Pytest configuration and fixtures."""
from datetime import datetime

import pytest
import pytest_asyncio

from radio_api.core.async_database import build_engine, build_session_factory
from radio_api.db.models.activity_log import ActivityLog
from radio_api.db.models.user import User
from radio_api.db.schema import ensure_activity_log_schema, ensure_users_schema
from radio_api.db.utils.activity_log_crud import ActivityLogCRUD


@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    Engine on a throwaway SQLite file.

    A file rather than :memory: so the concurrent page/count queries,
    which open separate connections, see the same database.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'activity.db'}")
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def schema_engine(engine):
    """Engine with users and activity_logs in place."""
    assert await ensure_users_schema(engine)
    assert await ensure_activity_log_schema(engine)
    return engine


@pytest.fixture
def session_factory(schema_engine):
    return build_session_factory(schema_engine)


@pytest.fixture
def store(session_factory):
    return ActivityLogCRUD(session_factory)


@pytest.fixture
def make_log(session_factory):
    """Insert an activity log directly, with control over created_at."""
    async def _make_log(
        action: str = "read",
        created_at: datetime = None,
        ip_address: str = "127.0.0.1",
        **fields
    ) -> ActivityLog:
        async with session_factory() as db:
            log = ActivityLog(action=action, ip_address=ip_address, **fields)
            if created_at is not None:
                log.created_at = created_at
            db.add(log)
            await db.commit()
            await db.refresh(log)
            return log

    return _make_log


@pytest.fixture
def make_user(session_factory):
    async def _make_user(
        user_name: str = "Ana",
        user_lastname: str = "Pérez",
        user_email: str = "ana@radio.test"
    ) -> User:
        async with session_factory() as db:
            user = User(
                user_name=user_name,
                user_lastname=user_lastname,
                user_email=user_email,
                user_password="not-a-real-hash",
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

    return _make_user
