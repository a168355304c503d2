"""
Activity log persistence and queries
"""
import asyncio
from math import ceil
from datetime import date, datetime, time, timedelta
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from radio_api.core.async_database import AsyncSessionLocal
from radio_api.core.config import settings
from radio_api.core.exceptions import ActivityLogError
from radio_api.db.models.activity_log import ActivityLog
from radio_api.db.models.user import User
from radio_api.db.schemas.activity_log import (
    ActivityLogCreate,
    ActivityLogFilter,
    ActivityLogPage,
    ActivityLogRow,
    ActivityStat,
)
from radio_api.utils.helpers import parse_positive_int

# Store errors worth wrapping: driver/ORM failures and refused connections
STORE_ERRORS = (SQLAlchemyError, OSError)

# Largest OFFSET a 64-bit SQL integer holds; pages past it cannot have rows
MAX_SQL_OFFSET = 2 ** 63 - 1

# Primary keys are 32-bit INTEGER columns
MAX_LOG_ID = 2 ** 31 - 1


class ActivityLogCRUD:
    """
    Append-only store for activity logs

    Takes a session factory rather than a session: the page and count
    queries of query() run concurrently, each on its own session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def append(self, obj_in: ActivityLogCreate) -> ActivityLog:
        """
        Insert one activity log

        Args:
            obj_in: Fields of the new record

        Returns:
            Stored record with log_id and timestamps populated

        Raises:
            ActivityLogError: If the store rejects the insert
        """
        try:
            async with self.session_factory() as db:
                db_obj = ActivityLog(
                    user_id=obj_in.user_id,
                    action=obj_in.action,
                    entity_type=obj_in.entity_type,
                    entity_id=obj_in.entity_id,
                    ip_address=obj_in.ip_address,
                    user_agent=obj_in.user_agent,
                    log_metadata=obj_in.metadata,
                )
                db.add(db_obj)
                await db.flush()
                await db.refresh(db_obj)
                await db.commit()
                return db_obj
        except STORE_ERRORS as e:
            raise ActivityLogError(f"Error creating activity log: {e}") from e

    @staticmethod
    def _conditions(filters: ActivityLogFilter) -> list:
        conditions = []

        if filters.user_id is not None:
            conditions.append(ActivityLog.user_id == filters.user_id)

        if filters.action:
            conditions.append(ActivityLog.action == filters.action)

        if filters.entity_type:
            conditions.append(ActivityLog.entity_type == filters.entity_type)

        if filters.start_date is not None:
            conditions.append(ActivityLog.created_at >= filters.start_date)

        if filters.end_date is not None:
            conditions.append(ActivityLog.created_at <= filters.end_date)

        return conditions

    @staticmethod
    def _joined_select():
        return (
            select(ActivityLog, User.user_name, User.user_lastname, User.user_email)
            .outerjoin(User, ActivityLog.user_id == User.user_id)
        )

    async def _fetch_rows(self, stmt) -> List[ActivityLogRow]:
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [
                ActivityLogRow.from_record(log, user_name, user_lastname, user_email)
                for log, user_name, user_lastname, user_email in result.all()
            ]

    async def _count(self, stmt) -> int:
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return result.scalar_one()

    async def query(
        self,
        page: Any = None,
        limit: Any = None,
        filters: Optional[ActivityLogFilter] = None
    ) -> ActivityLogPage:
        """
        Get one page of activity logs, newest first

        Args:
            page: Page number; missing or invalid values become 1
            limit: Page size; missing or invalid values become the default,
                and values above AUDIT_MAX_PAGE_SIZE are clamped
            filters: Optional filter, fields combined with AND

        Returns:
            ActivityLogPage with rows, total and total_pages

        Raises:
            ActivityLogError: If either query fails
        """
        page = parse_positive_int(page, 1)
        limit = min(
            parse_positive_int(limit, settings.AUDIT_DEFAULT_PAGE_SIZE),
            settings.AUDIT_MAX_PAGE_SIZE
        )
        conditions = self._conditions(filters or ActivityLogFilter())
        offset = (page - 1) * limit

        count_stmt = select(func.count()).select_from(ActivityLog).where(*conditions)

        try:
            if offset > MAX_SQL_OFFSET:
                rows, total = [], await self._count(count_stmt)
            else:
                stmt = (
                    self._joined_select()
                    .where(*conditions)
                    .order_by(ActivityLog.created_at.desc(), ActivityLog.log_id.desc())
                    .offset(offset)
                    .limit(limit)
                )
                rows, total = await asyncio.gather(
                    self._fetch_rows(stmt),
                    self._count(count_stmt)
                )
        except STORE_ERRORS as e:
            raise ActivityLogError(f"Error getting activity logs: {e}") from e

        total_pages = ceil(total / limit)
        return ActivityLogPage(
            logs=rows,
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages
        )

    async def get_by_id(self, log_id: int) -> Optional[ActivityLogRow]:
        """
        Get a single activity log with its user identity

        Ids outside the key range simply match nothing.

        Raises:
            ActivityLogError: If the query fails
        """
        if not 0 < log_id <= MAX_LOG_ID:
            return None

        stmt = self._joined_select().where(ActivityLog.log_id == log_id)
        try:
            rows = await self._fetch_rows(stmt)
        except STORE_ERRORS as e:
            raise ActivityLogError(f"Error getting activity log by id: {e}") from e
        return rows[0] if rows else None

    async def get_stats(self, days: int = 30) -> List[ActivityStat]:
        """
        Count actions per calendar day

        Args:
            days: How many days back from today to include

        Returns:
            One entry per (action, day), newest day first, busiest action first

        Raises:
            ActivityLogError: If the query fails
        """
        today = date.today()
        days = min(days, (today - date.min).days)
        since = datetime.combine(today - timedelta(days=days), time.min)
        day = func.date(ActivityLog.created_at)
        count = func.count(ActivityLog.log_id)

        stmt = (
            select(ActivityLog.action, day.label("date"), count.label("count"))
            .where(ActivityLog.created_at >= since)
            .group_by(ActivityLog.action, day)
            .order_by(day.desc(), count.desc(), ActivityLog.action)
        )

        try:
            async with self.session_factory() as db:
                result = await db.execute(stmt)
                return [
                    ActivityStat(action=action, date=stat_day, count=stat_count)
                    for action, stat_day, stat_count in result.all()
                ]
        except STORE_ERRORS as e:
            raise ActivityLogError(f"Error getting activity stats: {e}") from e


# Create singleton instance
activity_log_crud = ActivityLogCRUD(AsyncSessionLocal)


def get_activity_log_crud() -> ActivityLogCRUD:
    """Dependency returning the shared activity log store"""
    return activity_log_crud
