"""
Activity log endpoints for the admin log viewer

Access control is attached by the application when mounting this
router. Every response, including errors, disables caching.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse

from radio_api.api.dependencies.pagination import get_pagination
from radio_api.core.config import settings
from radio_api.db.schemas.activity_log import (
    ActivityLogEnvelope,
    ActivityLogFilter,
    ActivityLogList,
    ActivityLogOut,
    ActivityLogRow,
    ActivityStat,
)
from radio_api.db.schemas.pagination import PaginationMeta, PaginationParams
from radio_api.db.utils.activity_log_crud import ActivityLogCRUD, get_activity_log_crud
from radio_api.services.audit_description import describe, format_user_info
from radio_api.utils.helpers import parse_optional_int, parse_positive_int

logger = logging.getLogger(__name__)

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _disable_cache(response: Response) -> None:
    for header, value in NO_CACHE_HEADERS.items():
        response.headers[header] = value


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "message": message},
        headers=NO_CACHE_HEADERS,
    )


def to_log_out(row: ActivityLogRow, locale: Optional[str] = None) -> ActivityLogOut:
    """Attach the rendered description and user display to a stored row"""
    return ActivityLogOut(
        **row.model_dump(),
        description=describe(row.action, row.entity_type, row.entity_id, row.metadata, locale),
        user_display=format_user_info(row.user, row.user_id, row.ip_address, locale),
    )


@router.get("/", response_model=ActivityLogEnvelope[ActivityLogList])
async def list_activity_logs(
    response: Response,
    action: Optional[str] = Query(None, description="Filter by action"),
    entity_type: Optional[str] = Query(None, alias="entityType", description="Filter by entity type"),
    user_id: Optional[str] = Query(None, alias="userId", description="Filter by acting user"),
    start_date: Optional[str] = Query(None, alias="startDate", description="Created at or after"),
    end_date: Optional[str] = Query(None, alias="endDate", description="Created at or before; a date covers the whole day"),
    lang: Optional[str] = Query(None, description="Description language (es, en)"),
    pagination: PaginationParams = Depends(get_pagination),
    store: ActivityLogCRUD = Depends(get_activity_log_crud)
):
    """
    List activity logs, newest first, with filters and pagination

    Query parameters:
    - action, entityType, userId: exact-match filters
    - startDate, endDate: ISO dates or timestamps, inclusive
    - page, limit: pagination window (invalid values fall back to defaults)
    - lang: language of the rendered descriptions
    """
    _disable_cache(response)

    filters = ActivityLogFilter.from_query(
        action=action,
        entity_type=entity_type,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
    )

    try:
        result = await store.query(pagination.page, pagination.limit, filters)
    except Exception as e:
        logger.error(f"Error getting activity logs: {e}", exc_info=True)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(e),
            "Error retrieving activity logs"
        )

    return ActivityLogEnvelope[ActivityLogList](
        data=ActivityLogList(
            logs=[to_log_out(row, lang) for row in result.logs],
            pagination=PaginationMeta.create(result.total, result.page, result.limit),
        ),
        message="Activity logs retrieved successfully",
    )


@router.get("/stats", response_model=ActivityLogEnvelope[list[ActivityStat]])
async def activity_stats(
    response: Response,
    days: Optional[str] = Query(None, description="Days back from today"),
    store: ActivityLogCRUD = Depends(get_activity_log_crud)
):
    """
    Count actions per day over the last `days` days
    """
    _disable_cache(response)

    try:
        stats = await store.get_stats(parse_positive_int(days, settings.AUDIT_STATS_DEFAULT_DAYS))
    except Exception as e:
        logger.error(f"Error getting activity stats: {e}", exc_info=True)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(e),
            "Error retrieving activity statistics"
        )

    return ActivityLogEnvelope[list[ActivityStat]](
        data=stats,
        message="Activity statistics retrieved successfully",
    )


@router.get("/{log_id}", response_model=ActivityLogEnvelope[ActivityLogOut])
async def get_activity_log(
    log_id: str,
    response: Response,
    lang: Optional[str] = Query(None, description="Description language (es, en)"),
    store: ActivityLogCRUD = Depends(get_activity_log_crud)
):
    """
    Get a single activity log by ID

    A malformed id is answered with 400 in the same envelope.
    """
    _disable_cache(response)

    parsed_id = parse_optional_int(log_id)
    if parsed_id is None:
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Invalid activity log id",
            f"Activity log id must be an integer, got {log_id!r}"
        )

    try:
        row = await store.get_by_id(parsed_id)
    except Exception as e:
        logger.error(f"Error getting activity log {log_id}: {e}", exc_info=True)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            str(e),
            "Error retrieving activity log"
        )

    if row is None:
        return _error_response(
            status.HTTP_404_NOT_FOUND,
            "Activity log not found",
            f"No activity log with id {log_id}"
        )

    return ActivityLogEnvelope[ActivityLogOut](
        data=to_log_out(row, lang),
        message="Activity log retrieved successfully",
    )
