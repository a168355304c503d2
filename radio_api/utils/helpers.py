"""
General helper utilities
"""
from datetime import date, datetime, time
from typing import Any, Optional
import json

from starlette.requests import Request

UNKNOWN_IP = "unknown"

# Last instant of a calendar day, at the millisecond resolution clients send
END_OF_DAY = time(23, 59, 59, 999000)


def parse_positive_int(value: Any, default: int) -> int:
    """
    Coerce a query value to a positive integer

    Args:
        value: Raw value (string, int or None)
        default: Value used when the input is missing or invalid

    Returns:
        Parsed integer, or default
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def parse_optional_int(value: Any) -> Optional[int]:
    """Parse an integer, returning None for missing or malformed input"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def parse_date_bound(value: Any, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a date filter boundary

    A bare date (``2024-05-01``) becomes midnight, or 23:59:59.999 of
    that day when ``end_of_day`` is set. A full timestamp is kept as is.
    Malformed input yields None so the filter is simply not applied.

    Args:
        value: ISO date/datetime string, date or datetime
        end_of_day: Push date-only values to the last instant of the day

    Returns:
        Naive datetime or None
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, END_OF_DAY if end_of_day else time.min)
    else:
        text = str(value).strip()
        try:
            if len(text) == 10:
                day = date.fromisoformat(text)
                return datetime.combine(day, END_OF_DAY if end_of_day else time.min)
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        # Stored timestamps are naive local time
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def serialize_compact(data: Any) -> str:
    """
    Serialize to compact JSON, keeping non-ASCII text readable

    Args:
        data: JSON-compatible value

    Returns:
        JSON string without insignificant whitespace
    """
    return json.dumps(data, default=str, ensure_ascii=False, separators=(",", ":"))


def get_client_ip(request: Request) -> str:
    """
    Resolve the client IP behind proxies

    Order: first X-Forwarded-For entry, X-Real-IP, socket peer.
    """
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.headers.get("X-Real-IP", "")
    if not client_ip and request.client:
        client_ip = request.client.host
    return client_ip or UNKNOWN_IP
