"""
Activity log schemas
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from radio_api.db.models.activity_log import ActivityLog
from radio_api.db.schemas.pagination import PaginationMeta
from radio_api.utils.helpers import parse_date_bound, parse_optional_int

T = TypeVar("T")


class ActivityLogCreate(BaseModel):
    """
    Fields accepted by the log writer. The action is not validated
    here; the store's CHECK constraint is the single authority.
    """
    user_id: Optional[int] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    ip_address: str
    user_agent: Optional[str] = None
    metadata: Optional[Any] = None

    @field_validator("action", mode="before")
    @classmethod
    def enum_to_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value


class ActivityLogFilter(BaseModel):
    """
    Per-request query descriptor; absent fields impose no constraint
    """
    action: Optional[str] = None
    entity_type: Optional[str] = None
    user_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_query(
        cls,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        user_id: Any = None,
        start_date: Any = None,
        end_date: Any = None
    ) -> "ActivityLogFilter":
        """
        Build a filter from raw query-string values

        Malformed numbers and dates drop the corresponding constraint
        instead of failing the request. A date-only end_date covers the
        whole calendar day.
        """
        return cls(
            action=action or None,
            entity_type=entity_type or None,
            user_id=parse_optional_int(user_id),
            start_date=parse_date_bound(start_date),
            end_date=parse_date_bound(end_date, end_of_day=True),
        )


class ActivityLogRow(BaseModel):
    """
    Stored activity log joined with the acting user's identity
    """
    model_config = ConfigDict(from_attributes=True)

    log_id: int
    user_id: Optional[int] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    ip_address: str
    user_agent: Optional[str] = None
    metadata: Optional[Any] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_name: Optional[str] = None
    user_lastname: Optional[str] = None
    user_email: Optional[str] = None

    @classmethod
    def from_record(
        cls,
        log: ActivityLog,
        user_name: Optional[str] = None,
        user_lastname: Optional[str] = None,
        user_email: Optional[str] = None
    ) -> "ActivityLogRow":
        return cls(
            log_id=log.log_id,
            user_id=log.user_id,
            action=log.action,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            ip_address=log.ip_address,
            user_agent=log.user_agent,
            metadata=log.log_metadata,
            created_at=log.created_at,
            updated_at=log.updated_at,
            user_name=user_name,
            user_lastname=user_lastname,
            user_email=user_email,
        )

    @property
    def user(self) -> Optional[dict]:
        """Joined identity as a dict, or None when no user row matched"""
        if not (self.user_name or self.user_lastname or self.user_email):
            return None
        return {
            "user_name": self.user_name,
            "user_lastname": self.user_lastname,
            "user_email": self.user_email,
        }


class ActivityLogOut(ActivityLogRow):
    """
    Row as returned by the admin log viewer
    """
    description: str
    user_display: str


class ActivityLogPage(BaseModel):
    """
    One page of query results plus totals
    """
    model_config = ConfigDict(populate_by_name=True)

    logs: List[ActivityLogRow]
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., serialization_alias="totalPages")


class ActivityStat(BaseModel):
    """
    Number of actions of one kind on one calendar day
    """
    action: str
    date: date
    count: int


class ActivityLogList(BaseModel):
    logs: List[ActivityLogOut]
    pagination: PaginationMeta


class ActivityLogEnvelope(BaseModel, Generic[T]):
    """
    Response envelope used by the activity log endpoints
    """
    success: bool = True
    data: T
    message: str
