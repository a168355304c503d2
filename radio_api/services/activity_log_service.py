"""
Activity logging service

Every write here is a non-fatal side effect: a failed audit write is
logged and swallowed so it never aborts the action it documents.
Callers that need the error use activity_log_crud.append directly.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Depends, Request

from radio_api.core.config import settings
from radio_api.db.models.activity_log import ActivityLog
from radio_api.db.models.enums import AuditAction
from radio_api.db.schemas.activity_log import ActivityLogCreate
from radio_api.db.utils.activity_log_crud import ActivityLogCRUD, activity_log_crud
from radio_api.utils.helpers import get_client_ip, parse_optional_int

logger = logging.getLogger(__name__)

METHOD_ACTIONS = {
    "POST": AuditAction.CREATE,
    "GET": AuditAction.READ,
    "PUT": AuditAction.UPDATE,
    "PATCH": AuditAction.UPDATE,
    "DELETE": AuditAction.DELETE,
}


def action_for_method(method: str) -> Optional[AuditAction]:
    """Map an HTTP method to the CRUD action it performs"""
    return METHOD_ACTIONS.get(method.upper())


def _user_value(user: Any, *names: str) -> Any:
    for name in names:
        value = user.get(name) if isinstance(user, dict) else getattr(user, name, None)
        if value is not None:
            return value
    return None


class ActivityLogService:
    """Service for recording audit events"""

    def __init__(self, store: ActivityLogCRUD):
        self.store = store

    async def log_action(
        self,
        action: AuditAction | str,
        ip_address: str,
        user_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        user_agent: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[ActivityLog]:
        """
        Record an action without ever raising

        Args:
            action: One of AuditAction
            ip_address: Client IP, or the system sentinel
            user_id: Acting user
            entity_type: Type of entity affected
            entity_id: ID of affected entity
            user_agent: Client user agent
            metadata: Action-specific context

        Returns:
            The stored record, or None if logging is disabled or failed
        """
        if not settings.AUDIT_LOG_ENABLED:
            return None

        try:
            record = await self.store.append(ActivityLogCreate(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                ip_address=ip_address,
                user_agent=user_agent,
                metadata=metadata,
            ))
        except Exception as e:
            logger.warning(
                f"Activity log write failed (non-critical): {e}",
                extra={"action": str(action), "entity_type": entity_type}
            )
            return None

        logger.debug(
            f"Activity logged: {record.action}",
            extra={"log_id": record.log_id, "action": record.action}
        )
        return record

    async def log_request(
        self,
        request: Request,
        action: AuditAction | str,
        user_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[ActivityLog]:
        """
        Record an action taken through an HTTP request

        Client IP, user agent, method, path and correlation id are taken
        from the request; explicit metadata keys win over them.
        """
        context = {
            "method": request.method,
            "path": request.url.path,
        }
        correlation_id = getattr(request.state, "correlation_id", None)
        if correlation_id:
            context["correlation_id"] = correlation_id
        if metadata:
            context.update(metadata)

        return await self.log_action(
            action=action,
            ip_address=get_client_ip(request),
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            user_agent=request.headers.get("user-agent"),
            metadata=context,
        )

    # Authentication events

    async def log_login(self, user: Any, request: Request) -> Optional[ActivityLog]:
        """Record a successful login"""
        return await self.log_request(
            request,
            AuditAction.LOGIN,
            user_id=_user_value(user, "user_id", "id"),
            metadata={
                "email": _user_value(user, "user_email", "email"),
                "name": _user_value(user, "user_name", "name"),
            },
        )

    async def log_logout(self, user_id: Optional[int], request: Request) -> Optional[ActivityLog]:
        """Record a logout"""
        return await self.log_request(request, AuditAction.LOGOUT, user_id=user_id)

    async def log_failed_attempt(
        self,
        email: Optional[str],
        request: Request,
        reason: Optional[str] = None
    ) -> Optional[ActivityLog]:
        """Record a failed login attempt"""
        return await self.log_request(
            request,
            AuditAction.LOGIN_FAILED,
            metadata={"attempted_email": email, "reason": reason},
        )

    async def log_access_denied(
        self,
        user: Any,
        request: Request,
        reason: Optional[str] = None
    ) -> Optional[ActivityLog]:
        """Record a request refused for lack of permissions"""
        return await self.log_request(
            request,
            AuditAction.ACCESS_DENIED,
            user_id=_user_value(user, "user_id", "id") if user is not None else None,
            metadata={
                "reason": reason,
                "attempted_email": _user_value(user, "user_email", "email") if user is not None else None,
            },
        )

    # System events

    async def log_system_start(self) -> Optional[ActivityLog]:
        return await self.log_action(
            AuditAction.SYSTEM_START,
            ip_address=settings.AUDIT_SYSTEM_IP,
            metadata={"version": settings.VERSION},
        )

    async def log_system_stop(self) -> Optional[ActivityLog]:
        return await self.log_action(AuditAction.SYSTEM_STOP, ip_address=settings.AUDIT_SYSTEM_IP)

    async def log_system_error(self, reason: str) -> Optional[ActivityLog]:
        return await self.log_action(
            AuditAction.SYSTEM_ERROR,
            ip_address=settings.AUDIT_SYSTEM_IP,
            metadata={"reason": reason},
        )


# Create singleton instance
activity_log_service = ActivityLogService(activity_log_crud)


def get_activity_log_service() -> ActivityLogService:
    """Dependency returning the shared activity log service"""
    return activity_log_service


def _entity_id_from_path(request: Request) -> Optional[int]:
    params = request.path_params
    if "id" in params:
        return parse_optional_int(params["id"])
    for name, value in params.items():
        if name.endswith("_id"):
            return parse_optional_int(value)
    return None


def audit_action(entity_type: Optional[str] = None, action: Optional[AuditAction] = None):
    """
    Dependency factory that records the request once the response is sent

    The action defaults to the one implied by the HTTP method. The
    acting user id is read from request.state.user_id when the
    authentication layer sets it. For updates, the JSON body is not
    read here; pass changes through log_request when they matter.

    Example:
        @router.delete("/{id}", dependencies=[Depends(audit_action("podcast"))])
        async def delete_podcast(id: int):
            ...
    """
    async def recorder(
        request: Request,
        background_tasks: BackgroundTasks,
        service: ActivityLogService = Depends(get_activity_log_service)
    ) -> None:
        resolved = action or action_for_method(request.method)
        if resolved is None:
            return

        background_tasks.add_task(
            service.log_request,
            request,
            resolved,
            user_id=getattr(request.state, "user_id", None),
            entity_type=entity_type,
            entity_id=_entity_id_from_path(request),
        )

    return recorder
