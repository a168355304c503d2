"""
Human-readable descriptions of activity log records

Everything here is pure: no I/O, and every public function returns a
string for any input. Dispatch goes through a closed table keyed by
AuditAction, with a generic sentence for anything outside the enum.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from radio_api.core.config import settings
from radio_api.db.models.enums import AuditAction
from radio_api.services.audit_messages import entity_names, get_text
from radio_api.utils.helpers import serialize_compact

logger = logging.getLogger(__name__)

MAX_CHANGES_SHOWN = 3
MAX_CHANGE_VALUE_LENGTH = 30


@dataclass
class _Context:
    action: Any
    entity_type: Any
    entity_id: Any
    metadata: Dict[str, Any] = field(default_factory=dict)
    locale: Optional[str] = None

    def text(self, section: str, key: str, **values) -> str:
        template = get_text(section, key, self.locale)
        return template.format(**values) if values else template

    def part(self, key: str, **values) -> str:
        return self.text("PARTS", key, **values)

    def path_info(self, key: str) -> str:
        path = self.metadata.get("path")
        return self.part(key, path=path) if path else ""

    def reason_info(self) -> str:
        reason = self.metadata.get("reason")
        return self.part("reason", reason=reason) if reason else ""

    def id_info(self) -> str:
        return self.part("entity_id", entity_id=self.entity_id) if _present(self.entity_id) else ""

    def entity(self) -> str:
        if not self.entity_type:
            return self.part("resource")
        return entity_display_name(self.entity_type, self.locale)


def _present(value: Any) -> bool:
    return value is not None and value != ""


def entity_display_name(entity_type: Any, locale: Optional[str] = None) -> str:
    """
    Localize an entity type, falling back to the raw value when unmapped

    Args:
        entity_type: Entity type such as "podcast" or "menu_item"
        locale: Language code

    Returns:
        Localized entity noun
    """
    if entity_type is None:
        return ""
    raw = str(entity_type)
    return entity_names(locale).get(raw.lower(), raw)


def format_changes(changes: Any, locale: Optional[str] = None) -> str:
    """
    Summarize a changes mapping for an update description

    Shows at most the first three entries in insertion order, truncates
    long string values, and counts the remainder.

    Args:
        changes: Mapping of field name to new value
        locale: Language code

    Returns:
        Summary such as "title: Morning show, active: true and 2 more"
    """
    if not isinstance(changes, Mapping):
        return get_text("CHANGES", "no_details", locale)

    if not changes:
        return get_text("CHANGES", "no_changes", locale)

    entries = []
    for key in list(changes)[:MAX_CHANGES_SHOWN]:
        value = changes[key]
        if isinstance(value, str):
            if len(value) > MAX_CHANGE_VALUE_LENGTH:
                value = value[:MAX_CHANGE_VALUE_LENGTH] + "..."
        else:
            value = serialize_compact(value)
        entries.append(f"{key}: {value}")

    summary = ", ".join(entries)
    remaining = len(changes) - MAX_CHANGES_SHOWN
    if remaining > 0:
        summary += get_text("CHANGES", "more", locale).format(count=remaining)
    return summary


def _user_field(user: Any, name: str) -> Any:
    if user is None:
        return None
    if isinstance(user, Mapping):
        return user.get(name)
    return getattr(user, name, None)


def format_user_info(
    user: Any = None,
    user_id: Any = None,
    ip_address: Optional[str] = None,
    locale: Optional[str] = None
) -> str:
    """
    Describe who performed an action

    Args:
        user: Mapping or object with user_name, user_lastname, user_email
        user_id: Acting user's id when no identity is available
        ip_address: Client IP; the system sentinel means no client
        locale: Language code

    Returns:
        "Name Lastname (email)", the email, the name, "User ID: n",
        an anonymous-user string with the IP, or "System"
    """
    name = _user_field(user, "user_name")
    lastname = _user_field(user, "user_lastname")
    email = _user_field(user, "user_email")

    if name and email:
        full_name = f"{name} {lastname}" if lastname else name
        return get_text("USERS", "full", locale).format(name=full_name, email=email)

    if email:
        return str(email)

    if name:
        return str(name)

    if _present(user_id):
        text = get_text("USERS", "by_id", locale).format(user_id=user_id)
        if ip_address:
            text += get_text("USERS", "ip_suffix", locale).format(ip=ip_address)
        return text

    if ip_address and ip_address != settings.AUDIT_SYSTEM_IP:
        return get_text("USERS", "anonymous", locale).format(ip=ip_address)

    return get_text("USERS", "system", locale)


def _render_login(ctx: _Context) -> str:
    name = ctx.metadata.get("name")
    email = ctx.metadata.get("email")
    if name:
        user_info = ctx.part("as_name", name=name)
    elif email:
        user_info = ctx.part("with_email", email=email)
    else:
        user_info = ""
    return ctx.text("ACTIONS", "login", user_info=user_info, path_info=ctx.path_info("from_path"))


def _render_logout(ctx: _Context) -> str:
    return ctx.text("ACTIONS", "logout", path_info=ctx.path_info("from_path"))


def _render_login_failed(ctx: _Context) -> str:
    email = (
        ctx.metadata.get("attempted_email")
        or ctx.metadata.get("email")
        or ctx.part("unknown_email")
    )
    return ctx.text("ACTIONS", "login_failed", email=email, reason_info=ctx.reason_info())


def _render_access_denied(ctx: _Context) -> str:
    return ctx.text(
        "ACTIONS", "access_denied",
        path_info=ctx.path_info("to_path"),
        reason_info=ctx.reason_info()
    )


def _entity_renderer(key: str, path_key: str) -> Callable[[_Context], str]:
    def render(ctx: _Context) -> str:
        return ctx.text(
            "ACTIONS", key,
            entity=ctx.entity(),
            id_info=ctx.id_info(),
            path_info=ctx.path_info(path_key)
        )
    return render


def _render_update(ctx: _Context) -> str:
    changes = ctx.metadata.get("changes")
    changes_info = ""
    if changes is not None:
        changes_info = ctx.part("changes", changes=format_changes(changes, ctx.locale))
    return ctx.text(
        "ACTIONS", "update",
        entity=ctx.entity(),
        id_info=ctx.id_info(),
        path_info=ctx.path_info("at_path"),
        changes_info=changes_info
    )


def _render_read(ctx: _Context) -> str:
    query = ctx.metadata.get("query")
    query_info = ""
    if isinstance(query, Mapping) and query:
        query_info = ctx.part("query", query=serialize_compact(dict(query)))
    return ctx.text(
        "ACTIONS", "read",
        entity=ctx.entity(),
        path_info=ctx.path_info("from_path"),
        query_info=query_info
    )


def _render_system_error(ctx: _Context) -> str:
    reason = ctx.metadata.get("reason") or ctx.part("unknown_error")
    return ctx.text("ACTIONS", "system_error", reason=reason)


def _render_fallback(ctx: _Context) -> str:
    action = ctx.action.value if isinstance(ctx.action, AuditAction) else ctx.action
    entity_info = ctx.part("on_entity", entity=ctx.entity_type) if ctx.entity_type else ""
    return ctx.text(
        "ACTIONS", "fallback",
        action=action,
        entity_info=entity_info,
        id_info=ctx.id_info(),
        path_info=ctx.path_info("paren_path")
    )


_RENDERERS: Dict[AuditAction, Callable[[_Context], str]] = {
    AuditAction.LOGIN: _render_login,
    AuditAction.LOGOUT: _render_logout,
    AuditAction.LOGIN_FAILED: _render_login_failed,
    AuditAction.ACCESS_DENIED: _render_access_denied,
    AuditAction.CREATE: _entity_renderer("create", "at_path"),
    AuditAction.READ: _render_read,
    AuditAction.UPDATE: _render_update,
    AuditAction.DELETE: _entity_renderer("delete", "from_path"),
    AuditAction.EDIT: _entity_renderer("edit", "at_path"),
    AuditAction.SYSTEM_START: lambda ctx: ctx.text("ACTIONS", "system_start"),
    AuditAction.SYSTEM_STOP: lambda ctx: ctx.text("ACTIONS", "system_stop"),
    AuditAction.SYSTEM_ERROR: _render_system_error,
}

_missing = set(AuditAction) - set(_RENDERERS)
if _missing:
    raise RuntimeError(f"No description renderer for actions: {sorted(a.value for a in _missing)}")


def _as_action(action: Any) -> Optional[AuditAction]:
    try:
        return AuditAction(action)
    except (ValueError, TypeError):
        return None


def describe(
    action: Any,
    entity_type: Any = None,
    entity_id: Any = None,
    metadata: Any = None,
    locale: Optional[str] = None
) -> str:
    """
    Render an activity log as a sentence

    Args:
        action: AuditAction or raw action string
        entity_type: Affected resource kind
        entity_id: Affected resource id
        metadata: Action-specific context (path, email, reason, changes, query)
        locale: Language code; defaults to AUDIT_LOCALE

    Returns:
        Localized description; unknown actions and malformed metadata
        still produce a sentence
    """
    ctx = _Context(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        locale=locale,
    )

    known = _as_action(action)
    try:
        if known is not None:
            return _RENDERERS[known](ctx)
        return _render_fallback(ctx)
    except Exception:
        logger.debug(f"Could not describe action {action!r}", exc_info=True)

    try:
        return _render_fallback(ctx)
    except Exception:
        return f"{action}"
