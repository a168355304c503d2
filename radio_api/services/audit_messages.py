"""
Message catalogs for activity log descriptions.

Spanish is the station's language and the fallback for any key a
catalog does not define.
"""
from typing import Optional

from radio_api.core.config import settings

DEFAULT_LANGUAGE = "es"
SUPPORTED_LANGUAGES = {
    "es": "Español",
    "en": "English",
}

SPANISH = {
    "ACTIONS": {
        "login": "Inició sesión{user_info}{path_info}",
        "logout": "Cerró sesión{path_info}",
        "login_failed": "Intento fallido de inicio de sesión con email {email}{reason_info}",
        "access_denied": "Acceso denegado{path_info}{reason_info}",
        "create": "Creó {entity}{id_info}{path_info}",
        "read": "Consultó {entity}{path_info}{query_info}",
        "update": "Actualizó {entity}{id_info}{path_info}{changes_info}",
        "delete": "Eliminó {entity}{id_info}{path_info}",
        "edit": "Editó {entity}{id_info}{path_info}",
        "system_start": "Sistema iniciado",
        "system_stop": "Sistema detenido",
        "system_error": "Error del sistema: {reason}",
        "fallback": "Acción {action}{entity_info}{id_info}{path_info}",
    },
    "PARTS": {
        "as_name": " como {name}",
        "with_email": " con email {email}",
        "from_path": " desde {path}",
        "at_path": " en {path}",
        "to_path": " a {path}",
        "paren_path": " ({path})",
        "on_entity": " en {entity}",
        "entity_id": " #{entity_id}",
        "reason": " - {reason}",
        "query": " con filtros: {query}",
        "changes": " - Cambios: {changes}",
        "unknown_email": "desconocido",
        "unknown_error": "Error desconocido",
        "resource": "recurso",
    },
    "CHANGES": {
        "no_details": "sin detalles",
        "no_changes": "sin cambios",
        "more": " y {count} más",
    },
    "USERS": {
        "full": "{name} ({email})",
        "by_id": "Usuario ID: {user_id}",
        "ip_suffix": " (IP: {ip})",
        "anonymous": "Usuario anónimo (IP: {ip})",
        "system": "Sistema",
    },
    "ENTITIES": {
        "program": "programa",
        "programs": "programas",
        "menu_item": "elemento de menú",
        "menu_items": "elementos de menú",
        "user": "usuario",
        "users": "usuarios",
        "podcast": "podcast",
        "podcasts": "podcasts",
        "news": "noticia",
        "news_item": "noticia",
        "contact": "contacto",
        "contacts": "contactos",
        "profile": "perfil",
        "password": "contraseña",
        "comment": "comentario",
        "comments": "comentarios",
    },
}

ENGLISH = {
    "ACTIONS": {
        "login": "Logged in{user_info}{path_info}",
        "logout": "Logged out{path_info}",
        "login_failed": "Failed login attempt with email {email}{reason_info}",
        "access_denied": "Access denied{path_info}{reason_info}",
        "create": "Created {entity}{id_info}{path_info}",
        "read": "Viewed {entity}{path_info}{query_info}",
        "update": "Updated {entity}{id_info}{path_info}{changes_info}",
        "delete": "Deleted {entity}{id_info}{path_info}",
        "edit": "Edited {entity}{id_info}{path_info}",
        "system_start": "System started",
        "system_stop": "System stopped",
        "system_error": "System error: {reason}",
        "fallback": "Action {action}{entity_info}{id_info}{path_info}",
    },
    "PARTS": {
        "as_name": " as {name}",
        "with_email": " with email {email}",
        "from_path": " from {path}",
        "at_path": " at {path}",
        "to_path": " to {path}",
        "paren_path": " ({path})",
        "on_entity": " on {entity}",
        "entity_id": " #{entity_id}",
        "reason": " - {reason}",
        "query": " with filters: {query}",
        "changes": " - Changes: {changes}",
        "unknown_email": "unknown",
        "unknown_error": "Unknown error",
        "resource": "resource",
    },
    "CHANGES": {
        "no_details": "no details",
        "no_changes": "no changes",
        "more": " and {count} more",
    },
    "USERS": {
        "full": "{name} ({email})",
        "by_id": "User ID: {user_id}",
        "ip_suffix": " (IP: {ip})",
        "anonymous": "Anonymous user (IP: {ip})",
        "system": "System",
    },
    "ENTITIES": {
        "program": "program",
        "programs": "programs",
        "menu_item": "menu item",
        "menu_items": "menu items",
        "user": "user",
        "users": "users",
        "podcast": "podcast",
        "podcasts": "podcasts",
        "news": "news item",
        "news_item": "news item",
        "contact": "contact",
        "contacts": "contacts",
        "profile": "profile",
        "password": "password",
        "comment": "comment",
        "comments": "comments",
    },
}

CATALOGS = {
    "es": SPANISH,
    "en": ENGLISH,
}


def resolve_language(locale: Optional[str] = None) -> str:
    """Pick a supported language: explicit locale, then settings, then the default"""
    for candidate in (locale, settings.AUDIT_LOCALE):
        if candidate:
            language = str(candidate).split("-")[0].split("_")[0].lower()
            if language in SUPPORTED_LANGUAGES:
                return language
    return DEFAULT_LANGUAGE


def get_text(section: str, key: str, locale: Optional[str] = None) -> str:
    """
    Look up a message, falling back to the default language

    Args:
        section: Catalog section (ACTIONS, PARTS, CHANGES, USERS)
        key: Message key within the section
        locale: Language code such as "es" or "en-US"

    Returns:
        The message template
    """
    catalog = CATALOGS[resolve_language(locale)]
    value = catalog.get(section, {}).get(key)
    if value is None:
        value = CATALOGS[DEFAULT_LANGUAGE][section][key]
    return value


def entity_names(locale: Optional[str] = None) -> dict:
    """Entity localization table, default-language entries filling any gaps"""
    names = dict(CATALOGS[DEFAULT_LANGUAGE]["ENTITIES"])
    names.update(CATALOGS[resolve_language(locale)]["ENTITIES"])
    return names
