"""
Database enums
"""
import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration
    """
    USER = "user"
    ADMIN = "admin"

    def __str__(self):
        return self.value


class AuditAction(str, enum.Enum):
    """
    Actions accepted by the activity log.

    The store enforces this set with a CHECK constraint; bump
    ACTION_CONSTRAINT_VERSION in radio_api.db.schema whenever it changes.
    """
    LOGIN = "login"
    LOGOUT = "logout"
    LOGIN_FAILED = "login_failed"
    ACCESS_DENIED = "access_denied"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EDIT = "edit"
    SYSTEM_START = "system_start"
    SYSTEM_STOP = "system_stop"
    SYSTEM_ERROR = "system_error"

    def __str__(self):
        return self.value

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]
