"""
Activity log model for the audit trail
"""
from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from radio_api.core.async_database import Base
from radio_api.db.models.enums import AuditAction

ACTION_CONSTRAINT_NAME = "activity_logs_action_check"


def action_check_sql() -> str:
    """SQL predicate restricting action to the AuditAction values"""
    allowed = ", ".join(f"'{value}'" for value in AuditAction.values())
    return f"action IN ({allowed})"


class ActivityLog(Base):
    """
    Append-only record of a security or administrative action
    """
    __tablename__ = "activity_logs"

    log_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)
    entity_type = Column(String(100), nullable=True)
    entity_id = Column(Integer, nullable=True)
    ip_address = Column(String(45), nullable=False)  # IPv4 or IPv6, or the system sentinel
    user_agent = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    log_metadata = Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint(action_check_sql(), name=ACTION_CONSTRAINT_NAME),
    )

    def __repr__(self):
        return f"<ActivityLog(log_id={self.log_id}, user_id={self.user_id}, action={self.action}, entity={self.entity_type})>"


Index("idx_activity_logs_user_id", ActivityLog.user_id)
Index("idx_activity_logs_action", ActivityLog.action)
Index("idx_activity_logs_created_at", ActivityLog.created_at.desc())
Index("idx_activity_logs_entity", ActivityLog.entity_type, ActivityLog.entity_id)
