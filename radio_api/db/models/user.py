"""
User database model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from radio_api.core.async_database import Base
from radio_api.db.models.enums import UserRole


class User(Base):
    """
    Platform user. Only the identity columns the activity log joins on
    are read here; registration and authentication live elsewhere.
    """
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True)
    user_name = Column(String(100), nullable=False)
    user_lastname = Column(String(100), nullable=False)
    user_email = Column(String(100), unique=True, nullable=False)
    user_password = Column(String(100), nullable=False)  # Hash, never plain text
    user_role = Column(String(50), default=UserRole.USER.value)
    user_status = Column(Boolean, default=True)

    user_created_at = Column(DateTime, server_default=func.now())
    user_updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User(user_id={self.user_id}, email={self.user_email}, role={self.user_role})>"
