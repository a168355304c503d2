"""
Record of applied schema migrations
"""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from radio_api.core.async_database import Base


class SchemaMigration(Base):
    """
    One row per named migration, holding the highest version applied
    """
    __tablename__ = "schema_migrations"

    name = Column(String(100), primary_key=True)
    version = Column(Integer, nullable=False)
    applied_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<SchemaMigration(name={self.name}, version={self.version})>"
