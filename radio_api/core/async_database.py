"""
Async Database Configuration and Session Management
"""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    AsyncSession,
    async_sessionmaker
)
from sqlalchemy.orm import DeclarativeBase
from typing import AsyncGenerator
import logging
import ssl

from radio_api.core.config import settings

logger = logging.getLogger(__name__)


def get_database_url(url: str) -> str:
    """
    Strip the sslmode parameter, which asyncpg does not understand
    """
    if "?" in url:
        base_url, params = url.split("?", 1)
        params_list = [p for p in params.split("&") if not p.startswith("sslmode=")]
        if params_list:
            url = f"{base_url}?{'&'.join(params_list)}"
        else:
            url = base_url

    return url


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL

    Pool sizing and SSL only apply to server databases; SQLite URLs
    (used by the test suite) get a plain engine.
    """
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    engine_kwargs = {
        "echo": echo,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }

    if "sslmode=require" in url or "ssl=" in url:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE

        engine_kwargs["connect_args"] = {
            "ssl": ssl_context,
            "server_settings": {
                "application_name": settings.PROJECT_NAME
            }
        }

    return create_async_engine(get_database_url(url), **engine_kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)

AsyncSessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """
    Base class for all database models
    """
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database session

    Usage:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_db() -> None:
    """
    Close database connections
    """
    await engine.dispose()
    logger.info("Database connections closed")
