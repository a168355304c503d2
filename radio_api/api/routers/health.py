"""
Health check endpoints
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from radio_api.core.async_database import get_db

router = APIRouter()


@router.get("/")
async def health_check():
    """
    Basic health check endpoint
    """
    return {
        "status": "healthy",
        "message": "Service is running"
    }


@router.get("/db")
async def database_health(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Check database connectivity and schema bootstrap progress
    """
    bootstrap = getattr(request.app.state, "schema_bootstrap", None)
    schema = dict(bootstrap.results) if bootstrap is not None else {}

    try:
        await db.execute(text("SELECT 1"))
        return {
            "status": "healthy" if all(schema.values()) else "degraded",
            "database": "connected",
            "schema": schema
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "schema": schema,
            "error": str(e)
        }
