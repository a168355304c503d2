"""Tests for the correlation ID middleware."""
import ast
import logging
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI

from radio_api.api.routers import health
from radio_api.middleware import correlation_id
from radio_api.middleware.correlation_id import CorrelationIDMiddleware

MIDDLEWARE_LOGGER = "radio_api.middleware.correlation_id"


@pytest.mark.parametrize("path,logged", [
    ("/api/health", False),
    ("/api/health/", False),
    ("/api/health/db", False),
    ("/api/docs", False),
    ("/", False),
    ("/api/healthy", True),
    ("/api/activity-log/", True),
    ("/api/activity-log/stats", True),
])
def test_should_log(path, logged):
    assert CorrelationIDMiddleware.should_log(path) is logged


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(CorrelationIDMiddleware)
    app.include_router(health.router, prefix="/api/health")

    @app.get("/api/podcasts")
    async def list_podcasts():
        return []

    return app


async def test_health_checks_are_not_logged(caplog):
    caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)
    transport = httpx.ASGITransport(app=build_app())

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        health_response = await client.get("/api/health/")
        podcasts_response = await client.get("/api/podcasts", headers={"X-Correlation-ID": "abc-123"})

    assert health_response.status_code == 200
    assert "x-correlation-id" in health_response.headers
    assert podcasts_response.headers["x-correlation-id"] == "abc-123"

    messages = [r.getMessage() for r in caplog.records if r.name == MIDDLEWARE_LOGGER]
    assert not any("/api/health" in message for message in messages)
    assert "Request started: GET /api/podcasts" in messages
    assert "Request completed: GET /api/podcasts - 200" in messages


def test_depends_only_on_utils():
    tree = ast.parse(Path(correlation_id.__file__).read_text())
    modules = [
        node.module for node in ast.walk(tree)
        if isinstance(node, ast.ImportFrom) and node.module
    ]
    internal = [module for module in modules if module.startswith("radio_api.")]

    assert internal
    assert all(module.startswith("radio_api.utils.") for module in internal)
