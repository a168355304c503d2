"""
Sentry error tracking integration
"""
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from radio_api.core.config import settings


def init_sentry():
    """Initialize Sentry error tracking"""
    if not settings.SENTRY_ENABLED or not settings.SENTRY_DSN:
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        # Audit metadata carries emails and IPs
        send_default_pii=False,
    )


def capture_message(message: str, context: Optional[dict] = None, level: str = "error"):
    """
    Send a message to Sentry

    Args:
        message: Message text
        context: Additional context dict
        level: Sentry level name
    """
    if not settings.SENTRY_ENABLED:
        return

    with sentry_sdk.new_scope() as scope:
        if context:
            for key, value in context.items():
                scope.set_context(key, value)
        sentry_sdk.capture_message(message, level=level)
