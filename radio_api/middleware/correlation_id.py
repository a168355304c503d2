"""
Correlation ID middleware for request tracing with structured logging
"""
import uuid
import time
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from radio_api.utils.helpers import get_client_ip
from radio_api.utils.logger import context_filter

logger = logging.getLogger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Add a correlation ID to each request for tracing.

    The ID lands in request.state (and from there in activity log
    metadata), in the logging context, and in the response headers.
    """

    SKIP_PATHS = {"/", "/api/docs", "/api/redoc", "/api/openapi.json"}
    # Health router mounts "/" and "/db" under this prefix
    SKIP_PREFIXES = ("/api/health/",)

    @classmethod
    def should_log(cls, path: str) -> bool:
        """Whether request start/finish lines are logged for this path"""
        path = path.rstrip("/") or "/"
        if path in cls.SKIP_PATHS:
            return False
        return not f"{path}/".startswith(cls.SKIP_PREFIXES)

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        client_ip = get_client_ip(request)

        context_filter.set_context(
            request_id=correlation_id,
            client_ip=client_ip,
            method=request.method,
            endpoint=request.url.path
        )

        start_time = time.perf_counter()
        log_request = self.should_log(request.url.path)

        if log_request:
            logger.info(
                f"Request started: {request.method} {request.url.path}",
                extra={
                    "query_params": str(request.query_params) if request.query_params else None,
                    "user_agent": request.headers.get("User-Agent", "")[:100]
                }
            )

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers["X-Correlation-ID"] = correlation_id
            response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.2f}"

            if log_request:
                log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
                logger.log(
                    log_level,
                    f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                    extra={
                        "status_code": response.status_code,
                        "duration_ms": round(duration_ms, 2)
                    }
                )

            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url.path} - {type(e).__name__}",
                extra={
                    "duration_ms": round(duration_ms, 2),
                    "error": str(e)
                },
                exc_info=True
            )
            raise

        finally:
            context_filter.clear_context()
