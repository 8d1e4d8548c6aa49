"""
Request middleware for logging, timing, request ID and actor tracking.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from service_booking.core.context import reset_current_actor_id, set_current_actor_id
from service_booking.core.logging import get_logger

logger = get_logger(__name__)

ACTOR_HEADER = "X-Actor-Id"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Assigns a unique request ID to each request
    2. Reads the acting user id forwarded by the auth layer (X-Actor-Id)
       into the request-scoped actor context used for audit attribution
    3. Logs request method, path, status code, and duration
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        raw_actor = request.headers.get(ACTOR_HEADER)
        actor_id = None
        if raw_actor:
            try:
                actor_id = int(raw_actor)
            except ValueError:
                return JSONResponse(
                    status_code=400,
                    content={"error": "bad_request", "reason": "invalid_actor_header", "message": f"{ACTOR_HEADER} must be an integer"},
                )

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            actor_id=actor_id,
        )
        token = set_current_actor_id(actor_id)

        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration_ms}ms"
            return response

        except Exception as e:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.error(
                "request_failed",
                error=str(e),
                duration_ms=duration_ms,
            )
            raise
        finally:
            reset_current_actor_id(token)
