import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("access")

def describe_caller(request: Request) -> str:
    """User id and role set by get_current_user, or anonymous"""
    user = getattr(request.state, "current_user", None)
    if user is None:
        return "anonymous"
    return f"user {user.id} ({user.role})"

def describe_scope(request: Request) -> str:
    """Event and warehouse a request targets, when given in the query"""
    parts = [
        f"{key}={request.query_params[key]}"
        for key in ("event_id", "warehouse_code")
        if key in request.query_params
    ]
    return f" [{' '.join(parts)}]" if parts else ""

class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log line per request with the authenticated caller"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        client_host = request.client.host if request.client else "unknown"

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        icon = "⚠️" if response.status_code >= 400 else "✅"
        logger.log(
            level,
            f"{icon} {request.method} {request.url.path}{describe_scope(request)} - "
            f"Status: {response.status_code} - "
            f"Caller: {describe_caller(request)} from {client_host} - "
            f"Time: {process_time:.4f}s"
        )

        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response
