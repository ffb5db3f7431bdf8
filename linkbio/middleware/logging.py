"""
Logging Middleware for Request/Response Logging

Logs every HTTP request with:
- Request method and path
- Response status code
- Request processing time
- Client IP address

Query strings are not logged: tracking and search endpoints carry
handles and free text there.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from linkbio.core.request_security import get_request_ip

logger = logging.getLogger("linkbio")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Wraps the request/response cycle to log it without touching endpoint code."""

    async def dispatch(self, request: Request, call_next):
        client_ip = get_request_ip(request)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            process_time = time.perf_counter() - start_time
            logger.exception(
                f"{request.method} {request.url.path} failed after "
                f"{process_time*1000:.2f}ms IP:{client_ip}"
            )
            raise

        process_time = time.perf_counter() - start_time

        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
        logger.info(
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time*1000:.2f}ms "
            f"IP:{client_ip}"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response


def add_logging_middleware(app):
    app.add_middleware(LoggingMiddleware)
