"""
Request Security Helpers

Origin checks for state-changing endpoints, client IP extraction, and
the authenticated user dependency.

Authentication itself is handled by the upstream auth provider; by the
time a request reaches this service the provider has verified the
session and forwarded the user id in the X-User-Id header.
"""

from typing import Optional
from urllib.parse import urlsplit

from fastapi import Request

from linkbio.core.exceptions import CrossOriginError, UnauthorizedError

USER_ID_HEADER = "X-User-Id"


def _parse_origin(value: Optional[str]) -> Optional[str]:
    if not value:
        return None

    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return None

    if not parts.scheme or not parts.netloc:
        return None

    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def is_same_origin_request(request: Request) -> bool:
    """
    Check the Origin and Referer headers against the request's own origin.

    Requests without either header (server-to-server calls, curl) pass.
    """
    request_origin = _parse_origin(str(request.base_url))
    origin_header = _parse_origin(request.headers.get("origin"))
    referer_header = _parse_origin(request.headers.get("referer"))

    if not origin_header and not referer_header:
        return True

    if origin_header and origin_header != request_origin:
        return False

    if referer_header and referer_header != request_origin:
        return False

    return True


def reject_cross_origin(request: Request) -> None:
    """Dependency for POST endpoints: raises CrossOriginError on foreign origins."""
    if not is_same_origin_request(request):
        raise CrossOriginError()


def get_request_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    return request.client.host if request.client else "unknown"


def get_current_user_id(request: Request) -> str:
    """Dependency returning the authenticated user id, or raising 401."""
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        raise UnauthorizedError()
    return user_id
