"""
Custom Exceptions

Services raise these; endpoints translate them into HTTP responses.
Each exception carries the status code it maps to so the translation
stays in one place.
"""

from typing import Optional


class LinkBioException(Exception):
    """Base exception for the profile service."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(LinkBioException):
    """Raised when a payload passes schema checks but fails a business rule."""

    status_code = 400


class UnauthorizedError(LinkBioException):
    """Raised when no authenticated user is attached to the request."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized."):
        super().__init__(message)


class ForbiddenError(LinkBioException):
    """Raised when the caller may not perform the action."""

    status_code = 403


class CrossOriginError(ForbiddenError):
    """Raised when a state-changing request comes from another origin."""

    def __init__(self):
        super().__init__("Invalid origin.")


class NotFoundError(LinkBioException):
    """Raised when a profile, link or other record does not exist."""

    status_code = 404


class RateLimitedError(LinkBioException):
    """Raised when a token bucket denies the request."""

    status_code = 429

    def __init__(self, key: str, message: str = "Too many requests."):
        self.key = key
        super().__init__(message)


class UpstreamServiceError(LinkBioException):
    """Raised when a third-party API (AI, music search) answers with an error."""

    status_code = 502

    def __init__(self, service_name: str, message: str):
        self.service_name = service_name
        super().__init__(message)


class DatabaseError(LinkBioException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
