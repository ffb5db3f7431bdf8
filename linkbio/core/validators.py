"""
Input Validators and Sanitizers

Handle normalization and small input checks shared by schemas and services.

Security Considerations:
- Handles are restricted to [a-z0-9_] so they are safe in paths and queries
- Length limits prevent DoS attacks
"""

import re
from typing import Optional

HANDLE_PATTERN = re.compile(r'^[a-z0-9_]{3,20}$')


def normalize_handle(raw: str) -> str:
    """
    Normalize a user-typed handle.

    Trims whitespace, lowercases, and strips any leading '@' characters.

    Example:
        normalize_handle("  @@Alice_1 ") -> "alice_1"
    """
    return re.sub(r'^@+', '', raw.strip().lower())


def ensure_handle_prefix(handle: str) -> str:
    """Return the handle with exactly one leading '@'."""
    return "@" + re.sub(r'^@+', '', handle)


def create_default_handle(user_id: str) -> str:
    """
    Build the placeholder handle given to a freshly signed-up user.

    Example:
        create_default_handle("3f2a9c1e-...") -> "user_3f2a9c1e"
    """
    return f"user_{user_id.replace('-', '')[:8]}"


def is_valid_handle(handle: str) -> bool:
    return bool(HANDLE_PATTERN.match(handle))


def sanitize_handle(handle: Optional[str]) -> Optional[str]:
    """
    Normalize and validate a handle.

    Args:
        handle: Raw handle from a path, query string or body

    Returns:
        Normalized handle if valid, None otherwise
    """
    if not handle or not isinstance(handle, str):
        return None

    normalized = normalize_handle(handle)
    if not is_valid_handle(normalized):
        return None

    return normalized


def validate_url_length(url: str, max_length: int = 2048) -> bool:
    """
    Validate URL length to prevent DoS attacks.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: 2048 per RFC 7230)

    Returns:
        True if URL length is valid, False otherwise
    """
    return bool(url) and len(url) <= max_length
