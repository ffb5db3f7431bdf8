"""
Link Icon Helpers

Derives the icon shown next to a profile link: a custom icon (short text
or image URL) when the owner set one, otherwise the site's favicon.
"""

import re
from typing import Optional
from urllib.parse import quote, urlsplit

_HTTP_PREFIX = re.compile(r'^https?://', re.IGNORECASE)

FALLBACK_FAVICON_SERVICE = "https://www.google.com/s2/favicons?sz=64&domain_url="


def with_protocol(value: str) -> str:
    """Prefix https:// when the value has no http(s) scheme."""
    trimmed = value.strip()
    if not trimmed:
        return ""

    if _HTTP_PREFIX.match(trimmed):
        return trimmed

    return f"https://{trimmed}"


def is_http_url(value: Optional[str]) -> bool:
    return bool(value and _HTTP_PREFIX.match(value.strip()))


def get_origin_from_url(value: str) -> Optional[str]:
    try:
        parts = urlsplit(with_protocol(value))
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return None

    if not hostname:
        return None

    scheme = parts.scheme.lower()
    default_port = {"http": 80, "https": 443}.get(scheme)
    host = f"[{hostname}]" if ":" in hostname else hostname
    if port is not None and port != default_port:
        host = f"{host}:{port}"

    return f"{scheme}://{host}"


def get_site_favicon_url(value: str) -> Optional[str]:
    origin = get_origin_from_url(value)
    if not origin:
        return None

    return f"{origin}/favicon.ico"


def get_fallback_favicon_url(value: str) -> Optional[str]:
    origin = get_origin_from_url(value)
    if not origin:
        return None

    return FALLBACK_FAVICON_SERVICE + quote(origin, safe="")


def is_likely_custom_text_icon(value: Optional[str]) -> bool:
    """Short non-URL strings (emoji, initials) are rendered as text icons."""
    if not value:
        return False

    trimmed = value.strip()
    if not trimmed or is_http_url(trimmed):
        return False

    return len(trimmed) <= 6


def resolve_link_icon_value(url: str, custom_icon: Optional[str] = None) -> Optional[str]:
    trimmed_icon = (custom_icon or "").strip()
    if trimmed_icon:
        return trimmed_icon

    return get_site_favicon_url(url)


def website_from_url(url: str) -> str:
    """Hostname without 'www.', or the input itself when it is not a URL."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return url

    if not hostname:
        return url

    return hostname.replace("www.", "", 1)
