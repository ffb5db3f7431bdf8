"""
URL Allowlists

Profile links may only point at a small set of platforms; music tracks
additionally accept Apple/iTunes, catbox uploads and the profile-music
storage bucket.
"""

from typing import Iterable, Optional
from urllib.parse import SplitResult, urlsplit

from linkbio.services.embed_resolver import PROFILE_MUSIC_STORAGE_PREFIX

BASIC_PLATFORM_DOMAINS = (
    "youtube.com",
    "youtu.be",
    "soundcloud.com",
    "snd.sc",
    "spotify.com",
    "discord.gg",
    "discord.com",
)

EXTENDED_MUSIC_DOMAINS = BASIC_PLATFORM_DOMAINS + (
    "music.apple.com",
    "itunes.apple.com",
    "audio-ssl.itunes.apple.com",
    "catbox.moe",
)

STORAGE_HOST_SUFFIX = ".supabase.co"


def _parse_http_url(value: Optional[str]) -> Optional[SplitResult]:
    if not value:
        return None

    try:
        parsed = urlsplit(value.strip())
        hostname = parsed.hostname
    except ValueError:
        return None

    if parsed.scheme.lower() not in ("http", "https") or not hostname:
        return None

    return parsed


def host_matches_domain(hostname: str, domain: str) -> bool:
    return hostname == domain or hostname.endswith(f".{domain}")


def _is_allowed_host(hostname: str, domains: Iterable[str]) -> bool:
    return any(host_matches_domain(hostname, domain) for domain in domains)


def is_allowed_basic_platform_url(value: Optional[str]) -> bool:
    """True for http(s) URLs on YouTube, SoundCloud, Spotify or Discord."""
    parsed = _parse_http_url(value)
    if parsed is None:
        return False

    return _is_allowed_host(parsed.hostname.lower(), BASIC_PLATFORM_DOMAINS)


def is_allowed_music_url(value: Optional[str]) -> bool:
    """True for URLs a music track may be saved with."""
    parsed = _parse_http_url(value)
    if parsed is None:
        return False

    host = parsed.hostname.lower()

    if _is_allowed_host(host, EXTENDED_MUSIC_DOMAINS):
        return True

    return host.endswith(STORAGE_HOST_SUFFIX) and parsed.path.startswith(PROFILE_MUSIC_STORAGE_PREFIX)
