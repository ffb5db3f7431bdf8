"""
Music Embed Resolver

Classifies a user-supplied music URL into a provider without any network
I/O, so callers can decide between in-page playback and an external link.

Rules (first match wins):
1. Blank input -> unknown, with a prompt to paste a URL
2. Raw string looks like an audio file (or a known streaming-audio host)
   -> audio. This check runs before strict parsing.
3. Unparsable -> unknown, "invalid format"
4. Parsed URL: audio path/filename/storage prefix, then Spotify, YouTube,
   SoundCloud, Apple Music, else unknown

Only the audio branch is embeddable. resolve_music_embed_url is pure and
total: it never raises and holds no state.
"""

import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional
from urllib.parse import SplitResult, parse_qs, quote, unquote, urlsplit

from pydantic import AnyUrl, TypeAdapter, ValidationError

AUDIO_EXTENSIONS = ("m4a", "mp3", "wav", "ogg", "aac", "flac", "mp4", "opus", "webm")

_EXTENSION_GROUP = "|".join(AUDIO_EXTENSIONS)
AUDIO_URL_PATTERN = re.compile(rf"\.({_EXTENSION_GROUP})(\?|$)", re.IGNORECASE)
AUDIO_SUFFIX_PATTERN = re.compile(rf"\.({_EXTENSION_GROUP})$", re.IGNORECASE)

STREAMING_AUDIO_HOST_FRAGMENT = "audio-ssl.itunes.apple.com"
PROFILE_MUSIC_STORAGE_PREFIX = "/storage/v1/object/public/profile-music/"

YOUTUBE_PATH_PREFIXES = ("embed", "shorts", "live")
APPLE_MUSIC_HOSTS = ("music.apple.com", "embed.music.apple.com")

HINT_EMPTY = "Paste a music page URL or direct audio URL."
HINT_AUDIO = "Direct audio URL detected. It will play with audio controls."
HINT_INVALID = "URL format looks invalid."
HINT_UNKNOWN = "Not auto-detected. Paste a direct audio URL (.mp3, .m4a, .wav, .ogg)."

_url_adapter = TypeAdapter(AnyUrl)


def _not_direct_audio_hint(provider_name: str) -> str:
    return (
        f"{provider_name} links are not direct audio files. "
        "Use an .mp3/.m4a URL for the custom player."
    )


class EmbedProvider(str, Enum):
    """Media platform a URL belongs to."""
    audio = "audio"
    youtube = "youtube"
    spotify = "spotify"
    soundcloud = "soundcloud"
    apple = "apple"
    unknown = "unknown"


@dataclass(frozen=True)
class EmbedClassification:
    """
    Result of classifying a music URL.

    embeddable is True only for the audio provider. converted is reserved
    and always False: no branch rewrites a URL into a playable form.
    """
    provider: EmbedProvider
    embed_url: str
    embeddable: bool
    converted: bool
    hint: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["provider"] = self.provider.value
        return data


@dataclass(frozen=True)
class MusicSearchLink:
    label: str
    href: str


def _classification(provider: EmbedProvider, embed_url: str, hint: str) -> EmbedClassification:
    return EmbedClassification(
        provider=provider,
        embed_url=embed_url,
        embeddable=provider is EmbedProvider.audio,
        converted=False,
        hint=hint,
    )


def _safe_parse_url(raw: str) -> Optional[SplitResult]:
    """
    Strict URL parse: the raw string must be a valid absolute URL.

    Validation is WHATWG-style (bad host characters and out-of-range
    ports fail); the normalized form, with illegal path and query
    characters percent-encoded, is what the provider rules see.
    """
    try:
        parsed = urlsplit(str(_url_adapter.validate_python(raw)))
    except (ValidationError, ValueError):
        return None

    if not parsed.scheme or not parsed.netloc:
        return None

    return parsed


def _hostname(url: SplitResult) -> str:
    try:
        return url.hostname or ""
    except ValueError:
        return ""


def normalize_host(host: str) -> str:
    """Lowercase and drop a leading 'www.'."""
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def _path_segments(url: SplitResult) -> List[str]:
    return [segment for segment in url.path.split("/") if segment]


def _query_param(url: SplitResult, name: str) -> Optional[str]:
    values = parse_qs(url.query, keep_blank_values=True).get(name)
    return values[0] if values else None


def _looks_like_audio_url(url: SplitResult) -> bool:
    path = url.path.lower()

    if AUDIO_SUFFIX_PATTERN.search(path):
        return True

    filename_hint = _query_param(url, "filename")
    if filename_hint is None:
        filename_hint = _query_param(url, "file") or ""

    if AUDIO_SUFFIX_PATTERN.search(filename_hint):
        return True

    # Uploads from the profile music bucket
    return PROFILE_MUSIC_STORAGE_PREFIX in path


def _resolve_spotify(url: SplitResult, host: str) -> Optional[EmbedClassification]:
    if "spotify.com" not in host:
        return None

    segments = _path_segments(url)
    if segments and segments[0].startswith("intl-"):
        segments = segments[1:]

    if not segments:
        return None

    return _classification(
        EmbedProvider.spotify,
        "https://open.spotify.com/" + "/".join(segments),
        _not_direct_audio_hint("Spotify"),
    )


def extract_youtube_id(url: SplitResult) -> Optional[str]:
    """Video id (percent-decoded) from a watch, youtu.be, embed, shorts or live URL."""
    host = normalize_host(_hostname(url))

    if host == "youtu.be":
        segments = _path_segments(url)
        return unquote(segments[0]) if segments else None

    if "youtube.com" not in host:
        return None

    if url.path == "/watch":
        return _query_param(url, "v") or None

    segments = _path_segments(url)
    if len(segments) >= 2 and segments[0] in YOUTUBE_PATH_PREFIXES:
        return unquote(segments[1])

    return None


def resolve_music_embed_url(raw: str) -> EmbedClassification:
    """
    Classify a music URL.

    Args:
        raw: URL as typed or pasted by the user

    Returns:
        EmbedClassification; never raises

    Example:
        resolve_music_embed_url("https://youtu.be/dQw4w9WgXcQ").embed_url
        -> "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    """
    trimmed = (raw or "").strip()

    if not trimmed:
        return _classification(EmbedProvider.unknown, trimmed, HINT_EMPTY)

    if AUDIO_URL_PATTERN.search(trimmed) or STREAMING_AUDIO_HOST_FRAGMENT in trimmed.lower():
        return _classification(EmbedProvider.audio, trimmed, HINT_AUDIO)

    parsed = _safe_parse_url(trimmed)
    if parsed is None:
        return _classification(EmbedProvider.unknown, trimmed, HINT_INVALID)

    if _looks_like_audio_url(parsed):
        return _classification(EmbedProvider.audio, trimmed, HINT_AUDIO)

    host = normalize_host(_hostname(parsed))

    spotify = _resolve_spotify(parsed, host)
    if spotify is not None:
        return spotify

    youtube_id = extract_youtube_id(parsed)
    if youtube_id:
        return _classification(
            EmbedProvider.youtube,
            f"https://www.youtube.com/watch?v={quote(youtube_id, safe='')}",
            _not_direct_audio_hint("YouTube"),
        )

    if "soundcloud.com" in host or host == "snd.sc":
        return _classification(EmbedProvider.soundcloud, trimmed, _not_direct_audio_hint("SoundCloud"))

    if host in APPLE_MUSIC_HOSTS:
        return _classification(EmbedProvider.apple, trimmed, _not_direct_audio_hint("Apple Music"))

    return _classification(EmbedProvider.unknown, trimmed, HINT_UNKNOWN)


def get_music_provider_search_links(query: str) -> List[MusicSearchLink]:
    """Search URLs on each provider for a free-text query."""
    trimmed = (query or "").strip()
    if not trimmed:
        return []

    encoded = quote(trimmed, safe="!~*'()")

    return [
        MusicSearchLink("Spotify", f"https://open.spotify.com/search/{encoded}"),
        MusicSearchLink("YouTube", f"https://www.youtube.com/results?search_query={encoded}"),
        MusicSearchLink("SoundCloud", f"https://soundcloud.com/search/sounds?q={encoded}"),
        MusicSearchLink("Apple Music", f"https://music.apple.com/us/search?term={encoded}"),
    ]
