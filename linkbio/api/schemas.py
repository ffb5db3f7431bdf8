"""
API Request and Response Schemas

All Pydantic models for API requests and responses. Separated from
endpoints so services and tests can import them too.

Design Principles:
- Request models: input validation (lengths, handle format, allowlists)
- Response models: output structure
"""

import re
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

from linkbio.core.validators import is_valid_handle, normalize_handle
from linkbio.services.url_allowlist import is_allowed_basic_platform_url, is_allowed_music_url

Vibe = Literal["clean/professional", "creative", "minimal", "confident"]
BadgeName = Literal["owner", "admin", "staff", "verified", "pro", "founder"]

_HTTP_URL = re.compile(r'^https?://', re.IGNORECASE)
_http_url_adapter = TypeAdapter(HttpUrl)


def _handle(value: str) -> str:
    normalized = normalize_handle(value)
    if not is_valid_handle(normalized):
        raise ValueError("Use 3-20 lowercase letters, numbers, or underscores.")
    return normalized


def _http_url(value: str) -> str:
    value = value.strip()
    if not _HTTP_URL.match(value):
        raise ValueError("URL must start with http:// or https://")
    try:
        _http_url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("Please enter a valid URL.")
    return value


class CommentCreateRequest(BaseModel):
    handle: str
    body: str = Field(..., description="Comment text, 2-300 characters, no HTML")

    @field_validator("handle")
    @classmethod
    def check_handle(cls, value: str) -> str:
        return _handle(value)

    @field_validator("body")
    @classmethod
    def check_body(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Comment must be at least 2 characters.")
        if len(value) > 300:
            raise ValueError("Comment must be 300 characters or fewer.")
        if re.search(r'[<>]', value):
            raise ValueError("Comment cannot include HTML tags.")
        return value


class CommentResponse(BaseModel):
    id: str
    author_name: str
    author_website: Optional[str] = None
    body: str
    status: str
    created_at: str


class TrackClickRequest(BaseModel):
    linkId: str = Field(..., min_length=1, max_length=36)


class OkResponse(BaseModel):
    ok: bool = True


class EmbedResolutionResponse(BaseModel):
    provider: Literal["audio", "youtube", "spotify", "soundcloud", "apple", "unknown"]
    embed_url: str
    embeddable: bool
    converted: bool
    hint: str


class SearchLink(BaseModel):
    label: str
    href: str


class SearchLinksResponse(BaseModel):
    links: List[SearchLink]


class MusicSearchResult(BaseModel):
    id: str
    title: str
    artist: str
    previewUrl: str
    trackViewUrl: Optional[str] = None
    artworkUrl: Optional[str] = None


class MusicSearchResponse(BaseModel):
    results: List[MusicSearchResult]


class LinkInput(BaseModel):
    title: str = Field(..., min_length=1, max_length=80)
    url: str
    description: Optional[str] = Field(default=None, max_length=120)
    icon: Optional[str] = Field(default=None, max_length=500)
    sortOrder: int = Field(default=0, ge=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Link title is required.")
        return value

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        value = _http_url(value)
        if not is_allowed_basic_platform_url(value):
            raise ValueError("Only basic platform links are allowed (YouTube, SoundCloud, Spotify, Discord).")
        return value


class MusicTrackInput(BaseModel):
    title: str = Field(..., min_length=1, max_length=80)
    embedUrl: str
    sortOrder: int = Field(default=0, ge=0)
    isActive: bool = True

    @field_validator("embedUrl")
    @classmethod
    def check_embed_url(cls, value: str) -> str:
        value = _http_url(value)
        if not is_allowed_music_url(value):
            raise ValueError("Music URL must be from allowed providers or approved storage.")
        return value


class LinkValidationResponse(BaseModel):
    url: str
    icon: Optional[str] = None


class MusicTrackValidationResponse(BaseModel):
    embedUrl: str
    embed: EmbedResolutionResponse


class AIBioGenerateRequest(BaseModel):
    action: Literal["bio-generate"]
    vibe: Vibe
    interests: str
    length: Literal["short", "medium", "long"]

    @field_validator("interests")
    @classmethod
    def check_interests(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Add at least one interest.")
        if len(value) > 200:
            raise ValueError("Interests must be 200 characters or fewer.")
        return value


class AILinkLabelRequest(BaseModel):
    action: Literal["link-label"]
    vibe: Vibe
    url: str

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _http_url(value)


class AIBioPolishRequest(BaseModel):
    action: Literal["bio-polish"]
    vibe: Vibe
    bio: str

    @field_validator("bio")
    @classmethod
    def check_bio(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 12:
            raise ValueError("Bio must be at least 12 characters.")
        if len(value) > 400:
            raise ValueError("Bio must be 400 characters or fewer.")
        return value


AIRequest = Annotated[
    Union[AIBioGenerateRequest, AILinkLabelRequest, AIBioPolishRequest],
    Field(discriminator="action"),
]

ai_request_adapter = TypeAdapter(AIRequest)


class BioGenerateResult(BaseModel):
    options: List[Annotated[str, Field(min_length=8, max_length=320)]] = Field(..., min_length=3, max_length=3)


class LinkLabelResult(BaseModel):
    title: str = Field(..., min_length=2, max_length=80)
    description: str = Field(default="", max_length=120)


class BioPolishResult(BaseModel):
    minimal: str = Field(..., min_length=8, max_length=320)
    expressive: str = Field(..., min_length=8, max_length=320)


AIResult = Union[BioGenerateResult, LinkLabelResult, BioPolishResult]


class AIResponse(BaseModel):
    configured: bool
    result: AIResult


class AdminBadgesRequest(BaseModel):
    handle: str
    badges: List[BadgeName] = Field(..., max_length=6)

    @field_validator("handle")
    @classmethod
    def check_handle(cls, value: str) -> str:
        return _handle(value)


ModerationAction = Literal[
    "ban",
    "unban",
    "remove_avatar",
    "remove_background",
    "reset_visuals",
    "clear_bio",
    "wipe_links",
    "purge_comments",
    "force_private",
    "force_public",
    "disable_comments",
    "enable_comments",
]


class AdminProfileUpdateRequest(BaseModel):
    handle: str
    badges: List[BadgeName] = Field(..., max_length=6)
    isPublic: bool
    commentsEnabled: bool

    @field_validator("handle")
    @classmethod
    def check_handle(cls, value: str) -> str:
        return _handle(value)


class AdminModerationRequest(BaseModel):
    handle: str
    action: ModerationAction
    reason: str = Field(..., description="Moderator note, 3-500 characters")

    @field_validator("handle")
    @classmethod
    def check_handle(cls, value: str) -> str:
        return _handle(value)

    @field_validator("reason")
    @classmethod
    def check_reason(cls, value: str) -> str:
        value = value.strip()
        if not 3 <= len(value) <= 500:
            raise ValueError("Reason must be 3-500 characters.")
        return value


class AdminUserRequest(BaseModel):
    handle: str
    makeAdmin: bool

    @field_validator("handle")
    @classmethod
    def check_handle(cls, value: str) -> str:
        return _handle(value)


class AdminProfileResponse(BaseModel):
    id: str
    handle: str
    display_name: Optional[str] = None
    badges: List[str]
    is_public: bool
    comments_enabled: bool
    avatar_url: Optional[str] = None
    profile_effect: str
    background_mode: str
    background_value: Optional[str] = None
    is_banned: bool
    banned_reason: Optional[str] = None
    is_admin: bool
    created_at: str
    updated_at: str


class AdminUser(BaseModel):
    user_id: str
    handle: str
    display_name: Optional[str] = None
    created_at: str


class AdminUsersResponse(BaseModel):
    admins: List[AdminUser]


class InlineNodeResponse(BaseModel):
    type: Literal["text", "strong", "em", "link"]
    text: str
    href: str = ""


class RichTextBlockResponse(BaseModel):
    type: Literal["h2", "h3", "quote", "paragraph", "list"]
    content: List[InlineNodeResponse] = []
    items: List[List[InlineNodeResponse]] = []


class PublicLink(BaseModel):
    id: str
    title: str
    url: str
    description: Optional[str] = None
    icon: Optional[str] = None
    icon_is_text: bool


class PublicTrack(BaseModel):
    id: str
    title: str
    embed: EmbedResolutionResponse


class PublicProfileResponse(BaseModel):
    handle: str
    display_name: Optional[str] = None
    bio: str
    avatar_url: Optional[str] = None
    badges: List[str]
    comments_enabled: bool
    rich_text: List[RichTextBlockResponse]
    links: List[PublicLink]
    tracks: List[PublicTrack]
