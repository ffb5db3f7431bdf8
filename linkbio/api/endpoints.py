"""
FastAPI Endpoints for the Profile Service

Endpoints only handle:
- Request validation (Pydantic models)
- Rate limiting (token buckets for writes, slowapi for reads)
- Delegating to the service layer

Service exceptions (LinkBioException and subclasses) are not caught here;
the app-level handler in main.py turns them into {"detail": ...}
responses with the status code each exception carries.

Rate-limited requests are rejected before any database or upstream call.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from linkbio.api.schemas import (
    AdminBadgesRequest,
    AdminModerationRequest,
    AdminProfileResponse,
    AdminProfileUpdateRequest,
    AdminUser,
    AdminUserRequest,
    AdminUsersResponse,
    AIResponse,
    CommentCreateRequest,
    CommentResponse,
    EmbedResolutionResponse,
    LinkInput,
    LinkValidationResponse,
    MusicSearchResponse,
    MusicTrackInput,
    MusicTrackValidationResponse,
    OkResponse,
    PublicProfileResponse,
    SearchLink,
    SearchLinksResponse,
    TrackClickRequest,
    ai_request_adapter,
)
from linkbio.core.exceptions import RateLimitedError
from linkbio.core.rate_limit import RATE_LIMITS, RateLimiters, get_rate_limiters, limiter
from linkbio.core.request_security import get_current_user_id, get_request_ip, reject_cross_origin
from linkbio.core.setting import Settings
from linkbio.core.validators import sanitize_handle
from linkbio.db.models import Profile
from linkbio.db.session import get_session
from linkbio.services.admin_service import AdminService
from linkbio.services.ai_assist import AIAssistService
from linkbio.services.comment_service import CommentService, comment_rate_key
from linkbio.services.embed_resolver import get_music_provider_search_links, resolve_music_embed_url
from linkbio.services.link_icons import resolve_link_icon_value
from linkbio.services.music_search import MusicSearchService
from linkbio.services.profile_service import (
    ProfileService,
    has_premium_badge,
    validate_link_url,
    validate_music_track_url,
)
from linkbio.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def consume_or_reject(bucket, key: str, message: str) -> None:
    if not bucket.try_consume(key):
        logger.info(f"Rate limit hit for {key}")
        raise RateLimitedError(key, message)


def require_handle(handle: str) -> str:
    sanitized = sanitize_handle(handle)
    if not sanitized:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid handle.")
    return sanitized


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_ai_service(config: Settings = Depends(get_app_settings)) -> AIAssistService:
    return AIAssistService(
        api_key=config.GROQ_API_KEY,
        model=config.GROQ_MODEL,
        api_url=config.GROQ_API_URL,
        timeout=config.HTTP_TIMEOUT_SECONDS,
    )


def get_music_search_service(config: Settings = Depends(get_app_settings)) -> MusicSearchService:
    return MusicSearchService(config.ITUNES_SEARCH_URL, timeout=config.HTTP_TIMEOUT_SECONDS)


def _admin_profile(profile: Profile) -> AdminProfileResponse:
    return AdminProfileResponse(
        id=profile.id,
        handle=profile.handle,
        display_name=profile.display_name,
        badges=list(profile.badges or []),
        is_public=profile.is_public,
        comments_enabled=profile.comments_enabled,
        avatar_url=profile.avatar_url,
        profile_effect=profile.profile_effect,
        background_mode=profile.background_mode,
        background_value=profile.background_value,
        is_banned=profile.is_banned,
        banned_reason=profile.banned_reason,
        is_admin=profile.is_admin,
        created_at=profile.created_at.isoformat(),
        updated_at=profile.updated_at.isoformat(),
    )


@router.get(
    "/music/resolve",
    response_model=EmbedResolutionResponse,
    summary="Classify a music URL",
    description="Tells whether a URL plays directly in the profile player or is an external link"
)
@limiter.limit(RATE_LIMITS["music_resolve"])
async def resolve_music_url(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    url: str = Query("", max_length=2048),
) -> EmbedResolutionResponse:
    return EmbedResolutionResponse(**resolve_music_embed_url(url).to_dict())


@router.get(
    "/music/search-links",
    response_model=SearchLinksResponse,
    summary="Provider search links for a query"
)
@limiter.limit(RATE_LIMITS["music_resolve"])
async def music_search_links(
    request: Request,
    q: str = Query("", max_length=80),
) -> SearchLinksResponse:
    links = get_music_provider_search_links(q)
    return SearchLinksResponse(links=[SearchLink(label=link.label, href=link.href) for link in links])


@router.get(
    "/music/search",
    response_model=MusicSearchResponse,
    summary="Search songs with playable previews"
)
@limiter.limit(RATE_LIMITS["music_search"])
async def search_music(
    request: Request,
    q: str = Query(..., min_length=2, max_length=80),
    limit: int = Query(8, ge=1, le=10),
    user_id: str = Depends(get_current_user_id),
    search_service: MusicSearchService = Depends(get_music_search_service),
) -> MusicSearchResponse:
    results = await search_service.search(q.strip(), limit)
    return MusicSearchResponse(results=results)


@router.post(
    "/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a comment on a profile",
    dependencies=[Depends(reject_cross_origin)],
)
async def create_comment(
    request: Request,
    body: CommentCreateRequest,
    user_id: str = Depends(get_current_user_id),
    limiters: RateLimiters = Depends(get_rate_limiters),
    session: AsyncSession = Depends(get_session),
) -> CommentResponse:
    """
    Publish a comment.

    Raises:
        HTTPException 401: No authenticated user
        HTTPException 403: Comments unavailable, or commenter has no profile
        HTTPException 429: Comment bucket for ip:user:handle is empty
    """
    key = comment_rate_key(get_request_ip(request), user_id, body.handle)
    consume_or_reject(limiters.comments, key, "Too many comments. Please try again shortly.")

    comment = await CommentService(session).post_comment(body.handle, body.body, user_id)

    return CommentResponse(
        id=comment.id,
        author_name=comment.author_name,
        author_website=comment.author_website,
        body=comment.body,
        status=comment.status,
        created_at=comment.created_at.isoformat(),
    )


@router.post(
    "/track/view",
    response_model=OkResponse,
    summary="Count a profile view",
    dependencies=[Depends(reject_cross_origin)],
)
async def track_view(
    request: Request,
    handle: str = Query(""),
    limiters: RateLimiters = Depends(get_rate_limiters),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    consume_or_reject(
        limiters.tracking, f"view:{get_request_ip(request)}", "Too many tracking requests."
    )

    await TrackingService(session).record_profile_view(require_handle(handle))
    return OkResponse()


@router.post(
    "/track/click",
    response_model=OkResponse,
    summary="Count a link click",
    dependencies=[Depends(reject_cross_origin)],
)
async def track_click(
    request: Request,
    limiters: RateLimiters = Depends(get_rate_limiters),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    consume_or_reject(
        limiters.tracking, f"click:{get_request_ip(request)}", "Too many tracking requests."
    )

    try:
        body = TrackClickRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid click payload.")

    await TrackingService(session).record_link_click(body.linkId)
    return OkResponse()


@router.post(
    "/ai",
    response_model=AIResponse,
    summary="AI writing assistance",
    dependencies=[Depends(reject_cross_origin)],
)
async def ai_assist(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    limiters: RateLimiters = Depends(get_rate_limiters),
    ai_service: AIAssistService = Depends(get_ai_service),
    session: AsyncSession = Depends(get_session),
) -> AIResponse:
    """
    Generate or polish profile text.

    Raises:
        HTTPException 400: Invalid payload or unsafe prompt
        HTTPException 403: Caller lacks the pro badge
        HTTPException 429: AI bucket for the user is empty
        HTTPException 502: Provider unavailable
    """
    try:
        payload = ai_request_adapter.validate_python(await request.json())
    except (ValueError, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid AI request.")

    profile = await ProfileService(session).get_by_id(user_id)
    if profile is None or not has_premium_badge(profile.badges):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="AI Assist requires the Pro badge. Open a Discord ticket to upgrade.",
        )

    consume_or_reject(limiters.ai, user_id, "Rate limit reached. Try again in a minute.")

    configured, result = await ai_service.assist(payload)
    return AIResponse(configured=configured, result=result)


@router.post(
    "/links/validate",
    response_model=LinkValidationResponse,
    summary="Check a profile link before saving"
)
async def validate_link(
    body: LinkInput,
    user_id: str = Depends(get_current_user_id),
) -> LinkValidationResponse:
    url = validate_link_url(body.url)
    return LinkValidationResponse(url=url, icon=resolve_link_icon_value(url, body.icon))


@router.post(
    "/music/tracks/validate",
    response_model=MusicTrackValidationResponse,
    summary="Check a music track URL before saving"
)
async def validate_music_track(
    body: MusicTrackInput,
    user_id: str = Depends(get_current_user_id),
) -> MusicTrackValidationResponse:
    embed = validate_music_track_url(body.embedUrl)
    return MusicTrackValidationResponse(embedUrl=body.embedUrl, embed=EmbedResolutionResponse(**embed))


@router.get(
    "/admin/badges",
    response_model=AdminProfileResponse,
    summary="Look up a profile's badges"
)
async def get_admin_badges(
    handle: str = Query(""),
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> AdminProfileResponse:
    profile = await AdminService(session).get_profile(user_id, require_handle(handle))
    return _admin_profile(profile)


@router.post(
    "/admin/badges",
    response_model=AdminProfileResponse,
    summary="Replace a profile's badges",
    dependencies=[Depends(reject_cross_origin)],
)
async def set_admin_badges(
    body: AdminBadgesRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> AdminProfileResponse:
    profile = await AdminService(session).set_badges(user_id, body.handle, list(body.badges))
    return _admin_profile(profile)


@router.post(
    "/admin/profile",
    response_model=AdminProfileResponse,
    summary="Set a profile's badges, visibility and comments switch",
    dependencies=[Depends(reject_cross_origin)],
)
async def update_admin_profile(
    body: AdminProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> AdminProfileResponse:
    profile = await AdminService(session).update_profile(
        user_id, body.handle, list(body.badges), body.isPublic, body.commentsEnabled
    )
    return _admin_profile(profile)


@router.post(
    "/admin/moderation",
    response_model=AdminProfileResponse,
    summary="Apply a moderation action to a profile",
    dependencies=[Depends(reject_cross_origin)],
)
async def moderate_profile(
    body: AdminModerationRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> AdminProfileResponse:
    """
    Ban/unban, content cleanup, visual resets and visibility switches.

    Raises:
        HTTPException 403: Caller is not an admin, or bans themselves
        HTTPException 404: Unknown handle
    """
    profile = await AdminService(session).apply_action(user_id, body.handle, body.action, body.reason)
    return _admin_profile(profile)


@router.get(
    "/admin/users",
    response_model=AdminUsersResponse,
    summary="List admin accounts"
)
async def list_admin_users(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> AdminUsersResponse:
    admins = await AdminService(session).list_admins(user_id)
    return AdminUsersResponse(admins=[
        AdminUser(
            user_id=admin.id,
            handle=admin.handle,
            display_name=admin.display_name,
            created_at=admin.created_at.isoformat(),
        )
        for admin in admins
    ])


@router.post(
    "/admin/users",
    response_model=AdminProfileResponse,
    summary="Grant or revoke admin rights",
    dependencies=[Depends(reject_cross_origin)],
)
async def set_admin_user(
    body: AdminUserRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
) -> AdminProfileResponse:
    profile = await AdminService(session).set_admin(user_id, body.handle, body.makeAdmin)
    return _admin_profile(profile)


@router.get(
    "/profiles/{handle}",
    response_model=PublicProfileResponse,
    summary="Public profile page data",
    description="Links with icons, active tracks with embed classification, and rich text as inline nodes"
)
@limiter.limit(RATE_LIMITS["profile"])
async def get_public_profile(
    handle: str,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> PublicProfileResponse:
    sanitized = sanitize_handle(handle)
    if not sanitized:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid handle format: '{handle}'. Handles use 3-20 lowercase letters, numbers, or underscores."
        )

    return PublicProfileResponse(**await ProfileService(session).get_public_profile(sanitized))
