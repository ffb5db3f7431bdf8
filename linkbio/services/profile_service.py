"""
Profile Service

Reads profiles for the public page and checks link/music inputs against
the platform allowlists before they are saved.

Design Decisions:
- Public page payload is assembled here (links with icons, tracks with
  their embed classification, rich text as blocks of inline nodes) so
  endpoints stay thin
- Private and banned profiles look exactly like missing ones
"""

from dataclasses import asdict
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linkbio.core.exceptions import InvalidInputError, NotFoundError
from linkbio.db.models import Link, MusicTrack, Profile
from linkbio.services.embed_resolver import resolve_music_embed_url
from linkbio.services.link_icons import is_likely_custom_text_icon, resolve_link_icon_value
from linkbio.services.rich_text import RichTextBlock, parse_inline, parse_rich_text
from linkbio.services.url_allowlist import is_allowed_basic_platform_url, is_allowed_music_url

PREMIUM_BADGE = "pro"

LINK_NOT_ALLOWED = "Only basic platform links are allowed (YouTube, SoundCloud, Spotify, Discord)."
MUSIC_NOT_ALLOWED = "Music URL must be from allowed providers or approved storage."


def rich_text_block_payload(block: RichTextBlock) -> dict:
    """Block with its text already split into inline nodes (text, strong, em, link)."""
    return {
        "type": block.type,
        "content": [asdict(node) for node in parse_inline(block.content)],
        "items": [[asdict(node) for node in parse_inline(item)] for item in block.items],
    }


def has_premium_badge(badges: Optional[Iterable[str]]) -> bool:
    if not badges:
        return False
    return any(str(badge).lower() == PREMIUM_BADGE for badge in badges)


def validate_link_url(url: str) -> str:
    if not is_allowed_basic_platform_url(url):
        raise InvalidInputError(LINK_NOT_ALLOWED)
    return url.strip()


def validate_music_track_url(url: str) -> dict:
    """Check a track URL and return its embed classification."""
    if not is_allowed_music_url(url):
        raise InvalidInputError(MUSIC_NOT_ALLOWED)
    return resolve_music_embed_url(url).to_dict()


class ProfileService:
    """Profile lookups for public pages and for other services."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_handle(self, handle: str) -> Optional[Profile]:
        statement = select(Profile).where(Profile.handle == handle)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> Optional[Profile]:
        return await self.session.get(Profile, user_id)

    async def get_visible_by_handle(self, handle: str) -> Optional[Profile]:
        profile = await self.get_by_handle(handle)
        if profile is None or not profile.is_public or profile.is_banned:
            return None
        return profile

    async def get_public_profile(self, handle: str) -> dict:
        """
        Assemble the public page payload.

        Raises:
            NotFoundError: If the handle is unknown, private or banned
        """
        profile = await self.get_visible_by_handle(handle)
        if profile is None:
            raise NotFoundError("Profile not found.")

        links = await self._list_links(profile.id)
        tracks = await self._list_active_tracks(profile.id)

        return {
            "handle": profile.handle,
            "display_name": profile.display_name,
            "bio": profile.bio,
            "badges": list(profile.badges or []),
            "comments_enabled": profile.comments_enabled,
            "avatar_url": profile.avatar_url,
            "rich_text": [rich_text_block_payload(block) for block in parse_rich_text(profile.rich_text)],
            "links": [
                {
                    "id": link.id,
                    "title": link.title,
                    "url": link.url,
                    "description": link.description,
                    "icon": resolve_link_icon_value(link.url, link.icon),
                    "icon_is_text": is_likely_custom_text_icon(link.icon),
                }
                for link in links
            ],
            "tracks": [
                {
                    "id": track.id,
                    "title": track.title,
                    "embed": resolve_music_embed_url(track.embed_url).to_dict(),
                }
                for track in tracks
            ],
        }

    async def _list_links(self, user_id: str) -> List[Link]:
        statement = select(Link).where(Link.user_id == user_id).order_by(Link.sort_order, Link.id)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def _list_active_tracks(self, user_id: str) -> List[MusicTrack]:
        statement = (
            select(MusicTrack)
            .where(MusicTrack.user_id == user_id, MusicTrack.is_active.is_(True))
            .order_by(MusicTrack.sort_order, MusicTrack.id)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())
