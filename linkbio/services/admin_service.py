"""
Admin Service

Moderation actions for staff: badges and visibility, bans and content
cleanup, and granting or revoking admin rights.
Every action re-checks that the acting user is an admin.

Design Decisions:
- Moderation is one entry point, apply_action(handle, action, reason);
  each action is a small handler in MODERATION_HANDLERS
- Link wipes and comment purges are bulk DELETEs scoped to the profile
- Admins cannot ban themselves or revoke their own admin rights, so the
  last admin cannot lock everyone out
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkbio.core.exceptions import DatabaseError, ForbiddenError, InvalidInputError, NotFoundError
from linkbio.db.models import Comment, Link, Profile
from linkbio.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_EFFECT = "none"
DEFAULT_BACKGROUND_MODE = "theme"


def _reset_avatar(profile: Profile) -> None:
    profile.avatar_url = None


def _reset_background(profile: Profile) -> None:
    profile.background_mode = DEFAULT_BACKGROUND_MODE
    profile.background_value = None


def _reset_visuals(profile: Profile) -> None:
    _reset_avatar(profile)
    _reset_background(profile)
    profile.profile_effect = DEFAULT_PROFILE_EFFECT


def _clear_bio(profile: Profile) -> None:
    profile.bio = ""
    profile.rich_text = ""


def _set(field: str, value):
    def handler(profile: Profile) -> None:
        setattr(profile, field, value)
    return handler


# Actions that only touch profile columns
MODERATION_HANDLERS = {
    "remove_avatar": _reset_avatar,
    "remove_background": _reset_background,
    "reset_visuals": _reset_visuals,
    "clear_bio": _clear_bio,
    "force_private": _set("is_public", False),
    "force_public": _set("is_public", True),
    "disable_comments": _set("comments_enabled", False),
    "enable_comments": _set("comments_enabled", True),
}

MODERATION_ACTIONS = ("ban", "unban", "wipe_links", "purge_comments") + tuple(MODERATION_HANDLERS)


class AdminService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.profiles = ProfileService(session)

    async def require_admin(self, actor_id: str) -> Profile:
        actor = await self.profiles.get_by_id(actor_id)
        if actor is None or not actor.is_admin or actor.is_banned:
            raise ForbiddenError("Forbidden.")
        return actor

    async def get_profile(self, actor_id: str, handle: str) -> Profile:
        await self.require_admin(actor_id)
        return await self._target(handle)

    async def set_badges(self, actor_id: str, handle: str, badges: List[str]) -> Profile:
        """Replace a profile's badges. Duplicates are dropped, order kept."""
        profile = await self.get_profile(actor_id, handle)

        profile.badges = list(dict.fromkeys(badges))
        await self._save(profile)

        logger.info(f"Admin {actor_id} set badges on @{handle}: {profile.badges}")
        return profile

    async def update_profile(
        self,
        actor_id: str,
        handle: str,
        badges: List[str],
        is_public: bool,
        comments_enabled: bool,
    ) -> Profile:
        """Set badges, visibility and the comments switch in one step."""
        profile = await self.get_profile(actor_id, handle)

        profile.badges = list(dict.fromkeys(badges))
        profile.is_public = is_public
        profile.comments_enabled = comments_enabled
        await self._save(profile)

        logger.info(
            f"Admin {actor_id} updated @{handle}: badges={profile.badges} "
            f"public={is_public} comments={comments_enabled}"
        )
        return profile

    async def set_banned(self, actor_id: str, handle: str, banned: bool, reason: Optional[str] = None) -> Profile:
        actor = await self.require_admin(actor_id)
        profile = await self._target(handle)
        if banned and profile.id == actor.id:
            raise ForbiddenError("Admins cannot ban themselves.")

        profile.is_banned = banned
        profile.banned_reason = reason if banned else None
        await self._save(profile)

        logger.info(f"Admin {actor_id} set banned={banned} on @{handle}")
        return profile

    async def apply_action(self, actor_id: str, handle: str, action: str, reason: str) -> Profile:
        """
        Run one moderation action against handle's profile.

        Args:
            actor_id: Admin performing the action
            handle: Target profile handle
            action: One of MODERATION_ACTIONS
            reason: Moderator note; stored on the profile for bans

        Raises:
            ForbiddenError: Actor is not an admin, or tries to ban themselves
            NotFoundError: Unknown handle
            InvalidInputError: Unknown action
        """
        if action not in MODERATION_ACTIONS:
            raise InvalidInputError("Invalid moderation action.")

        if action in ("ban", "unban"):
            return await self.set_banned(actor_id, handle, action == "ban", reason)

        profile = await self.get_profile(actor_id, handle)

        try:
            if action == "wipe_links":
                await self.session.execute(delete(Link).where(Link.user_id == profile.id))
            elif action == "purge_comments":
                await self.session.execute(delete(Comment).where(Comment.user_id == profile.id))
            else:
                MODERATION_HANDLERS[action](profile)
        except SQLAlchemyError as e:
            logger.error(f"Moderation {action} on @{handle} failed: {e}", exc_info=True)
            raise DatabaseError("Unable to process admin request.", original_error=e)

        await self._save(profile)

        logger.info(f"Admin {actor_id} applied {action} on @{handle}: {reason}")
        return profile

    async def list_admins(self, actor_id: str) -> List[Profile]:
        await self.require_admin(actor_id)
        statement = select(Profile).where(Profile.is_admin.is_(True)).order_by(Profile.handle)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def set_admin(self, actor_id: str, handle: str, make_admin: bool) -> Profile:
        """Grant or revoke admin rights."""
        actor = await self.require_admin(actor_id)
        profile = await self._target(handle)
        if not make_admin and profile.id == actor.id:
            raise InvalidInputError("Admins cannot revoke their own access.")

        profile.is_admin = make_admin
        await self._save(profile)

        logger.info(f"Admin {actor_id} set is_admin={make_admin} on @{handle}")
        return profile

    async def _target(self, handle: str) -> Profile:
        profile = await self.profiles.get_by_handle(handle)
        if profile is None:
            raise NotFoundError("Profile not found.")
        return profile

    async def _save(self, profile: Profile) -> None:
        profile.updated_at = datetime.utcnow()
        self.session.add(profile)
        await self.session.flush()
