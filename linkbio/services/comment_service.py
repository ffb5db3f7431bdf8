"""
Comment Service

Posts guestbook comments on public profiles.

Rate limiting happens in the endpoint before this service is reached,
so denied requests never touch the database.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkbio.core.exceptions import DatabaseError, ForbiddenError
from linkbio.core.validators import ensure_handle_prefix
from linkbio.db.models import Comment
from linkbio.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

COMMENTS_UNAVAILABLE = "Comments are unavailable for this profile."


def comment_rate_key(ip_address: str, user_id: str, handle: str) -> str:
    return f"{ip_address}:{user_id}:{handle}"


class CommentService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.profiles = ProfileService(session)

    async def post_comment(self, handle: str, body: str, author_id: str) -> Comment:
        """
        Publish a comment on handle's profile.

        Args:
            handle: Normalized handle of the profile being commented on
            body: Validated comment text
            author_id: Authenticated user posting the comment

        Raises:
            ForbiddenError: Profile missing/private/comments off, or the author has no profile
            DatabaseError: If the insert fails
        """
        profile = await self.profiles.get_visible_by_handle(handle)
        if profile is None or not profile.comments_enabled:
            raise ForbiddenError(COMMENTS_UNAVAILABLE)

        author = await self.profiles.get_by_id(author_id)
        if author is None or author.is_banned:
            raise ForbiddenError("Unable to verify your commenter profile.")

        author_name = (author.display_name or "").strip() or ensure_handle_prefix(author.handle)

        comment = Comment(
            user_id=profile.id,
            author_name=author_name,
            author_website=None,
            body=body,
            status="published",
        )

        try:
            self.session.add(comment)
            await self.session.flush()
            await self.session.refresh(comment)
        except SQLAlchemyError as e:
            logger.error(f"Failed to post comment on {handle}: {e}", exc_info=True)
            raise DatabaseError("Unable to post comment.", original_error=e)

        logger.info(f"Comment {comment.id} posted on @{handle}")
        return comment
