"""
Tracking Service

Counts profile views and link clicks into per-day analytics rows.

Design Decisions:
- One AnalyticsDaily row per (profile, UTC day), created on first hit
- Counters are bumped with database-level UPDATE ... SET x = x + 1
- Views of unknown or private profiles are accepted and ignored, so the
  endpoint does not reveal which handles exist
"""

import logging
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from linkbio.core.exceptions import DatabaseError, NotFoundError
from linkbio.db.models import AnalyticsDaily, Link
from linkbio.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.utcnow().date()


class TrackingService:

    def __init__(self, session: AsyncSession, today: Callable[[], date] = utc_today):
        self.session = session
        self.profiles = ProfileService(session)
        self._today = today

    async def record_profile_view(self, handle: str) -> bool:
        """
        Count a view of handle's public profile.

        Returns:
            True if a counter was incremented, False for unknown/private handles
        """
        profile = await self.profiles.get_visible_by_handle(handle)
        if profile is None:
            return False

        await self._increment_daily(profile.id, "profile_views")
        return True

    async def record_link_click(self, link_id: str) -> None:
        """
        Count a click on a profile link.

        Raises:
            NotFoundError: If the link does not exist
        """
        link = await self.session.get(Link, link_id)
        if link is None:
            raise NotFoundError("Link not found.")

        try:
            await self.session.execute(
                update(Link).where(Link.id == link_id).values(clicks=Link.clicks + 1)
            )
        except SQLAlchemyError as e:
            raise DatabaseError("Unable to track click.", original_error=e)

        await self._increment_daily(link.user_id, "link_clicks")

    async def get_daily_row(self, user_id: str, day: Optional[date] = None) -> Optional[AnalyticsDaily]:
        statement = select(AnalyticsDaily).where(
            AnalyticsDaily.user_id == user_id,
            AnalyticsDaily.day == (day or self._today()),
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def _increment_daily(self, user_id: str, counter: str) -> None:
        day = self._today()
        column = getattr(AnalyticsDaily, counter)

        try:
            existing = await self.get_daily_row(user_id, day)
            if existing is None:
                row = AnalyticsDaily(user_id=user_id, day=day, **{counter: 1})
                self.session.add(row)
                await self.session.flush()
                return

            await self.session.execute(
                update(AnalyticsDaily)
                .where(AnalyticsDaily.id == existing.id)
                .values({counter: column + 1})
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to increment {counter} for {user_id}: {e}", exc_info=True)
            raise DatabaseError(f"Unable to track {counter}.", original_error=e)
