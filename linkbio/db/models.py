"""
Database Models for the Profile Service

This module defines the SQLModel database schemas for:
- Profile: public page owner, appearance-free core fields and moderation flags
- Link: profile links with a denormalized click counter
- MusicTrack: tracks shown in the profile music player
- Comment: guestbook comments posted on a profile
- AnalyticsDaily: per-profile, per-day view and click counters

Design Decisions:
- Profile ids are the auth provider's user ids (strings), not local sequences
- AnalyticsDaily has a unique (user_id, day) pair so increments upsert one row
- clicks on Link is denormalized for quick dashboards without joins
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Integer, String, Text, UniqueConstraint
from sqlmodel import Column, Field, SQLModel


def _new_id() -> str:
    return str(uuid.uuid4())


class Profile(SQLModel, table=True):
    """
    A user's public profile.

    Fields:
    - id: User id issued by the auth provider
    - handle: Unique lowercase handle ([a-z0-9_]{3,20})
    - rich_text: Markdown-like bio body, rendered by services.rich_text
    - badges: Badge names (owner, admin, staff, verified, pro, founder)
    - avatar_url, profile_effect, background_mode, background_value: the
      visual fields moderation can reset
    - is_admin: Staff flag for moderation endpoints
    - banned_reason: Moderator note stored with a ban
    """
    __tablename__ = "profiles"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    handle: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True, index=True),
        max_length=20
    )
    display_name: Optional[str] = Field(default=None, sa_column=Column(String(50), nullable=True))
    bio: str = Field(default="", sa_column=Column(String(240), nullable=False, default=""))
    rich_text: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    avatar_url: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    profile_effect: str = Field(default="none", sa_column=Column(String(20), nullable=False, default="none"))
    background_mode: str = Field(default="theme", sa_column=Column(String(20), nullable=False, default="theme"))
    background_value: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    badges: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_public: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    comments_enabled: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    show_view_count: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_admin: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    is_banned: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    banned_reason: Optional[str] = Field(default=None, sa_column=Column(String(500), nullable=True))
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class Link(SQLModel, table=True):
    __tablename__ = "links"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="profiles.id", index=True, max_length=64)
    title: str = Field(sa_column=Column(String(80), nullable=False))
    url: str = Field(sa_column=Column(Text, nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(String(120), nullable=True))
    icon: Optional[str] = Field(default=None, sa_column=Column(String(500), nullable=True))
    sort_order: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    clicks: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))


class MusicTrack(SQLModel, table=True):
    __tablename__ = "music_tracks"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="profiles.id", index=True, max_length=64)
    title: str = Field(sa_column=Column(String(80), nullable=False))
    embed_url: str = Field(sa_column=Column(Text, nullable=False))
    sort_order: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))


class Comment(SQLModel, table=True):
    """
    Guestbook comment.

    user_id is the profile the comment was posted on, not the author;
    author_name is captured at posting time.
    """
    __tablename__ = "comments"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    user_id: str = Field(foreign_key="profiles.id", index=True, max_length=64)
    author_name: str = Field(sa_column=Column(String(60), nullable=False))
    author_website: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    body: str = Field(sa_column=Column(String(300), nullable=False))
    status: str = Field(default="published", sa_column=Column(String(20), nullable=False, index=True))
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )


class AnalyticsDaily(SQLModel, table=True):
    __tablename__ = "analytics_daily"
    __table_args__ = (UniqueConstraint("user_id", "day", name="uq_analytics_daily_user_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True, max_length=64)
    day: date = Field(sa_column=Column(Date, nullable=False, index=True))
    profile_views: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    link_clicks: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
