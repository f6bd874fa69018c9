"""Scoreboard username <-> chat user id links (identity resolution)."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from pingrind.db.database import DEFAULT_DATABASE_URL, get_session
from pingrind.db.models import PlayerLink


async def link_player(
    *, db_url: str = DEFAULT_DATABASE_URL, username: str, user_id: str,
) -> PlayerLink:
    """Create or repoint the link for ``username``."""
    key = username.strip().lower()
    async with get_session(db_url) as s:
        result = await s.execute(select(PlayerLink).where(PlayerLink.username_key == key))
        row = result.scalars().first()
        if row is None:
            row = PlayerLink(username=username.strip(), username_key=key, user_id=user_id)
            s.add(row)
        else:
            row.user_id = user_id
        return row


async def resolve_user_id(*, db_url: str = DEFAULT_DATABASE_URL, username: str) -> Optional[str]:
    """Chat identity for a scoreboard username, or None if unlinked."""
    key = username.strip().lower()
    async with get_session(db_url) as s:
        return await s.scalar(select(PlayerLink.user_id).where(PlayerLink.username_key == key))


async def resolve_username(*, db_url: str = DEFAULT_DATABASE_URL, user_id: str) -> Optional[str]:
    """First scoreboard username linked to ``user_id``, or None."""
    async with get_session(db_url) as s:
        return await s.scalar(
            select(PlayerLink.username)
            .where(PlayerLink.user_id == user_id)
            .order_by(PlayerLink.id)
            .limit(1)
        )
