"""Append-only winner history: source of "last winner" and leaderboards."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select

from pingrind.db.database import DEFAULT_DATABASE_URL, get_session
from pingrind.db.models import WinnerRecord
from pingrind.utils.clock import utcnow


async def append_winner(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    track: str,
    external_id: Optional[str],
    username: str,
    score: str,
    slot_name: str,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WinnerRecord:
    row = WinnerRecord(
        track=track,
        external_id=external_id,
        user_id=user_id,
        username=username,
        score=score,
        slot_name=slot_name,
        created_at=now or utcnow(),
    )
    async with get_session(db_url) as s:
        s.add(row)
    return row


async def last_winner(*, db_url: str = DEFAULT_DATABASE_URL, track: str) -> Optional[WinnerRecord]:
    """Most recent winner record for ``track``."""
    async with get_session(db_url) as s:
        result = await s.execute(
            select(WinnerRecord)
            .where(WinnerRecord.track == track)
            .order_by(WinnerRecord.id.desc())
            .limit(1)
        )
        return result.scalars().first()


async def last_winner_before(
    *, db_url: str = DEFAULT_DATABASE_URL, track: str, record_id: int,
) -> Optional[WinnerRecord]:
    """The winner record that preceded ``record_id`` on ``track``."""
    async with get_session(db_url) as s:
        result = await s.execute(
            select(WinnerRecord)
            .where(WinnerRecord.track == track, WinnerRecord.id < record_id)
            .order_by(WinnerRecord.id.desc())
            .limit(1)
        )
        return result.scalars().first()


async def winner_for_external_id(
    *, db_url: str = DEFAULT_DATABASE_URL, track: str, external_id: str,
) -> Optional[WinnerRecord]:
    async with get_session(db_url) as s:
        result = await s.execute(
            select(WinnerRecord)
            .where(WinnerRecord.track == track, WinnerRecord.external_id == external_id)
            .order_by(WinnerRecord.id.desc())
            .limit(1)
        )
        return result.scalars().first()


async def list_winners(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    track: Optional[str] = None,
    since: Optional[datetime] = None,
) -> list[WinnerRecord]:
    """Winner records oldest first, optionally filtered by track and age."""
    async with get_session(db_url) as s:
        q = select(WinnerRecord)
        if track:
            q = q.where(WinnerRecord.track == track)
        if since is not None:
            q = q.where(WinnerRecord.created_at > since)
        result = await s.execute(q.order_by(WinnerRecord.id))
        return list(result.scalars().all())
