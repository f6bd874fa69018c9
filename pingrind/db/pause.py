"""Durable singleton pause/override record."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pingrind.db.database import DEFAULT_DATABASE_URL, get_session
from pingrind.db.models import PauseState

_SINGLETON_ID = 1


async def load_pause(*, db_url: str = DEFAULT_DATABASE_URL) -> PauseState:
    """Current pause row; an unpaused row is created on first read."""
    async with get_session(db_url) as s:
        row = await s.get(PauseState, _SINGLETON_ID)
        if row is None:
            row = PauseState(
                id=_SINGLETON_ID, is_paused=False,
                track=None, paused_until=None, override_name=None,
            )
            s.add(row)
        return row


async def save_pause(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    track: str,
    paused_until: datetime,
    override_name: str,
) -> PauseState:
    async with get_session(db_url) as s:
        row = await s.get(PauseState, _SINGLETON_ID)
        if row is None:
            row = PauseState(id=_SINGLETON_ID)
            s.add(row)
        row.is_paused = True
        row.track = track
        row.paused_until = paused_until
        row.override_name = override_name
        return row


async def clear_pause(*, db_url: str = DEFAULT_DATABASE_URL) -> Optional[PauseState]:
    async with get_session(db_url) as s:
        row = await s.get(PauseState, _SINGLETON_ID)
        if row is None:
            return None
        row.is_paused = False
        row.track = None
        row.paused_until = None
        row.override_name = None
        return row
