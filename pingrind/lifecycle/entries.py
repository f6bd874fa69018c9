"""Remote entry provisioning shared by promotion and timeout escalation."""

from __future__ import annotations

import asyncio

import structlog

from pingrind.db import ledger
from pingrind.db.database import DEFAULT_DATABASE_URL
from pingrind.scoreboard import LineupAdapter, LineupEntry
from pingrind.tracks import Track

logger = structlog.get_logger()


class TrackLocks:
    """One ``asyncio.Lock`` per track code, shared by every routine that edits a track."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, code: str) -> asyncio.Lock:
        return self._locks.setdefault(code.upper(), asyncio.Lock())


async def claim_entry(
    lineup: LineupAdapter,
    track: Track,
    name: str,
    *,
    slot_id: str,
    db_url: str = DEFAULT_DATABASE_URL,
) -> LineupEntry:
    """Find or create the remote entry ``name`` for ``slot_id`` and tag it.

    A same-named entry is adopted only when it is unlocked and no other
    Ledger row owns its id. Locked namesakes are earlier cycles of a replayed
    table and are left alone.
    """
    for candidate in await lineup.find_entries_by_name(name):
        if candidate.locked:
            continue
        owner = await ledger.get_slot_by_external_id(
            db_url=db_url, external_id=candidate.external_id,
        )
        if owner is not None and owner.id != slot_id:
            continue
        logger.info("lineup_entry_adopted", track=track.code, slot=slot_id,
                    external_id=candidate.external_id, name=name)
        entry = candidate
        break
    else:
        entry = await lineup.create_entry(name)

    await lineup.tag(entry.external_id, track.code)
    return entry
