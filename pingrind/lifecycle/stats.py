"""Read-only reporting: live standings, winner leaderboard, per-table stats."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from pingrind.db import catalog, history, ledger
from pingrind.db.database import DEFAULT_DATABASE_URL
from pingrind.db.models import SlotStatus
from pingrind.scoreboard import LineupFactory, RankedScore
from pingrind.tracks import Track, get_track
from pingrind.utils.clock import utcnow

_DIGITS = re.compile(r"[^\d]")


def parse_score(text: str) -> Optional[int]:
    """``"1,234,560"`` -> 1234560; None when there are no digits."""
    digits = _DIGITS.sub("", text or "")
    return int(digits) if digits else None


@dataclass(slots=True)
class LeaderboardRow:
    username: str
    wins: int


@dataclass(slots=True)
class TableStats:
    table_name: str
    plays: int
    high_score: Optional[str] = None
    high_score_user: Optional[str] = None
    high_score_track: Optional[str] = None


def _code(track: Union[Track, str]) -> str:
    return (get_track(track) if isinstance(track, str) else track).code


async def standings(
    track: Union[Track, str],
    lineup_factory: LineupFactory,
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    limit: Optional[int] = None,
) -> list[RankedScore]:
    """Live ranked results of the track's ACTIVE slot ([] when idle)."""
    active = await ledger.get_active_slot(db_url=db_url, track=_code(track))
    if active is None or active.external_id is None:
        return []
    async with lineup_factory() as lineup:
        return await lineup.fetch_ranked_results(active.external_id, limit)


async def winner_leaderboard(
    track: Union[Track, str],
    days: Optional[int] = None,
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    now: Optional[datetime] = None,
) -> list[LeaderboardRow]:
    """Win counts per player, most wins first. Names group case-insensitively."""
    since = (now or utcnow()) - timedelta(days=days) if days else None
    records = await history.list_winners(db_url=db_url, track=_code(track), since=since)
    counts: Counter[str] = Counter()
    display: dict[str, str] = {}
    for rec in records:
        key = rec.username.strip().lower()
        counts[key] += 1
        display[key] = rec.username
    rows = [LeaderboardRow(display[k], n) for k, n in counts.items()]
    rows.sort(key=lambda r: (-r.wins, r.username.lower()))
    return rows


async def table_stats(query: str, *, db_url: str = DEFAULT_DATABASE_URL) -> TableStats:
    """Completed plays of a table across tracks and its all-time best score."""
    known = await catalog.get_table(db_url=db_url, name=query)
    table_name = known.name if known else query.strip()
    key = table_name.lower()

    stats = TableStats(table_name=table_name, plays=0)
    best: Optional[int] = None
    for slot in await ledger.list_slots(db_url=db_url, statuses=[SlotStatus.COMPLETED]):
        slot_table = slot.table_name or ledger.table_from_entry_name(slot.track, slot.name)
        if slot_table.strip().lower() != key:
            continue
        stats.plays += 1
        for score in await ledger.list_scores(db_url=db_url, slot_id=slot.id):
            value = parse_score(score.score)
            if value is not None and (best is None or value > best):
                best = value
                stats.high_score = score.score
                stats.high_score_user = score.username
                stats.high_score_track = slot.track
    return stats
