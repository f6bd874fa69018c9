"""Async Ledger operations on game slots and their score records.

Every call is one short session touching a single slot of a single track.
Tracks are independent queues; nothing here spans tracks in a transaction.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import delete as sa_delete, func, select, update

from pingrind.db.database import DEFAULT_DATABASE_URL, get_session
from pingrind.db.models import GameSlot, ScoreRecord, SlotStatus
from pingrind.exceptions import SlotNotFoundError
from pingrind.tracks import Track
from pingrind.utils.clock import utcnow

_QUEUE_ORDER = (GameSlot.scheduled_at, GameSlot.created_at, GameSlot.id)


def placeholder_name(track: Track, scheduled_at: datetime) -> str:
    return f"TBD {track.code} {scheduled_at:%Y-%m-%d}"


def is_placeholder_name(track: Track, name: str) -> bool:
    return name.startswith(f"TBD {track.code} ")


def table_from_entry_name(track_code: str, name: str) -> str:
    """Strip the ``" <CODE>"`` suffix from a remote entry name."""
    suffix = f" {track_code}"
    stripped = name.strip()
    if stripped.upper().endswith(suffix.upper()):
        return stripped[: -len(suffix)].strip()
    return stripped


# ── Slots ──────────────────────────────────────────────────────────


async def create_slot(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    track: Track,
    name: Optional[str] = None,
    table_name: Optional[str] = None,
    external_id: Optional[str] = None,
    status: str = SlotStatus.QUEUED,
    scheduled_at: Optional[datetime] = None,
    lead_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> GameSlot:
    """Insert a slot. QUEUED by default, scheduled ``lead_hours`` from now."""
    now = now or utcnow()
    if scheduled_at is None:
        hours = track.lead_hours if lead_hours is None else lead_hours
        scheduled_at = now + timedelta(hours=hours)
    slot = GameSlot(
        track=track.code,
        name=name or placeholder_name(track, scheduled_at),
        table_name=table_name,
        external_id=external_id,
        status=status,
        picker_id=None,
        nominator_id=None,
        picker_assigned_at=None,
        scheduled_at=scheduled_at,
        created_at=now,
        completed_at=None,
    )
    async with get_session(db_url) as s:
        s.add(slot)
    return slot


async def get_slot(*, db_url: str = DEFAULT_DATABASE_URL, slot_id: str) -> Optional[GameSlot]:
    async with get_session(db_url) as s:
        return await s.get(GameSlot, slot_id)


async def get_slot_by_external_id(
    *, db_url: str = DEFAULT_DATABASE_URL, external_id: str,
) -> Optional[GameSlot]:
    async with get_session(db_url) as s:
        result = await s.execute(
            select(GameSlot).where(GameSlot.external_id == external_id)
        )
        return result.scalars().first()


async def get_active_slot(*, db_url: str = DEFAULT_DATABASE_URL, track: str) -> Optional[GameSlot]:
    """The single ACTIVE slot for ``track``, or None."""
    async with get_session(db_url) as s:
        result = await s.execute(
            select(GameSlot)
            .where(GameSlot.track == track, GameSlot.status == SlotStatus.ACTIVE)
            .order_by(GameSlot.created_at)
        )
        return result.scalars().first()


async def list_queued_slots(*, db_url: str = DEFAULT_DATABASE_URL, track: str) -> list[GameSlot]:
    """QUEUED slots for ``track`` in activation order."""
    async with get_session(db_url) as s:
        result = await s.execute(
            select(GameSlot)
            .where(GameSlot.track == track, GameSlot.status == SlotStatus.QUEUED)
            .order_by(*_QUEUE_ORDER)
        )
        return list(result.scalars().all())


async def get_next_queued_slot(*, db_url: str = DEFAULT_DATABASE_URL, track: str) -> Optional[GameSlot]:
    """Earliest QUEUED slot for ``track``, or None."""
    queued = await list_queued_slots(db_url=db_url, track=track)
    return queued[0] if queued else None


async def get_open_slot(*, db_url: str = DEFAULT_DATABASE_URL, track: str) -> Optional[GameSlot]:
    """Earliest QUEUED slot with no picker and no table chosen."""
    async with get_session(db_url) as s:
        result = await s.execute(
            select(GameSlot)
            .where(
                GameSlot.track == track,
                GameSlot.status == SlotStatus.QUEUED,
                GameSlot.picker_id.is_(None),
                GameSlot.table_name.is_(None),
                GameSlot.external_id.is_(None),
            )
            .order_by(*_QUEUE_ORDER)
        )
        return result.scalars().first()


async def list_awaiting_pick(*, db_url: str = DEFAULT_DATABASE_URL, track: str) -> list[GameSlot]:
    """QUEUED slots with a picker assigned who has not picked yet."""
    async with get_session(db_url) as s:
        result = await s.execute(
            select(GameSlot)
            .where(
                GameSlot.track == track,
                GameSlot.status == SlotStatus.QUEUED,
                GameSlot.picker_id.is_not(None),
                GameSlot.table_name.is_(None),
                GameSlot.external_id.is_(None),
            )
            .order_by(*_QUEUE_ORDER)
        )
        return list(result.scalars().all())


async def list_slots(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    track: Optional[str] = None,
    statuses: Optional[Iterable[str]] = None,
) -> list[GameSlot]:
    async with get_session(db_url) as s:
        q = select(GameSlot)
        if track:
            q = q.where(GameSlot.track == track)
        if statuses:
            q = q.where(GameSlot.status.in_(list(statuses)))
        result = await s.execute(q.order_by(GameSlot.track, *_QUEUE_ORDER))
        return list(result.scalars().all())


async def _update_slot(db_url: str, slot_id: str, **values) -> None:
    async with get_session(db_url) as s:
        result = await s.execute(
            update(GameSlot).where(GameSlot.id == slot_id).values(**values)
        )
        if result.rowcount == 0:
            raise SlotNotFoundError(f"No slot with id {slot_id}")


async def set_status(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    slot_id: str,
    status: str,
    now: Optional[datetime] = None,
) -> None:
    """Transition a slot. COMPLETED stamps completion time, ACTIVE clears it."""
    if status not in SlotStatus.ALL:
        raise ValueError(f"Unknown slot status: {status}")
    values: dict = {"status": status}
    if status == SlotStatus.COMPLETED:
        values["completed_at"] = now or utcnow()
    elif status == SlotStatus.ACTIVE:
        values["completed_at"] = None
    await _update_slot(db_url, slot_id, **values)


async def assign_picker(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    slot_id: str,
    picker_id: str,
    nominator_id: Optional[str] = None,
    at: Optional[datetime] = None,
) -> None:
    await _update_slot(
        db_url, slot_id,
        picker_id=picker_id,
        nominator_id=nominator_id,
        picker_assigned_at=at or utcnow(),
    )


async def clear_picker(*, db_url: str = DEFAULT_DATABASE_URL, slot_id: str) -> None:
    await _update_slot(
        db_url, slot_id,
        picker_id=None, nominator_id=None, picker_assigned_at=None,
    )


async def set_slot_table(
    *, db_url: str = DEFAULT_DATABASE_URL, slot_id: str, table_name: str, name: str,
) -> None:
    """Record a table pick. The remote entry is created later."""
    await _update_slot(db_url, slot_id, table_name=table_name, name=name)


async def attach_external_id(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    slot_id: str,
    external_id: str,
    name: Optional[str] = None,
) -> None:
    values: dict = {"external_id": external_id}
    if name is not None:
        values["name"] = name
    await _update_slot(db_url, slot_id, **values)


async def overwrite_slot(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    slot_id: str,
    name: str,
    external_id: Optional[str],
    table_name: Optional[str],
) -> None:
    """Replace a queued slot's table in place; the picker forfeits."""
    await _update_slot(
        db_url, slot_id,
        name=name,
        external_id=external_id,
        table_name=table_name,
        picker_id=None,
        nominator_id=None,
        picker_assigned_at=None,
    )


# ── Scores ─────────────────────────────────────────────────────────


async def has_scores(*, db_url: str = DEFAULT_DATABASE_URL, slot_id: str) -> bool:
    async with get_session(db_url) as s:
        count = await s.scalar(
            select(func.count()).select_from(ScoreRecord).where(ScoreRecord.slot_id == slot_id)
        )
        return bool(count)


async def add_scores(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    slot_id: str,
    scores: Iterable[tuple[int, str, str]],
) -> int:
    """Append (rank, username, score) rows. No-op if the slot already has scores."""
    async with get_session(db_url) as s:
        existing = await s.scalar(
            select(func.count()).select_from(ScoreRecord).where(ScoreRecord.slot_id == slot_id)
        )
        if existing:
            return 0
        rows = [
            ScoreRecord(slot_id=slot_id, rank=rank, username=username, score=score)
            for rank, username, score in scores
        ]
        s.add_all(rows)
        return len(rows)


async def list_scores(*, db_url: str = DEFAULT_DATABASE_URL, slot_id: str) -> list[ScoreRecord]:
    async with get_session(db_url) as s:
        result = await s.execute(
            select(ScoreRecord).where(ScoreRecord.slot_id == slot_id).order_by(ScoreRecord.rank)
        )
        return list(result.scalars().all())


# ── Queries for random pick ────────────────────────────────────────


async def recent_table_names(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    track: str,
    days: int,
    now: Optional[datetime] = None,
) -> set[str]:
    """Tables the track has used in the trailing ``days`` window."""
    since = (now or utcnow()) - timedelta(days=days)
    async with get_session(db_url) as s:
        result = await s.execute(
            select(GameSlot.table_name, GameSlot.name).where(
                GameSlot.track == track, GameSlot.created_at >= since,
            )
        )
        names: set[str] = set()
        for table_name, name in result.all():
            names.add(table_name or table_from_entry_name(track, name))
        return names


# ── Reconciliation ─────────────────────────────────────────────────


async def upsert_observed_slot(
    *,
    db_url: str = DEFAULT_DATABASE_URL,
    track: str,
    external_id: str,
    name: str,
    status: str,
    scheduled_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> tuple[GameSlot, bool]:
    """Match a Ledger row to an observed remote entry. Returns (slot, created)."""
    now = now or utcnow()
    async with get_session(db_url) as s:
        result = await s.execute(
            select(GameSlot).where(GameSlot.external_id == external_id)
        )
        slot = result.scalars().first()
        if slot is None:
            slot = GameSlot(
                track=track,
                external_id=external_id,
                name=name,
                table_name=table_from_entry_name(track, name),
                status=status,
                scheduled_at=scheduled_at or now,
                created_at=now,
                completed_at=now if status == SlotStatus.COMPLETED else None,
            )
            s.add(slot)
            return slot, True

        slot.name = name
        slot.track = track
        if slot.status != status:
            if status == SlotStatus.COMPLETED and slot.completed_at is None:
                slot.completed_at = now
            elif status == SlotStatus.ACTIVE:
                slot.completed_at = None
            slot.status = status
        return slot, False


async def demote_unobserved(
    *, db_url: str = DEFAULT_DATABASE_URL, observed_external_ids: Iterable[str],
) -> int:
    """ACTIVE/COMPLETED rows whose entry was not observed become HIDDEN."""
    observed = list(observed_external_ids)
    async with get_session(db_url) as s:
        q = update(GameSlot).where(
            GameSlot.status.in_([SlotStatus.ACTIVE, SlotStatus.COMPLETED]),
            GameSlot.external_id.is_not(None),
        )
        if observed:
            q = q.where(GameSlot.external_id.not_in(observed))
        result = await s.execute(q.values(status=SlotStatus.HIDDEN))
        return result.rowcount


# ── Administrative ─────────────────────────────────────────────────


async def wipe(*, db_url: str = DEFAULT_DATABASE_URL, track: Optional[str] = None) -> int:
    """Delete slots (and their scores), optionally for one track only."""
    async with get_session(db_url) as s:
        slot_ids = select(GameSlot.id)
        if track:
            slot_ids = slot_ids.where(GameSlot.track == track)
        await s.execute(
            sa_delete(ScoreRecord).where(ScoreRecord.slot_id.in_(slot_ids))
        )
        q = sa_delete(GameSlot)
        if track:
            q = q.where(GameSlot.track == track)
        result = await s.execute(q)
        return result.rowcount
