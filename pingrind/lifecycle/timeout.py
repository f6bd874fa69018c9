"""Timeout Escalator: auto-fill a slot whose picker sat on it too long."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

import structlog

from pingrind.db import ledger
from pingrind.db.database import DEFAULT_DATABASE_URL
from pingrind.db.models import GameSlot
from pingrind.lifecycle.entries import TrackLocks, claim_entry
from pingrind.lifecycle.picker import PickerWorkflow
from pingrind.notify import messages
from pingrind.scoreboard import LineupAdapter, LineupFactory
from pingrind.tracks import ALL_TRACKS, Track
from pingrind.utils.clock import utcnow

logger = structlog.get_logger()


@dataclass(slots=True)
class TimeoutAction:
    track: str
    slot_id: str
    picker_id: Optional[str]
    table_name: str
    external_id: str


class TimeoutEscalator:
    def __init__(
        self,
        lineup_factory: LineupFactory,
        *,
        db_url: str = DEFAULT_DATABASE_URL,
        picker: Optional[PickerWorkflow] = None,
        notifier=None,
        timeout_hours: float = 18.0,
        tracks: Iterable[Track] = ALL_TRACKS,
        locks: Optional[TrackLocks] = None,
    ) -> None:
        self.lineup_factory = lineup_factory
        self.db_url = db_url
        self.picker = picker or PickerWorkflow(db_url=db_url)
        self.notifier = notifier
        self.timeout_hours = timeout_hours
        self.tracks = tuple(tracks)
        self.locks = locks or TrackLocks()

    async def check_all(self, now: Optional[datetime] = None) -> list[TimeoutAction]:
        now = now or utcnow()
        actions: list[TimeoutAction] = []
        for track in self.tracks:
            if track.timeout_exempt:
                continue
            try:
                actions.extend(await self.check_track(track, now))
            except Exception as exc:
                logger.error("timeout_check_failed", track=track.code,
                             error=str(exc), error_type=type(exc).__name__)
        return actions

    async def check_track(self, track: Track, now: Optional[datetime] = None) -> list[TimeoutAction]:
        """Escalate stale pickers on ``track``.

        Waits for a running maintenance cycle of the same track and reads the
        queue only once it holds the track lock.
        """
        async with self.locks.get(track.code):
            return await self._check_track(track, now or utcnow())

    async def _check_track(self, track: Track, now: datetime) -> list[TimeoutAction]:
        cutoff = now - timedelta(hours=self.timeout_hours)
        stale = [
            slot for slot in await ledger.list_awaiting_pick(db_url=self.db_url, track=track.code)
            if slot.picker_assigned_at is not None and slot.picker_assigned_at < cutoff
        ]
        if not stale:
            return []

        actions: list[TimeoutAction] = []
        async with self.lineup_factory() as lineup:
            for slot in stale:
                action = await self._escalate(track, slot, lineup, now)
                if action is not None:
                    actions.append(action)
        return actions

    async def _escalate(
        self, track: Track, slot: GameSlot, lineup: LineupAdapter, now: datetime,
    ) -> Optional[TimeoutAction]:
        table = await self.picker.draw_table(track, now)
        if table is None:
            logger.warning("timeout_no_eligible_table", track=track.code, slot=slot.id)
            return None

        name = track.entry_name(table.name)
        entry = await claim_entry(lineup, track, name, slot_id=slot.id, db_url=self.db_url)
        await lineup.hide(entry.external_id)

        await ledger.overwrite_slot(
            db_url=self.db_url, slot_id=slot.id, name=name,
            external_id=entry.external_id, table_name=table.name,
        )
        hours = (now - slot.picker_assigned_at).total_seconds() / 3600
        logger.info("picker_timed_out", track=track.code, slot=slot.id,
                    picker=slot.picker_id, waited_hours=round(hours, 1), table=table.name)

        if self.notifier is not None:
            await self.notifier.notify(
                messages.picker_timed_out(track.code, slot.picker_id, table.name),
                track=track.code,
            )
        return TimeoutAction(track.code, slot.id, slot.picker_id, table.name, entry.external_id)
