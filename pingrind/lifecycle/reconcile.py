"""Reconciliation Engine: rewrite Ledger status from the observed lineup.

The scoreboard is authoritative for whether an entry still exists and what
state it is in; the Ledger keeps history. Problems found here are corrected
and logged, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

import structlog

from pingrind.db import ledger
from pingrind.db.database import DEFAULT_DATABASE_URL
from pingrind.db.models import SlotStatus
from pingrind.scoreboard import LineupEntry, LineupFactory
from pingrind.tracks import ALL_TRACKS, Track, track_for_entry
from pingrind.utils.clock import utcnow

logger = structlog.get_logger()


def observed_status(entry: LineupEntry) -> str:
    """visible+unlocked -> ACTIVE, hidden -> QUEUED, visible+locked -> COMPLETED."""
    if entry.hidden:
        return SlotStatus.QUEUED
    if entry.locked:
        return SlotStatus.COMPLETED
    return SlotStatus.ACTIVE


@dataclass
class TrackSweep:
    observed: int = 0
    created: int = 0
    extra_active: int = 0
    demoted_active: int = 0


@dataclass
class ReconcileReport:
    tracks: dict[str, TrackSweep] = field(default_factory=dict)
    unowned: int = 0
    demoted: int = 0

    @property
    def observed(self) -> int:
        return sum(t.observed for t in self.tracks.values())


class Reconciler:
    def __init__(
        self,
        lineup_factory: LineupFactory,
        *,
        db_url: str = DEFAULT_DATABASE_URL,
        tracks: Iterable[Track] = ALL_TRACKS,
    ) -> None:
        self.lineup_factory = lineup_factory
        self.db_url = db_url
        self.tracks = tuple(tracks)

    async def sweep(self, now: Optional[datetime] = None) -> ReconcileReport:
        now = now or utcnow()
        async with self.lineup_factory() as lineup:
            entries = await lineup.list_entries()

        report = ReconcileReport()
        by_track: dict[str, list[LineupEntry]] = {t.code: [] for t in self.tracks}
        for entry in entries:
            track = track_for_entry(entry.name, entry.tags)
            if track is None or track.code not in by_track:
                report.unowned += 1
                continue
            by_track[track.code].append(entry)

        observed_ids: set[str] = set()
        for track in self.tracks:
            sweep = await self._sweep_track(track, by_track[track.code], now)
            report.tracks[track.code] = sweep
            observed_ids.update(e.external_id for e in by_track[track.code])

        report.demoted = await ledger.demote_unobserved(
            db_url=self.db_url, observed_external_ids=observed_ids,
        )
        if report.demoted:
            logger.warning("reconcile_demoted_unobserved", count=report.demoted)
        logger.info("reconcile_done", observed=report.observed,
                    unowned=report.unowned, demoted=report.demoted)
        return report

    async def _sweep_track(
        self, track: Track, entries: list[LineupEntry], now: datetime,
    ) -> TrackSweep:
        sweep = TrackSweep(observed=len(entries))

        # Imported queued rows go behind everything already queued, in lineup order.
        queued = await ledger.list_queued_slots(db_url=self.db_url, track=track.code)
        next_at = max([now] + [s.scheduled_at for s in queued])

        active_id: Optional[str] = None
        for entry in entries:
            status = observed_status(entry)
            if status == SlotStatus.ACTIVE:
                if active_id is not None:
                    logger.warning("reconcile_extra_active", track=track.code,
                                   external_id=entry.external_id, name=entry.name)
                    status = SlotStatus.HIDDEN
                    sweep.extra_active += 1
                else:
                    active_id = entry.external_id

            scheduled_at = None
            if status == SlotStatus.QUEUED:
                next_at += timedelta(seconds=1)
                scheduled_at = next_at

            _, created = await ledger.upsert_observed_slot(
                db_url=self.db_url, track=track.code, external_id=entry.external_id,
                name=entry.name, status=status, scheduled_at=scheduled_at, now=now,
            )
            if created:
                sweep.created += 1
                logger.info("reconcile_imported", track=track.code,
                            external_id=entry.external_id, status=status)

        # An ACTIVE row with no remote entry cannot be live.
        for slot in await ledger.list_slots(
            db_url=self.db_url, track=track.code, statuses=[SlotStatus.ACTIVE],
        ):
            if slot.external_id is None:
                await ledger.set_status(db_url=self.db_url, slot_id=slot.id,
                                        status=SlotStatus.HIDDEN)
                sweep.demoted_active += 1
                logger.warning("reconcile_active_without_entry", track=track.code, slot=slot.id)

        logger.info("reconcile_track", track=track.code, observed=sweep.observed,
                    created=sweep.created, extra_active=sweep.extra_active)
        return sweep
