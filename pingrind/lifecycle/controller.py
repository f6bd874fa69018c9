"""Cycle Controller: per-track maintenance that closes, provisions and promotes.

One run, scoped to one track:
1. read the ACTIVE slot and the earliest QUEUED slot
2. close the ACTIVE slot: record scores, lock the entry, mark COMPLETED,
   append the winner and apply the dynasty rule
3. choose the slot to promote, honouring an active Pause/Override
4. provision a fresh QUEUED slot (the winner's pick goes here)
5. promote it on the scoreboard (show + unlock) and in the Ledger

Every step is guarded by a state check so a re-run after a partial failure
does not duplicate scores or winner records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Union

import structlog

from pingrind.db import history, ledger, players
from pingrind.db.database import DEFAULT_DATABASE_URL
from pingrind.db.models import GameSlot, SlotStatus
from pingrind.exceptions import EntryNotFoundError, GrindError
from pingrind.lifecycle.entries import TrackLocks, claim_entry
from pingrind.lifecycle.pause import PauseControl
from pingrind.lifecycle.picker import PickerWorkflow, same_winner
from pingrind.notify import messages
from pingrind.scoreboard import LineupAdapter, LineupFactory, RankedScore
from pingrind.tracks import ALL_TRACKS, Track, get_track
from pingrind.utils.clock import utcnow
from pingrind.utils.retry import RETRYABLE, retry_async

logger = structlog.get_logger()


@dataclass
class CycleOutcome:
    track: str
    closed_slot: Optional[str] = None
    winner: Optional[str] = None
    winner_user_id: Optional[str] = None
    score: Optional[str] = None
    dynasty: bool = False
    picker_assigned: bool = False
    provisioned_slot: Optional[str] = None
    promoted_slot: Optional[str] = None
    skipped: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


class CycleController:
    def __init__(
        self,
        lineup_factory: LineupFactory,
        *,
        db_url: str = DEFAULT_DATABASE_URL,
        picker: Optional[PickerWorkflow] = None,
        pause: Optional[PauseControl] = None,
        notifier=None,
        fast_track_lead_hours: float = 48.0,
        results_attempts: int = 3,
        results_delay: float = 2.0,
        results_limit: int = 1000,
        locks: Optional[TrackLocks] = None,
    ) -> None:
        self.lineup_factory = lineup_factory
        self.db_url = db_url
        self.picker = picker or PickerWorkflow(db_url=db_url)
        self.pause = pause or PauseControl(
            db_url=db_url, notifier=notifier, lineup_factory=lineup_factory,
        )
        self.notifier = notifier
        self.fast_track_lead_hours = fast_track_lead_hours
        self.results_attempts = results_attempts
        self.results_delay = results_delay
        self.results_limit = results_limit
        self.locks = locks or TrackLocks()

    async def run_all(self, tracks: Iterable[Track] = ALL_TRACKS) -> list[CycleOutcome]:
        """Run every track; one track's failure never blocks another."""
        return [await self.run_track(track) for track in tracks]

    async def run_track(self, track: Union[Track, str]) -> CycleOutcome:
        track = get_track(track) if isinstance(track, str) else track
        lock = self.locks.get(track.code)
        if lock.locked():
            logger.warning("cycle_already_running", track=track.code)
            return CycleOutcome(track=track.code, skipped=True)

        async with lock:
            logger.info("cycle_start", track=track.code)
            try:
                outcome = await self._run(track)
            except Exception as exc:
                logger.error("cycle_failed", track=track.code,
                             error=str(exc), error_type=type(exc).__name__)
                await self._notify(messages.cycle_failed(track.code, str(exc)), track.code)
                return CycleOutcome(track=track.code, error=str(exc))

        logger.info("cycle_done", track=track.code, winner=outcome.winner,
                    dynasty=outcome.dynasty, promoted=outcome.promoted_slot)
        await self._notify(messages.cycle_closed(outcome), track.code)
        return outcome

    async def _run(self, track: Track) -> CycleOutcome:
        now = utcnow()
        await self.pause.check_expiration(now)

        active = await ledger.get_active_slot(db_url=self.db_url, track=track.code)
        queued = await ledger.get_next_queued_slot(db_url=self.db_url, track=track.code)
        outcome = CycleOutcome(track=track.code)

        async with self.lineup_factory() as lineup:
            record_id = None
            if active is not None:
                record_id = await self._close_active(track, active, lineup, outcome, now)

            target = None
            if queued is not None:
                target = await self._choose_promotion(track, queued, now)

            fresh = await self._provision(track, closed=active is not None,
                                          target=target, now=now)
            if fresh is not None:
                outcome.provisioned_slot = fresh.name
                if outcome.winner and not outcome.dynasty:
                    outcome.picker_assigned = await self.picker.assign_winner(
                        track, fresh.id, outcome.winner, outcome.winner_user_id,
                        before_record_id=record_id,
                    )

            if target is None:
                logger.warning("cycle_nothing_queued", track=track.code)
                return outcome

            promoted = await self._promote(track, target, lineup, now)
            outcome.promoted_slot = promoted.name
        return outcome

    # ── close ──────────────────────────────────────────────────────

    async def _close_active(
        self,
        track: Track,
        active: GameSlot,
        lineup: LineupAdapter,
        outcome: CycleOutcome,
        now: datetime,
    ) -> Optional[int]:
        """Close the live slot. Returns the id of its winner record, if any."""
        outcome.closed_slot = active.name
        if active.external_id is None:
            logger.warning("active_slot_unprovisioned", track=track.code, slot=active.id)
            await ledger.set_status(db_url=self.db_url, slot_id=active.id,
                                    status=SlotStatus.HIDDEN)
            return None
        try:
            await lineup.get_entry(active.external_id)
        except EntryNotFoundError:
            logger.warning("active_entry_missing", track=track.code, slot=active.id,
                           external_id=active.external_id)
            await ledger.set_status(db_url=self.db_url, slot_id=active.id,
                                    status=SlotStatus.HIDDEN)
            return None

        scores = await self._results_for(track, active, lineup)
        winner = next((s for s in scores if s.rank == 1), None)

        await lineup.lock(active.external_id)
        await ledger.set_status(db_url=self.db_url, slot_id=active.id,
                                status=SlotStatus.COMPLETED, now=now)
        logger.info("slot_completed", track=track.code, slot=active.id, name=active.name)

        if winner is None:
            logger.info("cycle_no_winner", track=track.code, slot=active.id)
            return None

        outcome.winner = winner.username
        outcome.score = winner.score
        outcome.winner_user_id = await players.resolve_user_id(
            db_url=self.db_url, username=winner.username,
        )

        existing = await history.winner_for_external_id(
            db_url=self.db_url, track=track.code, external_id=active.external_id,
        )
        if existing is not None:
            logger.info("winner_already_recorded", track=track.code, record=existing.id)
            previous = await history.last_winner_before(
                db_url=self.db_url, track=track.code, record_id=existing.id,
            )
            record_id = existing.id
        else:
            previous = await history.last_winner(db_url=self.db_url, track=track.code)
            record = await history.append_winner(
                db_url=self.db_url, track=track.code, external_id=active.external_id,
                user_id=outcome.winner_user_id, username=winner.username,
                score=winner.score, slot_name=active.name, now=now,
            )
            record_id = record.id
        outcome.dynasty = self.picker.dynasty_enabled and same_winner(previous, winner.username)
        return record_id

    async def _results_for(
        self, track: Track, slot: GameSlot, lineup: LineupAdapter,
    ) -> list[RankedScore]:
        """Recorded scores if present, else fetched (with retries) and recorded."""
        recorded = await ledger.list_scores(db_url=self.db_url, slot_id=slot.id)
        if recorded:
            logger.info("scores_already_recorded", track=track.code, slot=slot.id,
                        count=len(recorded))
            return [RankedScore(r.rank, r.username, r.score) for r in recorded]

        try:
            scores = await retry_async(
                lambda: lineup.fetch_ranked_results(slot.external_id, self.results_limit),
                max_attempts=self.results_attempts,
                base_delay=self.results_delay,
                operation=f"results:{track.code}",
            )
        except RETRYABLE as exc:
            logger.warning("results_unavailable", track=track.code, slot=slot.id, error=str(exc))
            return []
        except EntryNotFoundError:
            return []

        if len(scores) >= self.results_limit:
            logger.warning("results_possibly_truncated", track=track.code, slot=slot.id,
                           limit=self.results_limit)
        inserted = await ledger.add_scores(
            db_url=self.db_url, slot_id=slot.id,
            scores=[(s.rank, s.username, s.score) for s in scores],
        )
        logger.info("scores_recorded", track=track.code, slot=slot.id, count=inserted)
        return scores

    # ── provision ──────────────────────────────────────────────────

    async def _provision(
        self, track: Track, *, closed: bool, target: Optional[GameSlot], now: datetime,
    ) -> Optional[GameSlot]:
        """Add the next cycle's QUEUED slot.

        A run that closed nothing only tops up a queue that would otherwise be
        empty after promotion. A re-run after a failed promotion therefore
        finds the slot its first attempt provisioned and adds none.
        """
        if not closed:
            waiting = [
                s for s in await ledger.list_queued_slots(db_url=self.db_url, track=track.code)
                if target is None or s.id != target.id
            ]
            if waiting:
                logger.info("slot_already_provisioned", track=track.code, slot=waiting[-1].id)
                return None

        fresh = await ledger.create_slot(
            db_url=self.db_url, track=track,
            lead_hours=self.fast_track_lead_hours if track.lead_hours else 0.0,
            now=now,
        )
        logger.info("slot_provisioned", track=track.code, slot=fresh.id,
                    scheduled_at=fresh.scheduled_at.isoformat())
        return fresh

    # ── promote ────────────────────────────────────────────────────

    async def _choose_promotion(self, track: Track, queued: GameSlot, now: datetime) -> GameSlot:
        override = await self.pause.active_override(track, now)
        if not override:
            return queued

        candidates = await ledger.list_queued_slots(db_url=self.db_url, track=track.code)
        key = override.strip().lower()
        target = next((s for s in candidates if s.name.strip().lower() == key), None)
        if target is None:
            logger.warning("override_slot_missing", track=track.code, override=override)
            return queued

        for slot in candidates:
            if slot.id == target.id:
                break
            if slot.picker_id:
                logger.info("override_picker_cleared", track=track.code, slot=slot.id,
                            picker=slot.picker_id)
                await ledger.clear_picker(db_url=self.db_url, slot_id=slot.id)
        logger.info("override_promoting", track=track.code, slot=target.id, name=target.name)
        return target

    async def _promote(
        self, track: Track, slot: GameSlot, lineup: LineupAdapter, now: datetime,
    ) -> GameSlot:
        external_id = slot.external_id
        if external_id is not None:
            try:
                await lineup.get_entry(external_id)
            except EntryNotFoundError:
                logger.warning("queued_entry_missing", track=track.code, slot=slot.id,
                               external_id=external_id)
                external_id = None

        if external_id is None:
            external_id = await self._provision_remote(track, slot, lineup, now)

        await lineup.show(external_id)
        await lineup.unlock(external_id)
        await ledger.set_status(db_url=self.db_url, slot_id=slot.id, status=SlotStatus.ACTIVE)
        promoted = await ledger.get_slot(db_url=self.db_url, slot_id=slot.id)
        logger.info("slot_promoted", track=track.code, slot=slot.id, name=promoted.name)
        return promoted

    async def _provision_remote(
        self, track: Track, slot: GameSlot, lineup: LineupAdapter, now: datetime,
    ) -> str:
        """Create (or adopt an unclaimed namesake of) the remote entry for a slot about to go live."""
        if slot.table_name:
            name = track.entry_name(slot.table_name)
        elif ledger.is_placeholder_name(track, slot.name):
            table = await self.picker.draw_table(track, now)
            if table is None:
                raise GrindError(f"No eligible {track.platform.value} table to auto-pick")
            name = track.entry_name(table.name)
            await ledger.set_slot_table(db_url=self.db_url, slot_id=slot.id,
                                        table_name=table.name, name=name)
            logger.info("table_auto_picked", track=track.code, slot=slot.id, table=table.name)
        else:
            name = slot.name

        entry = await claim_entry(lineup, track, name, slot_id=slot.id, db_url=self.db_url)
        await ledger.attach_external_id(db_url=self.db_url, slot_id=slot.id,
                                        external_id=entry.external_id, name=name)
        return entry.external_id

    async def _notify(self, text: str, track: str) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify(text, track=track)
        except Exception as exc:
            logger.error("notify_failed", track=track, error=str(exc))
