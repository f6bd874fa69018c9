"""Picker Workflow: who may choose the next table, and what they may choose.

Sole authority for assignment legality. Mutates the Ledger only; remote
entries for picked tables are created when the slot is provisioned by the
Timeout Escalator or promoted by the Cycle Controller.

Slot vocabulary used here:
- open: QUEUED, no picker, no table, no remote entry
- awaiting pick: QUEUED with a picker but no table yet
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import structlog

from pingrind.db import catalog, history, ledger, players
from pingrind.db.database import DEFAULT_DATABASE_URL
from pingrind.db.models import CatalogTable, GameSlot, WinnerRecord
from pingrind.exceptions import (
    AssignmentRejected,
    ConfirmationRequired,
    NominationRejected,
    PickRejected,
)
from pingrind.tracks import Track, get_track
from pingrind.utils.clock import utcnow

logger = structlog.get_logger()


@dataclass(slots=True)
class TableCheck:
    requested: str
    known: bool
    compatible: bool
    canonical_name: str
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.known and self.compatible


def same_winner(previous: Optional[WinnerRecord], username: str) -> bool:
    """Case-insensitive identity match against a prior winner record."""
    if previous is None:
        return False
    return previous.username.strip().lower() == username.strip().lower()


def _track(track: Union[Track, str]) -> Track:
    return get_track(track) if isinstance(track, str) else track


class PickerWorkflow:
    def __init__(
        self,
        *,
        db_url: str = DEFAULT_DATABASE_URL,
        exclude_days: int = 21,
        dynasty_enabled: bool = True,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.db_url = db_url
        self.exclude_days = exclude_days
        self.dynasty_enabled = dynasty_enabled
        self.rng = rng or random.Random()

    # ── assignment ─────────────────────────────────────────────────

    async def assign(self, track: Union[Track, str], slot_id: str, user_id: str) -> GameSlot:
        """Assign ``user_id`` as picker. Only the earliest open slot qualifies."""
        track = _track(track)
        open_slot = await ledger.get_open_slot(db_url=self.db_url, track=track.code)
        if open_slot is None:
            raise AssignmentRejected(f"{track.code} has no slot waiting for a picker")
        if open_slot.id != slot_id:
            raise AssignmentRejected(
                f"Only the next open {track.code} slot ({open_slot.name}) can be assigned"
            )
        await ledger.assign_picker(db_url=self.db_url, slot_id=slot_id, picker_id=user_id)
        logger.info("picker_assigned", track=track.code, slot=slot_id, picker=user_id)
        return await ledger.get_slot(db_url=self.db_url, slot_id=slot_id)

    async def is_repeat_winner(
        self,
        track: Union[Track, str],
        username: str,
        before_record_id: Optional[int] = None,
    ) -> bool:
        """Dynasty rule: does ``username`` match the previous winner?

        With ``before_record_id`` the comparison is against the record that
        preceded it, so a re-run compares against the same predecessor.
        """
        if not self.dynasty_enabled:
            return False
        code = _track(track).code
        if before_record_id is None:
            previous = await history.last_winner(db_url=self.db_url, track=code)
        else:
            previous = await history.last_winner_before(
                db_url=self.db_url, track=code, record_id=before_record_id,
            )
        return same_winner(previous, username)

    async def assign_winner(
        self,
        track: Union[Track, str],
        slot_id: str,
        username: str,
        user_id: Optional[str],
        before_record_id: Optional[int] = None,
    ) -> bool:
        """Make a cycle's winner the picker of the freshly provisioned slot.

        Returns False when the dynasty rule applies or the winner has no
        linked chat identity.
        """
        track = _track(track)
        if await self.is_repeat_winner(track, username, before_record_id):
            logger.info("dynasty_rule_applied", track=track.code, winner=username)
            return False
        if not user_id:
            logger.info("winner_unlinked", track=track.code, winner=username)
            return False
        await ledger.assign_picker(db_url=self.db_url, slot_id=slot_id, picker_id=user_id)
        logger.info("picker_assigned", track=track.code, slot=slot_id,
                    picker=user_id, source="winner")
        return True

    async def nominate(
        self, track: Union[Track, str], nominator_id: str, nominee_id: str,
    ) -> GameSlot:
        """A repeat winner hands the pick to someone else."""
        track = _track(track)
        last = await history.last_winner(db_url=self.db_url, track=track.code)
        if last is None:
            raise NominationRejected(f"{track.code} has no winner on record")

        nominator_name = await players.resolve_username(db_url=self.db_url, user_id=nominator_id)
        if not nominator_name or not same_winner(last, nominator_name):
            raise NominationRejected(
                f"Only the last {track.code} winner ({last.username}) can nominate a picker"
            )
        if nominee_id == nominator_id:
            raise NominationRejected("You cannot nominate yourself")

        slot = await ledger.get_open_slot(db_url=self.db_url, track=track.code)
        if slot is None:
            raise NominationRejected(f"A picker has already been designated for {track.code}")

        await ledger.assign_picker(
            db_url=self.db_url, slot_id=slot.id,
            picker_id=nominee_id, nominator_id=nominator_id,
        )
        logger.info("picker_nominated", track=track.code, slot=slot.id,
                    nominator=nominator_id, nominee=nominee_id)
        return await ledger.get_slot(db_url=self.db_url, slot_id=slot.id)

    async def current_picker(self, track: Union[Track, str]) -> Optional[GameSlot]:
        """The slot awaiting a pick (carries picker and nominator), or None."""
        pending = await ledger.list_awaiting_pick(db_url=self.db_url, track=_track(track).code)
        return pending[0] if pending else None

    # ── table selection ────────────────────────────────────────────

    async def check_table(self, track: Union[Track, str], table_name: str) -> TableCheck:
        track = _track(track)
        requested = table_name.strip()
        table = await catalog.get_table(db_url=self.db_url, name=requested)
        if table is None:
            return TableCheck(requested, known=False, compatible=False,
                              canonical_name=requested,
                              reason="table is not in the catalog")
        if not catalog.is_compatible(table, track.platform):
            return TableCheck(requested, known=True, compatible=False,
                              canonical_name=table.name,
                              reason=f"table is not flagged for {track.platform.value}")
        return TableCheck(requested, known=True, compatible=True, canonical_name=table.name)

    async def pick_table(
        self,
        track: Union[Track, str],
        user_id: str,
        table_name: str,
        confirmed: bool = False,
    ) -> GameSlot:
        """Record the picker's table choice on their pending slot.

        Unknown or incompatible tables raise ``ConfirmationRequired`` unless
        ``confirmed`` is set.
        """
        track = _track(track)
        slot = await self._pending_slot_for(track, user_id)
        check = await self.check_table(track, table_name)
        if not check.ok and not confirmed:
            raise ConfirmationRequired(check.canonical_name, check.reason)
        if not check.ok:
            logger.warning("table_pick_confirmed_override", track=track.code,
                           table=check.canonical_name, reason=check.reason)
        return await self._record_pick(track, slot, check.canonical_name, user_id)

    async def random_pick(
        self, track: Union[Track, str], user_id: str, now: Optional[datetime] = None,
    ) -> GameSlot:
        track = _track(track)
        slot = await self._pending_slot_for(track, user_id)
        table = await self.draw_table(track, now)
        if table is None:
            raise PickRejected(f"No eligible {track.platform.value} tables to draw from")
        return await self._record_pick(track, slot, table.name, user_id, random_pick=True)

    async def draw_table(
        self, track: Union[Track, str], now: Optional[datetime] = None,
    ) -> Optional[CatalogTable]:
        """Uniform draw of a compatible table not used by the track recently."""
        track = _track(track)
        recent = await ledger.recent_table_names(
            db_url=self.db_url, track=track.code, days=self.exclude_days, now=now or utcnow(),
        )
        return await catalog.random_compatible_table(
            db_url=self.db_url, platform=track.platform, exclude=recent, rng=self.rng,
        )

    async def _pending_slot_for(self, track: Track, user_id: str) -> GameSlot:
        for slot in await ledger.list_awaiting_pick(db_url=self.db_url, track=track.code):
            if slot.picker_id == user_id:
                return slot
        raise PickRejected(f"You are not the current {track.code} picker")

    async def _record_pick(
        self,
        track: Track,
        slot: GameSlot,
        table_name: str,
        user_id: str,
        random_pick: bool = False,
    ) -> GameSlot:
        await ledger.set_slot_table(
            db_url=self.db_url, slot_id=slot.id,
            table_name=table_name, name=track.entry_name(table_name),
        )
        logger.info("table_picked", track=track.code, slot=slot.id, table=table_name,
                    picker=user_id, random=random_pick)
        return await ledger.get_slot(db_url=self.db_url, slot_id=slot.id)
