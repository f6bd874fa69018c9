"""Pause/Override: inject a named slot ahead of the normal queue for a while."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Union

import structlog

from pingrind.db import ledger
from pingrind.db import pause as pause_store
from pingrind.db.database import DEFAULT_DATABASE_URL
from pingrind.db.models import GameSlot, PauseState
from pingrind.exceptions import EntryNotFoundError
from pingrind.notify import messages
from pingrind.tracks import Track, get_track
from pingrind.utils.clock import utcnow

logger = structlog.get_logger()


class PauseControl:
    def __init__(
        self,
        *,
        db_url: str = DEFAULT_DATABASE_URL,
        notifier=None,
        default_hours: float = 24.0,
        lineup_factory=None,
    ) -> None:
        self.db_url = db_url
        self.notifier = notifier
        self.default_hours = default_hours
        self.lineup_factory = lineup_factory

    async def set_pause(
        self,
        track: Union[Track, str],
        name: str,
        duration_hours: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> GameSlot:
        """Pause normal picking on ``track`` and mark its next slot as ``name``.

        The earliest queued slot is renamed in place; its table, remote entry
        and picker are cleared (the picker forfeits). A forfeited remote entry
        is deleted from the scoreboard so reconciliation cannot re-import it.
        With an empty queue a new slot carrying the override name is created.
        """
        track = get_track(track) if isinstance(track, str) else track
        name = name.strip()
        if not name:
            raise ValueError("Override name must not be empty")
        now = now or utcnow()
        hours = self.default_hours if duration_hours is None else duration_hours
        until = now + timedelta(hours=hours)

        slot = await ledger.get_next_queued_slot(db_url=self.db_url, track=track.code)
        if slot is None:
            slot = await ledger.create_slot(
                db_url=self.db_url, track=track, name=name, scheduled_at=now, now=now,
            )
        else:
            if slot.picker_id:
                logger.info("pause_picker_forfeited", track=track.code,
                            slot=slot.id, picker=slot.picker_id)
            if slot.external_id is not None:
                await self._delete_entry(track, slot)
            await ledger.overwrite_slot(
                db_url=self.db_url, slot_id=slot.id, name=name,
                external_id=None, table_name=None,
            )
            slot = await ledger.get_slot(db_url=self.db_url, slot_id=slot.id)

        await pause_store.save_pause(
            db_url=self.db_url, track=track.code, paused_until=until, override_name=name,
        )
        logger.info("pause_set", track=track.code, override=name, until=until.isoformat())
        await self._notify(messages.pause_started(track.code, name, until), track.code)
        return slot

    async def clear_pause(self) -> Optional[PauseState]:
        state = await pause_store.load_pause(db_url=self.db_url)
        track = state.track
        cleared = await pause_store.clear_pause(db_url=self.db_url)
        if state.is_paused:
            logger.info("pause_cleared", track=track)
            await self._notify(messages.pause_cleared(track), track)
        return cleared

    async def check_expiration(self, now: Optional[datetime] = None) -> bool:
        """Clear an expired pause. Returns True if one was cleared."""
        now = now or utcnow()
        state = await pause_store.load_pause(db_url=self.db_url)
        if not state.is_paused or state.paused_until is None or state.paused_until > now:
            return False
        logger.info("pause_expired", track=state.track, until=state.paused_until.isoformat())
        await self.clear_pause()
        return True

    async def active_override(
        self, track: Union[Track, str], now: Optional[datetime] = None,
    ) -> Optional[str]:
        """Override name if a pause is active and unexpired for ``track``."""
        code = track if isinstance(track, str) else track.code
        now = now or utcnow()
        state = await pause_store.load_pause(db_url=self.db_url)
        if not state.is_paused or not state.override_name:
            return None
        if (state.track or "").upper() != code.upper():
            return None
        if state.paused_until is not None and state.paused_until <= now:
            return None
        return state.override_name

    async def _delete_entry(self, track: Track, slot: GameSlot) -> None:
        if self.lineup_factory is None:
            logger.warning("pause_entry_left_on_scoreboard", track=track.code,
                           slot=slot.id, external_id=slot.external_id)
            return
        async with self.lineup_factory() as lineup:
            try:
                await lineup.delete(slot.external_id)
            except EntryNotFoundError:
                logger.info("pause_entry_already_gone", track=track.code,
                            external_id=slot.external_id)
                return
        logger.info("pause_entry_deleted", track=track.code, slot=slot.id,
                    external_id=slot.external_id)

    async def _notify(self, text: str, track: Optional[str]) -> None:
        if self.notifier is not None:
            await self.notifier.notify(text, track=track)
