"""Cadence scheduling: one asyncio loop per track plus the hourly timeout sweep."""

from __future__ import annotations

import asyncio
import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Awaitable, Callable, Iterable, Optional
from zoneinfo import ZoneInfo

import structlog

from pingrind.tracks import ALL_TRACKS, TIMEOUT_CADENCE, Cadence, Track

logger = structlog.get_logger()


def _at(day: date, cadence: Cadence, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time(cadence.hour, cadence.minute), tzinfo=tz)


def _add_month(day: date, target_day: int) -> date:
    year, month = (day.year + 1, 1) if day.month == 12 else (day.year, day.month + 1)
    return date(year, month, min(target_day, calendar.monthrange(year, month)[1]))


def next_run_after(cadence: Cadence, now: datetime, tz: ZoneInfo) -> datetime:
    """First fire time strictly after ``now`` (aware), returned in ``tz``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(tz)

    if cadence.kind == "hourly":
        candidate = now.astimezone(timezone.utc).replace(
            minute=cadence.minute, second=0, microsecond=0,
        )
        if candidate <= now:
            candidate += timedelta(hours=1)
        return candidate.astimezone(tz)

    if cadence.kind == "daily":
        candidate = _at(local.date(), cadence, tz)
        if candidate <= local:
            candidate = _at(local.date() + timedelta(days=1), cadence, tz)
        return candidate

    if cadence.kind == "weekly":
        ahead = (cadence.weekday - local.weekday()) % 7
        candidate = _at(local.date() + timedelta(days=ahead), cadence, tz)
        if candidate <= local:
            candidate = _at(local.date() + timedelta(days=ahead + 7), cadence, tz)
        return candidate

    if cadence.kind == "monthly":
        last = calendar.monthrange(local.year, local.month)[1]
        candidate = _at(local.date().replace(day=min(cadence.day, last)), cadence, tz)
        if candidate <= local:
            candidate = _at(_add_month(local.date(), cadence.day), cadence, tz)
        return candidate

    raise ValueError(f"Unknown cadence kind: {cadence.kind}")


Routine = Callable[[], Awaitable[object]]


class GrindScheduler:
    """Runs each track's maintenance on its cadence and the timeout sweep hourly."""

    def __init__(
        self,
        controller,
        escalator,
        *,
        timezone_name: str = "America/Chicago",
        tracks: Iterable[Track] = ALL_TRACKS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.controller = controller
        self.escalator = escalator
        self.tz = ZoneInfo(timezone_name)
        self.tracks = tuple(tracks)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._running = False
        self._tasks: list[asyncio.Task] = []

    def jobs(self) -> list[tuple[str, Cadence, Routine]]:
        jobs: list[tuple[str, Cadence, Routine]] = [
            (f"maintenance:{t.code}", t.cadence, self._maintenance(t)) for t in self.tracks
        ]
        jobs.append(("timeout", TIMEOUT_CADENCE, self.escalator.check_all))
        return jobs

    def _maintenance(self, track: Track) -> Routine:
        async def run() -> object:
            return await self.controller.run_track(track)
        return run

    async def run(self) -> None:
        self._running = True
        logger.info("scheduler_startup", timezone=str(self.tz),
                    tracks=[t.code for t in self.tracks])
        self._tasks = [
            asyncio.create_task(self._loop(name, cadence, routine), name=name)
            for name, cadence, routine in self.jobs()
        ]
        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            logger.info("scheduler_cancelled")

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("scheduler_stopped")

    async def _loop(self, name: str, cadence: Cadence, routine: Routine) -> None:
        last_fire: Optional[datetime] = None
        while self._running:
            now = self._clock()
            fire_at = next_run_after(cadence, max(now, last_fire) if last_fire else now, self.tz)
            last_fire = fire_at
            delay = max(0.0, (fire_at - now).total_seconds())
            logger.info("routine_scheduled", routine=name,
                        at=fire_at.isoformat(), in_seconds=round(delay))
            await asyncio.sleep(delay)
            try:
                await routine()
            except Exception as exc:
                logger.error("routine_failed", routine=name, error=str(exc))
