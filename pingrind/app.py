"""Wires settings into the routines shared by every entry point."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from pingrind.db.database import init_db_async
from pingrind.lifecycle import (
    CycleController,
    PauseControl,
    PickerWorkflow,
    Reconciler,
    TimeoutEscalator,
    TrackLocks,
)
from pingrind.notify import Notifier, build_notifier
from pingrind.scheduler import GrindScheduler
from pingrind.scoreboard import LineupFactory, load_lineup_factory


@dataclass
class GrindApp:
    db_url: str
    lineup_factory: LineupFactory
    notifier: Notifier
    picker: PickerWorkflow
    pause: PauseControl
    controller: CycleController
    reconciler: Reconciler
    escalator: TimeoutEscalator
    scheduler: GrindScheduler

    async def startup(self) -> None:
        """Create tables; durable pause state is read on demand from here on."""
        await init_db_async(self.db_url)


def build_app(
    settings,
    *,
    lineup_factory: Optional[LineupFactory] = None,
    notifier: Optional[Notifier] = None,
    db_url: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> GrindApp:
    db_url = db_url or settings.DATABASE_URL
    lineup_factory = lineup_factory or load_lineup_factory(settings.LINEUP_ADAPTER, settings)
    notifier = notifier or build_notifier(settings)

    picker = PickerWorkflow(
        db_url=db_url,
        exclude_days=settings.RANDOM_PICK_EXCLUDE_DAYS,
        dynasty_enabled=settings.DYNASTY_RULE_ENABLED,
        rng=rng,
    )
    locks = TrackLocks()
    pause = PauseControl(
        db_url=db_url, notifier=notifier, default_hours=settings.PAUSE_DEFAULT_HOURS,
        lineup_factory=lineup_factory,
    )
    controller = CycleController(
        lineup_factory,
        db_url=db_url,
        picker=picker,
        pause=pause,
        notifier=notifier,
        fast_track_lead_hours=settings.FAST_TRACK_LEAD_HOURS,
        results_attempts=settings.RESULTS_RETRY_ATTEMPTS,
        results_delay=settings.RESULTS_RETRY_DELAY,
        results_limit=settings.SCOREBOARD_FINAL_RESULTS_MAX,
        locks=locks,
    )
    escalator = TimeoutEscalator(
        lineup_factory,
        db_url=db_url,
        picker=picker,
        notifier=notifier,
        timeout_hours=settings.PICKER_TIMEOUT_HOURS,
        locks=locks,
    )
    return GrindApp(
        db_url=db_url,
        lineup_factory=lineup_factory,
        notifier=notifier,
        picker=picker,
        pause=pause,
        controller=controller,
        reconciler=Reconciler(lineup_factory, db_url=db_url),
        escalator=escalator,
        scheduler=GrindScheduler(controller, escalator, timezone_name=settings.TIMEZONE),
    )
