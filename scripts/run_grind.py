#!/usr/bin/env python3
"""Grind tournament daemon.

Runs each track's maintenance on its cadence (America/Chicago by default)
and the hourly picker-timeout sweep.

Usage:
    python scripts/run_grind.py                              # daemon
    python scripts/run_grind.py --trigger-maintenance        # every track once
    python scripts/run_grind.py --trigger-maintenance --track DG
    python scripts/run_grind.py --check-timeouts             # one timeout sweep
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from pingrind.utils.logging import configure_logging

configure_logging()

try:
    import uvloop
except ImportError:
    uvloop = None

from config.settings import settings
from config.validators import validate_notifier
from pingrind.app import build_app
from pingrind.db.database import close_db_async
from pingrind.exceptions import ConfigError
from pingrind.tracks import ALL_TRACKS, get_track

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run the grind tournament scheduler")
    p.add_argument("--trigger-maintenance", action="store_true",
                   help="Run maintenance once and exit")
    p.add_argument("--check-timeouts", action="store_true",
                   help="Run one picker-timeout sweep and exit")
    p.add_argument("--track", action="append", default=[],
                   help="Limit to a track code (repeatable), e.g. DG, WG-VR")
    p.add_argument("--db-url", type=str, default=settings.DATABASE_URL)
    return p


async def main() -> int:
    args = build_parser().parse_args()
    try:
        validate_notifier()
        tracks = [get_track(code) for code in args.track] or list(ALL_TRACKS)
    except (ConfigError, KeyError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    app = build_app(settings, db_url=args.db_url)
    await app.startup()
    try:
        if args.trigger_maintenance:
            outcomes = await app.controller.run_all(tracks)
            for o in outcomes:
                status = "ERROR " + o.error if o.error else ("skipped" if o.skipped else "ok")
                print(f"{o.track:8s} {status:10s} winner={o.winner or '-'} "
                      f"promoted={o.promoted_slot or '-'}")
            return 1 if any(o.error for o in outcomes) else 0

        if args.check_timeouts:
            actions = await app.escalator.check_all()
            for a in actions:
                print(f"{a.track:8s} slot={a.slot_id[:8]} auto-picked {a.table_name}")
            return 0

        app.scheduler.tracks = tuple(tracks)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(app.scheduler.stop()))
        print(f"=== Grind scheduler ({settings.TIMEZONE}) ===")
        print(f"  Tracks:   {', '.join(t.code for t in tracks)}")
        print(f"  Adapter:  {settings.LINEUP_ADAPTER}")
        print(f"  Notifier: {settings.NOTIFIER}")
        print()
        await app.scheduler.run()
        return 0
    finally:
        await close_db_async(args.db_url)


if __name__ == "__main__":
    if uvloop is not None:
        uvloop.install()
    sys.exit(asyncio.run(main()))
