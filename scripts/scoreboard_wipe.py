#!/usr/bin/env python3
"""Delete every grind entry from the scoreboard and wipe the Ledger.

Destructive. Requires --yes.

Usage:
    python scripts/scoreboard_wipe.py --yes
    python scripts/scoreboard_wipe.py --yes --track DG
    python scripts/scoreboard_wipe.py --yes --ledger-only
"""

import argparse
import asyncio
import sys

import structlog

from pingrind.utils.logging import configure_logging

configure_logging()

from config.settings import settings
from pingrind.db import ledger
from pingrind.db.database import close_db_async, init_db_async
from pingrind.scoreboard import load_lineup_factory
from pingrind.tracks import get_track, track_for_entry

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wipe scoreboard entries and Ledger slots")
    parser.add_argument("--yes", action="store_true", help="Confirm the wipe")
    parser.add_argument("--track", type=str, default=None, help="Only this track code")
    parser.add_argument("--ledger-only", action="store_true",
                        help="Leave the scoreboard untouched")
    parser.add_argument("--db-url", type=str, default=settings.DATABASE_URL)
    return parser


async def main() -> int:
    args = build_parser().parse_args()
    if not args.yes:
        print("Refusing to wipe without --yes", file=sys.stderr)
        return 2
    track = get_track(args.track) if args.track else None

    deleted = 0
    if not args.ledger_only:
        factory = load_lineup_factory(settings.LINEUP_ADAPTER, settings)
        async with factory() as lineup:
            for entry in await lineup.list_entries():
                owner = track_for_entry(entry.name, entry.tags)
                if owner is None or (track is not None and owner.code != track.code):
                    continue
                await lineup.delete(entry.external_id)
                deleted += 1
                logger.info("wipe_entry_deleted", track=owner.code, name=entry.name)

    await init_db_async(args.db_url)
    try:
        removed = await ledger.wipe(db_url=args.db_url, track=track.code if track else None)
    finally:
        await close_db_async(args.db_url)

    logger.info("wipe_done", entries_deleted=deleted, slots_removed=removed,
                track=track.code if track else "ALL")
    print(f"Deleted {deleted} scoreboard entries, removed {removed} Ledger slots")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
