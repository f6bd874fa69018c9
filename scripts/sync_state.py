#!/usr/bin/env python3
"""Reconcile the Ledger with the scoreboard lineup.

Usage:
    python scripts/sync_state.py
    python scripts/sync_state.py --db-url sqlite+aiosqlite:///data/other.db
"""

import argparse
import asyncio

import structlog

from pingrind.utils.logging import configure_logging

configure_logging()

from config.settings import settings
from pingrind.app import build_app
from pingrind.db.database import close_db_async

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync Ledger state from the scoreboard lineup")
    parser.add_argument("--db-url", type=str, default=settings.DATABASE_URL)
    return parser


async def main() -> None:
    args = build_parser().parse_args()
    app = build_app(settings, db_url=args.db_url)
    await app.startup()
    try:
        report = await app.reconciler.sweep()
    finally:
        await close_db_async(args.db_url)

    print(f"{'track':8s} {'observed':>8s} {'created':>8s} {'extra':>6s}")
    for code, sweep in report.tracks.items():
        print(f"{code:8s} {sweep.observed:8d} {sweep.created:8d} {sweep.extra_active:6d}")
    print(f"unowned entries: {report.unowned}  demoted to HIDDEN: {report.demoted}")


if __name__ == "__main__":
    asyncio.run(main())
