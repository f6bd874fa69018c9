#!/usr/bin/env python3
"""Administrative commands mapping 1:1 onto the picker, pause and reporting APIs.

Usage:
    python scripts/grind_admin.py assign DG <slot_id> <user_id>
    python scripts/grind_admin.py nominate DG <nominator_id> <nominee_id>
    python scripts/grind_admin.py pick DG <user_id> "Medieval Madness" [--confirm]
    python scripts/grind_admin.py random-pick DG <user_id>
    python scripts/grind_admin.py pause DG "Charity Marathon" --hours 24
    python scripts/grind_admin.py unpause
    python scripts/grind_admin.py link <scoreboard_name> <user_id>
    python scripts/grind_admin.py add-table "Medieval Madness" --atgames --vpxs
    python scripts/grind_admin.py standings DG
    python scripts/grind_admin.py winners DG --days 30
    python scripts/grind_admin.py queue DG
    python scripts/grind_admin.py table-stats "Medieval Madness"
"""

import argparse
import asyncio
import sys

import structlog

from pingrind.utils.logging import configure_logging

configure_logging()

from config.settings import settings
from pingrind.app import GrindApp, build_app
from pingrind.db import catalog, ledger, players
from pingrind.db.database import close_db_async
from pingrind.exceptions import ConfirmationRequired, WorkflowRejected
from pingrind.lifecycle import stats

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Grind tournament administration")
    parser.add_argument("--db-url", type=str, default=settings.DATABASE_URL)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("assign", help="Assign a picker to the next open slot")
    p.add_argument("track")
    p.add_argument("slot_id")
    p.add_argument("user_id")

    p = sub.add_parser("nominate", help="Last winner nominates another picker")
    p.add_argument("track")
    p.add_argument("nominator_id")
    p.add_argument("nominee_id")

    p = sub.add_parser("pick", help="Record a picker's table choice")
    p.add_argument("track")
    p.add_argument("user_id")
    p.add_argument("table")
    p.add_argument("--confirm", action="store_true",
                   help="Accept an unknown or incompatible table")

    p = sub.add_parser("random-pick", help="Draw a random eligible table for the picker")
    p.add_argument("track")
    p.add_argument("user_id")

    p = sub.add_parser("pause", help="Inject an override slot and pause normal picking")
    p.add_argument("track")
    p.add_argument("name")
    p.add_argument("--hours", type=float, default=None)

    sub.add_parser("unpause", help="Clear the pause/override")

    p = sub.add_parser("link", help="Link a scoreboard name to a chat user id")
    p.add_argument("username")
    p.add_argument("user_id")

    p = sub.add_parser("add-table", help="Add or update a catalog table")
    p.add_argument("name")
    p.add_argument("--aliases", default=None, help="Comma separated")
    p.add_argument("--atgames", action="store_true")
    p.add_argument("--vr", action="store_true")
    p.add_argument("--vpxs", action="store_true")

    p = sub.add_parser("standings", help="Live standings of the active slot")
    p.add_argument("track")

    p = sub.add_parser("winners", help="Winner leaderboard")
    p.add_argument("track")
    p.add_argument("--days", type=int, default=None)

    p = sub.add_parser("queue", help="Show queued and active slots")
    p.add_argument("track")

    p = sub.add_parser("table-stats", help="Plays and high score for a table")
    p.add_argument("table")
    return parser


async def run_command(app: GrindApp, args: argparse.Namespace) -> int:
    db_url = app.db_url
    cmd = args.command

    if cmd == "assign":
        slot = await app.picker.assign(args.track, args.slot_id, args.user_id)
        print(f"{args.user_id} will pick for {slot.track} slot {slot.id[:8]}")
    elif cmd == "nominate":
        slot = await app.picker.nominate(args.track, args.nominator_id, args.nominee_id)
        print(f"{args.nominee_id} nominated to pick for {slot.track} slot {slot.id[:8]}")
    elif cmd == "pick":
        try:
            slot = await app.picker.pick_table(args.track, args.user_id, args.table,
                                               confirmed=args.confirm)
        except ConfirmationRequired as e:
            print(f"'{e.table_name}': {e.reason}. Re-run with --confirm to use it anyway.")
            return 3
        print(f"Picked {slot.table_name} -> {slot.name}")
    elif cmd == "random-pick":
        slot = await app.picker.random_pick(args.track, args.user_id)
        print(f"Drew {slot.table_name} -> {slot.name}")
    elif cmd == "pause":
        slot = await app.pause.set_pause(args.track, args.name, args.hours)
        print(f"Paused {slot.track}; next slot is now {slot.name!r}")
    elif cmd == "unpause":
        await app.pause.clear_pause()
        print("Pause cleared")
    elif cmd == "link":
        await players.link_player(db_url=db_url, username=args.username, user_id=args.user_id)
        print(f"Linked {args.username} -> {args.user_id}")
    elif cmd == "add-table":
        table = await catalog.upsert_table(
            db_url=db_url, name=args.name, aliases=args.aliases,
            is_atgames=args.atgames, is_wg_vr=args.vr, is_wg_vpxs=args.vpxs,
        )
        print(f"Catalog: {table.name} atgames={table.is_atgames} "
              f"vr={table.is_wg_vr} vpxs={table.is_wg_vpxs}")
    elif cmd == "standings":
        rows = await stats.standings(args.track, app.lineup_factory, db_url=db_url)
        if not rows:
            print("No scores posted yet")
        for r in rows:
            print(f"{r.rank:3d}. {r.username:24s} {r.score}")
    elif cmd == "winners":
        rows = await stats.winner_leaderboard(args.track, args.days, db_url=db_url)
        for i, r in enumerate(rows, start=1):
            print(f"{i:3d}. {r.username:24s} {r.wins} wins")
    elif cmd == "queue":
        code = args.track.upper()
        active = await ledger.get_active_slot(db_url=db_url, track=code)
        print(f"ACTIVE  {active.name if active else '-'}")
        for slot in await ledger.list_queued_slots(db_url=db_url, track=code):
            picker = slot.picker_id or "-"
            print(f"QUEUED  {slot.scheduled_at:%Y-%m-%d %H:%M}  {slot.id[:8]}  "
                  f"{slot.name:32s} picker={picker}")
    elif cmd == "table-stats":
        result = await stats.table_stats(args.table, db_url=db_url)
        print(f"{result.table_name}: {result.plays} plays")
        if result.high_score:
            print(f"High score {result.high_score} by {result.high_score_user} "
                  f"({result.high_score_track})")
    return 0


async def main() -> int:
    args = build_parser().parse_args()
    app = build_app(settings, db_url=args.db_url)
    await app.startup()
    try:
        return await run_command(app, args)
    except (WorkflowRejected, KeyError, ValueError) as e:
        print(f"Rejected: {e}", file=sys.stderr)
        return 1
    finally:
        await close_db_async(args.db_url)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
