"""Plain-text notification bodies."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pingrind.tracks import TRACKS


def _title(track: str) -> str:
    t = TRACKS.get(track)
    return t.title if t else track


def _mention(username: str, user_id: Optional[str]) -> str:
    return f"<@{user_id}>" if user_id else f"`{username}`"


def cycle_closed(outcome) -> str:
    """Announcement for a completed maintenance run (a ``CycleOutcome``)."""
    lines = [f"**The {_title(outcome.track)} is Closed!**"]
    if outcome.closed_slot:
        lines.append(f"**Game:** `{outcome.closed_slot}`")
    if outcome.winner:
        mention = _mention(outcome.winner, outcome.winner_user_id)
        lines.append(f"**Winner:** {mention} with a score of `{outcome.score}`")
    else:
        lines.append("**Winner:** no scores were posted")
    if outcome.promoted_slot:
        lines.append(f"**Open Now:** `{outcome.promoted_slot}` is ready for play!")
    else:
        lines.append("**Open Now:** nothing was queued, the track is idle")

    if not outcome.winner:
        return "\n".join(lines)
    if outcome.dynasty:
        lines.append(
            "\n**Dynasty Rule!** As a repeat winner you must nominate another "
            "player to choose the next table."
        )
    elif outcome.picker_assigned:
        lines.append(f"\n{_mention(outcome.winner, outcome.winner_user_id)}, "
                     "it's your turn to pick the next table!")
    else:
        lines.append(
            f"\nCongratulations {outcome.winner}! Your scoreboard name is not linked "
            "to a chat account yet, please contact an admin."
        )
    return "\n".join(lines)


def cycle_failed(track: str, error: str) -> str:
    return f"**{_title(track)} maintenance failed:** {error}"


def picker_timed_out(track: str, picker_id: Optional[str], table_name: str) -> str:
    who = f"<@{picker_id}>" if picker_id else "The picker"
    return (
        f"{who} did not pick a table for the {_title(track)} in time. "
        f"`{table_name}` was selected automatically."
    )


def pause_started(track: str, name: str, until: datetime) -> str:
    return (
        f"**Attention:** normal table picking for the {_title(track)} is paused until "
        f"{until:%Y-%m-%d %H:%M} UTC. The next tournament will be on **{name}**."
    )


def pause_cleared(track: Optional[str]) -> str:
    where = f"the {_title(track)}" if track else "all tracks"
    return f"Normal table picking has resumed for {where}."


def nominated(track: str, nominator_id: str, nominee_id: str) -> str:
    return (
        f"<@{nominator_id}> has nominated <@{nominee_id}> to pick the next table "
        f"for the {_title(track)}!"
    )


def table_picked(track: str, user_id: str, table_name: str, random_pick: bool = False) -> str:
    how = "randomly drew" if random_pick else "picked"
    return f"<@{user_id}> {how} `{table_name}` for the next {_title(track)}."
