"""The four grind tracks and their static rules.

Each track is an independent queue of game slots on the shared scoreboard.
Remote entries are named ``"<table> <CODE>"`` and tagged with the code.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Platform(str, Enum):
    """Catalog compatibility flag a track draws tables from."""

    ATGAMES = "atgames"
    VR = "vr"
    VPXS = "vpxs"


@dataclass(frozen=True, slots=True)
class Cadence:
    """When a routine fires, in the scheduler's local timezone.

    kind: "hourly" | "daily" | "weekly" | "monthly"
    weekday: Monday=0 (weekly only); day: day of month (monthly only).
    """

    kind: str
    hour: int = 0
    minute: int = 0
    weekday: int = 0
    day: int = 1


@dataclass(frozen=True, slots=True)
class Track:
    code: str
    title: str
    platform: Platform
    cadence: Cadence
    lead_hours: float = 0.0
    timeout_exempt: bool = False

    def entry_name(self, table_name: str) -> str:
        return f"{table_name} {self.code}"

    def owns_entry(self, name: str, tags: tuple[str, ...] = ()) -> bool:
        """True if a remote entry belongs to this track (tag first, then name suffix)."""
        if any(t.upper() == self.code for t in tags):
            return True
        return name.strip().upper().endswith(f" {self.code}")


DAILY = Track(
    code="DG",
    title="Daily Grind",
    platform=Platform.ATGAMES,
    cadence=Cadence("daily", hour=0, minute=0),
    lead_hours=48.0,
)
WEEKLY_VPXS = Track(
    code="WG-VPXS",
    title="Weekly Grind (VPXS)",
    platform=Platform.VPXS,
    cadence=Cadence("weekly", hour=0, minute=1, weekday=2),
)
WEEKLY_VR = Track(
    code="WG-VR",
    title="Weekly Grind (VR)",
    platform=Platform.VR,
    cadence=Cadence("weekly", hour=0, minute=1, weekday=2),
)
MONTHLY = Track(
    code="MG",
    title="Monthly Grind",
    platform=Platform.ATGAMES,
    cadence=Cadence("monthly", hour=0, minute=1, day=1),
    timeout_exempt=True,
)

TRACKS: dict[str, Track] = {t.code: t for t in (DAILY, WEEKLY_VPXS, WEEKLY_VR, MONTHLY)}
ALL_TRACKS: tuple[Track, ...] = tuple(TRACKS.values())

# Hourly timeout sweep, off the :00/:01 minutes the track cadences fire on.
TIMEOUT_CADENCE = Cadence("hourly", minute=30)


def get_track(code: str) -> Track:
    """Look up a track by code, case-insensitively. Raises KeyError."""
    track = TRACKS.get(code.strip().upper())
    if track is None:
        raise KeyError(f"Unknown track: {code}")
    return track


def track_for_entry(name: str, tags: tuple[str, ...] = ()) -> Optional[Track]:
    """Return the track a remote entry belongs to, or None."""
    for track in ALL_TRACKS:
        if any(t.upper() == track.code for t in tags):
            return track
    # Longest code first so "WG-VR" never shadows a longer suffix.
    for track in sorted(ALL_TRACKS, key=lambda t: len(t.code), reverse=True):
        if track.owns_entry(name):
            return track
    return None
