"""In-process lineup used for dry runs and tests.

Holds entries in lineup order; with a ``path`` the state is loaded on
``open()`` and written back on ``close()`` so separate sessions see the same
scoreboard. Ranked results are seeded per entry with ``seed_results``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional, Union

import structlog

from pingrind.scoreboard.base import LineupAdapter, LineupEntry, RankedScore

logger = structlog.get_logger()


class SandboxLineup(LineupAdapter):
    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        results_client=None,
    ) -> None:
        super().__init__(results_client)
        self._path = Path(path) if path else None
        self._entries: dict[str, LineupEntry] = {}
        self._seeded: dict[str, list[RankedScore]] = {}
        self._next_id = 1
        # When set, primitive mutations are accepted but not applied.
        self.drop_writes = False

    @classmethod
    def from_settings(cls, settings) -> "SandboxLineup":
        from pingrind.scoreboard.results import ScoreboardResultsClient

        client = (
            ScoreboardResultsClient.from_settings(settings)
            if settings.SCOREBOARD_ROOM else None
        )
        return cls(path=settings.SANDBOX_LINEUP_FILE or None, results_client=client)

    # ── persistence ────────────────────────────────────────────────

    async def open(self) -> None:
        if self._path is not None and self._path.exists():
            self._load()
        await super().open()

    async def close(self) -> None:
        if self._path is not None:
            self._save()
        await super().close()

    def _load(self) -> None:
        data = json.loads(self._path.read_text())
        self._next_id = int(data.get("next_id", 1))
        self._entries = {}
        for raw in data.get("entries", []):
            entry = LineupEntry(
                external_id=raw["external_id"],
                name=raw["name"],
                hidden=bool(raw.get("hidden", False)),
                locked=bool(raw.get("locked", False)),
                tags=tuple(raw.get("tags", ())),
            )
            self._entries[entry.external_id] = entry
        self._seeded = {
            eid: [RankedScore(int(r), u, s) for r, u, s in rows]
            for eid, rows in data.get("results", {}).items()
        }

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "next_id": self._next_id,
            "entries": [
                {
                    "external_id": e.external_id,
                    "name": e.name,
                    "hidden": e.hidden,
                    "locked": e.locked,
                    "tags": list(e.tags),
                }
                for e in self._entries.values()
            ],
            "results": {
                eid: [[r.rank, r.username, r.score] for r in rows]
                for eid, rows in self._seeded.items()
            },
        }
        self._path.write_text(json.dumps(data, indent=2))

    # ── test helpers ───────────────────────────────────────────────

    def add_entry(
        self,
        name: str,
        *,
        hidden: bool = False,
        locked: bool = False,
        tags: Iterable[str] = (),
    ) -> LineupEntry:
        """Place an entry directly, bypassing verification."""
        entry = LineupEntry(self._new_id(), name, hidden, locked, tuple(tags))
        self._entries[entry.external_id] = entry
        return entry

    def seed_results(self, external_id: str, scores: Iterable[tuple[int, str, str]]) -> None:
        self._seeded[external_id] = [RankedScore(r, u, s) for r, u, s in scores]

    def remove_entry(self, external_id: str) -> None:
        self._entries.pop(external_id, None)

    def entry(self, external_id: str) -> LineupEntry:
        return self._entries[external_id]

    def _new_id(self) -> str:
        external_id = f"sbx-{self._next_id}"
        self._next_id += 1
        return external_id

    # ── LineupAdapter ──────────────────────────────────────────────

    async def list_entries(self) -> list[LineupEntry]:
        return [
            LineupEntry(e.external_id, e.name, e.hidden, e.locked, tuple(e.tags))
            for e in self._entries.values()
        ]

    async def fetch_ranked_results(
        self, external_id: str, limit: Optional[int] = None,
    ) -> list[RankedScore]:
        entry = await self.get_entry(external_id)
        if external_id in self._seeded:
            rows = sorted(self._seeded[external_id], key=lambda r: r.rank)
            return rows[:limit] if limit else rows
        if self._results_client is not None:
            return await super().fetch_ranked_results(external_id, limit)
        logger.debug("sandbox_no_results", entry=entry.name)
        return []

    async def _create(self, name: str) -> str:
        external_id = self._new_id()
        if not self.drop_writes:
            self._entries[external_id] = LineupEntry(external_id, name, hidden=True)
        return external_id

    async def _rename(self, external_id: str, name: str) -> None:
        if not self.drop_writes:
            self._entries[external_id].name = name

    async def _tag(self, external_id: str, tag: str) -> None:
        if self.drop_writes:
            return
        entry = self._entries[external_id]
        if tag.upper() not in (t.upper() for t in entry.tags):
            entry.tags = entry.tags + (tag,)

    async def _set_locked(self, external_id: str, locked: bool) -> None:
        if not self.drop_writes:
            self._entries[external_id].locked = locked

    async def _set_hidden(self, external_id: str, hidden: bool) -> None:
        if not self.drop_writes:
            self._entries[external_id].hidden = hidden

    async def _delete(self, external_id: str) -> None:
        if not self.drop_writes:
            self._entries.pop(external_id, None)
            self._seeded.pop(external_id, None)
