"""External Lineup Adapter: the only door to the shared scoreboard's admin surface.

Concrete adapters implement the abstract primitives; the public operations
re-read the entry after each mutation and raise ``VerificationFailedError``
when the scoreboard did not take the change. A session is scoped to one
routine::

    async with factory() as lineup:
        entry = await lineup.create_entry("Medieval Madness DG")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

import structlog

from pingrind.exceptions import EntryNotFoundError, ScoreboardError, VerificationFailedError

if TYPE_CHECKING:
    from pingrind.scoreboard.results import ScoreboardResultsClient

logger = structlog.get_logger()


@dataclass(slots=True)
class LineupEntry:
    """One entry as observed on the scoreboard lineup."""

    external_id: str
    name: str
    hidden: bool = False
    locked: bool = False
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_live(self) -> bool:
        return not self.hidden and not self.locked


@dataclass(frozen=True, slots=True)
class RankedScore:
    rank: int
    username: str
    score: str


class LineupAdapter(ABC):
    """Abstract scoreboard session."""

    def __init__(self, results_client: Optional["ScoreboardResultsClient"] = None) -> None:
        self._results_client = results_client
        self._is_open = False

    @classmethod
    @abstractmethod
    def from_settings(cls, settings) -> "LineupAdapter":
        """Build a session from ``config.settings``."""

    # ── session ────────────────────────────────────────────────────

    async def open(self) -> None:
        """Acquire the underlying session (browser, API token, ...)."""
        self._is_open = True

    async def close(self) -> None:
        self._is_open = False

    async def __aenter__(self) -> "LineupAdapter":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._is_open

    # ── primitives ─────────────────────────────────────────────────

    @abstractmethod
    async def list_entries(self) -> list[LineupEntry]:
        """Every entry in lineup order."""

    @abstractmethod
    async def _create(self, name: str) -> str:
        """Create a hidden, unlocked entry and return its external id."""

    @abstractmethod
    async def _rename(self, external_id: str, name: str) -> None: ...

    @abstractmethod
    async def _tag(self, external_id: str, tag: str) -> None: ...

    @abstractmethod
    async def _set_locked(self, external_id: str, locked: bool) -> None: ...

    @abstractmethod
    async def _set_hidden(self, external_id: str, hidden: bool) -> None: ...

    @abstractmethod
    async def _delete(self, external_id: str) -> None: ...

    # ── reads ──────────────────────────────────────────────────────

    async def get_entry(self, external_id: str) -> LineupEntry:
        for entry in await self.list_entries():
            if entry.external_id == external_id:
                return entry
        raise EntryNotFoundError(f"No lineup entry with id {external_id}")

    async def find_entries_by_name(self, name: str) -> list[LineupEntry]:
        """Every entry with this exact name (case-insensitive), in lineup order."""
        key = name.strip().lower()
        return [e for e in await self.list_entries() if e.name.strip().lower() == key]

    async def find_entry_by_name(self, name: str) -> Optional[LineupEntry]:
        matches = await self.find_entries_by_name(name)
        return matches[0] if matches else None

    async def fetch_ranked_results(
        self, external_id: str, limit: Optional[int] = None,
    ) -> list[RankedScore]:
        """Ranked results of an entry, rank 1 first.

        The public feed is keyed by entry name, not id. A replayed table has
        a locked namesake from an earlier cycle, so the feed may answer for
        either entry.
        """
        entry = await self.get_entry(external_id)
        if self._results_client is None:
            raise ScoreboardError("No results client configured for this adapter")
        namesakes = await self.find_entries_by_name(entry.name)
        if len(namesakes) > 1:
            logger.warning("results_name_ambiguous", external_id=external_id, name=entry.name,
                           others=[e.external_id for e in namesakes if e.external_id != external_id])
        return await self._results_client.fetch(entry.name, limit)

    # ── verified mutations ─────────────────────────────────────────

    async def _verify(
        self, external_id: str, check: Callable[[LineupEntry], bool], op: str,
    ) -> LineupEntry:
        entry = await self.get_entry(external_id)
        if not check(entry):
            logger.error("lineup_verification_failed", op=op, external_id=external_id,
                         name=entry.name, hidden=entry.hidden, locked=entry.locked)
            raise VerificationFailedError(f"{op} on {external_id} did not persist")
        return entry

    async def create_entry(self, name: str) -> LineupEntry:
        external_id = await self._create(name)
        try:
            entry = await self._verify(external_id, lambda e: e.name == name, "create")
        except EntryNotFoundError as e:
            raise VerificationFailedError(f"created entry {name!r} is not in the lineup") from e
        logger.info("lineup_entry_created", external_id=external_id, name=name)
        return entry

    async def rename(self, external_id: str, name: str) -> LineupEntry:
        await self.get_entry(external_id)
        await self._rename(external_id, name)
        return await self._verify(external_id, lambda e: e.name == name, "rename")

    async def tag(self, external_id: str, tag: str) -> LineupEntry:
        await self.get_entry(external_id)
        await self._tag(external_id, tag)
        return await self._verify(
            external_id, lambda e: tag.upper() in (t.upper() for t in e.tags), "tag",
        )

    async def lock(self, external_id: str) -> LineupEntry:
        await self.get_entry(external_id)
        await self._set_locked(external_id, True)
        return await self._verify(external_id, lambda e: e.locked, "lock")

    async def unlock(self, external_id: str) -> LineupEntry:
        await self.get_entry(external_id)
        await self._set_locked(external_id, False)
        return await self._verify(external_id, lambda e: not e.locked, "unlock")

    async def hide(self, external_id: str) -> LineupEntry:
        await self.get_entry(external_id)
        await self._set_hidden(external_id, True)
        return await self._verify(external_id, lambda e: e.hidden, "hide")

    async def show(self, external_id: str) -> LineupEntry:
        await self.get_entry(external_id)
        await self._set_hidden(external_id, False)
        return await self._verify(external_id, lambda e: not e.hidden, "show")

    async def delete(self, external_id: str) -> None:
        await self.get_entry(external_id)
        await self._delete(external_id)
        remaining = {e.external_id for e in await self.list_entries()}
        if external_id in remaining:
            raise VerificationFailedError(f"delete on {external_id} did not persist")
        logger.info("lineup_entry_deleted", external_id=external_id)
