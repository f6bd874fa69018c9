"""Client for the scoreboard's public ranked-results feed.

``GET {base_url}/{room}/{entry name}?max=N`` returns
``{"scores": [{"rank": "1", "name": "alice", "score": "1,234,560"}, ...]}``.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from pingrind.exceptions import ConfigError, TransientScoreboardError
from pingrind.scoreboard.base import RankedScore

logger = structlog.get_logger()


def _parse_rank(value: Any, fallback: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return fallback


def parse_scores(payload: Any) -> list[RankedScore]:
    """Normalize a results payload into rank-ordered ``RankedScore`` rows."""
    if not isinstance(payload, dict):
        return []
    raw = payload.get("scores")
    if not isinstance(raw, list):
        return []

    scores: list[RankedScore] = []
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            continue
        name = str(item.get("name") or "").strip()
        if not name:
            continue
        scores.append(RankedScore(
            rank=_parse_rank(item.get("rank"), i),
            username=name,
            score=str(item.get("score") or "").strip(),
        ))
    scores.sort(key=lambda s: s.rank)
    return scores


class ScoreboardResultsClient:
    """Reads ranked results for one entry at a time."""

    def __init__(
        self,
        base_url: str,
        room: str,
        max_results: int = 10,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not room:
            raise ConfigError("SCOREBOARD_ROOM is not set")
        self.base_url = base_url.rstrip("/")
        self.room = room
        self.max_results = max_results
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "ScoreboardResultsClient":
        return cls(
            base_url=settings.SCOREBOARD_API_URL,
            room=settings.SCOREBOARD_ROOM,
            max_results=settings.SCOREBOARD_RESULTS_MAX,
            timeout=settings.SCOREBOARD_TIMEOUT_SECONDS,
        )

    def url_for(self, entry_name: str) -> str:
        return f"{self.base_url}/{quote(self.room, safe='')}/{quote(entry_name, safe='')}"

    async def fetch(self, entry_name: str, limit: Optional[int] = None) -> list[RankedScore]:
        """Ranked results for ``entry_name``; ``[]`` when the feed has no such entry.

        Raises ``TransientScoreboardError`` on transport failures and 5xx.
        """
        if self._client is not None:
            return await self._fetch(self._client, entry_name, limit)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._fetch(client, entry_name, limit)

    async def _fetch(
        self, client: httpx.AsyncClient, entry_name: str, limit: Optional[int],
    ) -> list[RankedScore]:
        params = {"max": limit or self.max_results}
        try:
            response = await client.get(self.url_for(entry_name), params=params)
        except httpx.HTTPError as e:
            raise TransientScoreboardError(f"results feed unreachable: {e}") from e

        if response.status_code == 404:
            logger.info("results_entry_missing", entry=entry_name)
            return []
        if response.status_code >= 500:
            raise TransientScoreboardError(
                f"results feed returned {response.status_code} for {entry_name!r}"
            )
        if response.status_code >= 400:
            logger.warning("results_feed_rejected", entry=entry_name,
                           status=response.status_code)
            return []

        try:
            payload = response.json()
        except ValueError:
            logger.warning("results_feed_bad_payload", entry=entry_name)
            return []

        scores = parse_scores(payload)
        logger.debug("results_fetched", entry=entry_name, count=len(scores))
        return scores
