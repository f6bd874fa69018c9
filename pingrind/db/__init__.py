"""Durable Ledger for pingrind: slots, scores, winners, catalog, pause state."""

from .models import (
    Base,
    CatalogTable,
    GameSlot,
    PauseState,
    PlayerLink,
    ScoreRecord,
    SlotStatus,
    WinnerRecord,
)
from .database import close_db_async, get_session, init_db_async

__all__ = [
    "Base",
    "CatalogTable",
    "GameSlot",
    "PauseState",
    "PlayerLink",
    "ScoreRecord",
    "SlotStatus",
    "WinnerRecord",
    "close_db_async",
    "get_session",
    "init_db_async",
]
