"""SQLAlchemy ORM models for the tournament Ledger, history and catalog."""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from pingrind.utils.clock import utcnow

Base = declarative_base()


class SlotStatus:
    QUEUED = "QUEUED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    HIDDEN = "HIDDEN"

    ALL = (QUEUED, ACTIVE, COMPLETED, HIDDEN)


def _new_slot_id() -> str:
    return str(uuid.uuid4())


class GameSlot(Base):
    """One table's turn in a track's rotation.

    ``external_id`` is NULL until the entry exists on the scoreboard.
    At most one ACTIVE row per track; QUEUED rows activate in
    ``scheduled_at`` order.
    """

    __tablename__ = "game_slots"
    __table_args__ = (
        CheckConstraint(
            "status IN ('QUEUED', 'ACTIVE', 'COMPLETED', 'HIDDEN')",
            name="ck_game_slots_status",
        ),
    )

    id = Column(String(36), primary_key=True, default=_new_slot_id)
    external_id = Column(String(64), unique=True, nullable=True, index=True)
    track = Column(String(16), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    table_name = Column(String(255), nullable=True)  # catalog table, NULL until picked
    status = Column(String(16), nullable=False, index=True, default=SlotStatus.QUEUED)
    picker_id = Column(String(64), nullable=True)
    nominator_id = Column(String(64), nullable=True)
    picker_assigned_at = Column(DateTime, nullable=True)
    scheduled_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)

    @property
    def is_provisioned(self) -> bool:
        """True once the slot has a remote entry."""
        return self.external_id is not None

    @property
    def is_open(self) -> bool:
        """Queued, nobody assigned, nothing picked."""
        return (
            self.status == SlotStatus.QUEUED
            and self.picker_id is None
            and self.table_name is None
            and self.external_id is None
        )

    def __repr__(self) -> str:
        return (
            f"<GameSlot(id={self.id[:8]}, track={self.track}, name={self.name!r}, "
            f"status={self.status})>"
        )


class ScoreRecord(Base):
    """Final ranked score on a completed slot. Append-only."""

    __tablename__ = "score_records"
    __table_args__ = (UniqueConstraint("slot_id", "rank", name="uq_score_slot_rank"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    slot_id = Column(String(36), nullable=False, index=True)
    rank = Column(Integer, nullable=False)
    username = Column(String(255), nullable=False)
    score = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<ScoreRecord(slot={self.slot_id[:8]}, rank={self.rank}, user={self.username})>"


class WinnerRecord(Base):
    """One row per completed cycle with a winner. Append-only."""

    __tablename__ = "winner_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    track = Column(String(16), nullable=False, index=True)
    external_id = Column(String(64), nullable=True, index=True)
    user_id = Column(String(64), nullable=True)  # resolved chat identity
    username = Column(String(255), nullable=False)  # scoreboard name
    score = Column(String(64), nullable=False)
    slot_name = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<WinnerRecord(track={self.track}, username={self.username}, score={self.score})>"


class CatalogTable(Base):
    """Known playable table with per-platform compatibility."""

    __tablename__ = "tables"

    name = Column(String(255), primary_key=True)
    aliases = Column(Text, nullable=True)  # comma separated
    is_atgames = Column(Boolean, nullable=False, default=False)
    is_wg_vr = Column(Boolean, nullable=False, default=False)
    is_wg_vpxs = Column(Boolean, nullable=False, default=False)
    manufacturer = Column(String(255), nullable=True)
    year = Column(Integer, nullable=True)
    image_url = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def alias_list(self) -> list[str]:
        if not self.aliases:
            return []
        return [a.strip() for a in self.aliases.split(",") if a.strip()]

    def __repr__(self) -> str:
        return f"<CatalogTable(name={self.name!r})>"


class PauseState(Base):
    """Singleton (id=1) pause/override state."""

    __tablename__ = "pause_state"

    id = Column(Integer, primary_key=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    track = Column(String(16), nullable=True)
    paused_until = Column(DateTime, nullable=True)
    override_name = Column(String(255), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"<PauseState(paused={self.is_paused}, track={self.track}, "
            f"until={self.paused_until}, override={self.override_name!r})>"
        )


class PlayerLink(Base):
    """Scoreboard username <-> chat user id."""

    __tablename__ = "player_links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True)
    username_key = Column(String(255), nullable=False, unique=True, index=True)  # lower-cased
    user_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<PlayerLink(username={self.username!r}, user_id={self.user_id})>"
