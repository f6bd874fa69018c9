"""Tests for Ledger slot and score operations."""

from datetime import datetime, timedelta

import pytest

from pingrind.db import ledger
from pingrind.db.models import GameSlot, SlotStatus
from pingrind.exceptions import PersistenceError, SlotNotFoundError
from pingrind.tracks import DAILY, MONTHLY, WEEKLY_VR

NOW = datetime(2026, 3, 4, 12, 0)


def test_game_slot_table_shape():
    cols = {c.name for c in GameSlot.__table__.columns}
    assert GameSlot.__tablename__ == "game_slots"
    assert {"external_id", "status", "picker_id", "nominator_id", "scheduled_at"} <= cols
    assert GameSlot.__table__.c.external_id.unique


def test_table_from_entry_name():
    assert ledger.table_from_entry_name("DG", "Medieval Madness DG") == "Medieval Madness"
    assert ledger.table_from_entry_name("DG", "Charity Marathon") == "Charity Marathon"


@pytest.mark.asyncio
async def test_create_slot_uses_track_lead_time(db_url):
    daily = await ledger.create_slot(db_url=db_url, track=DAILY, now=NOW)
    weekly = await ledger.create_slot(db_url=db_url, track=WEEKLY_VR, now=NOW)
    assert daily.scheduled_at == NOW + timedelta(hours=48)
    assert weekly.scheduled_at == NOW
    assert daily.status == SlotStatus.QUEUED
    assert daily.external_id is None
    assert daily.name == "TBD DG 2026-03-06"
    assert ledger.is_placeholder_name(DAILY, daily.name)


@pytest.mark.asyncio
async def test_unprovisioned_slots_share_null_external_id(db_url):
    await ledger.create_slot(db_url=db_url, track=MONTHLY, now=NOW)
    await ledger.create_slot(db_url=db_url, track=MONTHLY, now=NOW)
    assert len(await ledger.list_queued_slots(db_url=db_url, track="MG")) == 2


@pytest.mark.asyncio
async def test_next_queued_is_earliest_scheduled(db_url):
    late = await ledger.create_slot(db_url=db_url, track=DAILY, name="Late",
                                    scheduled_at=NOW + timedelta(days=2), now=NOW)
    early = await ledger.create_slot(db_url=db_url, track=DAILY, name="Early",
                                     scheduled_at=NOW + timedelta(days=1), now=NOW)
    nxt = await ledger.get_next_queued_slot(db_url=db_url, track="DG")
    assert nxt.id == early.id
    queued = await ledger.list_queued_slots(db_url=db_url, track="DG")
    assert [s.id for s in queued] == [early.id, late.id]


@pytest.mark.asyncio
async def test_get_next_queued_none_when_empty(db_url):
    assert await ledger.get_next_queued_slot(db_url=db_url, track="DG") is None
    assert await ledger.get_active_slot(db_url=db_url, track="DG") is None


@pytest.mark.asyncio
async def test_status_transitions_stamp_completion(db_url):
    slot = await ledger.create_slot(db_url=db_url, track=DAILY, status=SlotStatus.ACTIVE, now=NOW)
    assert (await ledger.get_active_slot(db_url=db_url, track="DG")).id == slot.id

    await ledger.set_status(db_url=db_url, slot_id=slot.id, status=SlotStatus.COMPLETED, now=NOW)
    done = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert done.status == SlotStatus.COMPLETED
    assert done.completed_at == NOW

    await ledger.set_status(db_url=db_url, slot_id=slot.id, status=SlotStatus.ACTIVE)
    again = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert again.completed_at is None


@pytest.mark.asyncio
async def test_set_status_rejects_unknown_status(db_url):
    slot = await ledger.create_slot(db_url=db_url, track=DAILY, now=NOW)
    with pytest.raises(ValueError):
        await ledger.set_status(db_url=db_url, slot_id=slot.id, status="LIVE")


@pytest.mark.asyncio
async def test_update_missing_slot_raises(db_url):
    with pytest.raises(SlotNotFoundError):
        await ledger.set_status(db_url=db_url, slot_id="nope", status=SlotStatus.HIDDEN)


@pytest.mark.asyncio
async def test_assign_and_clear_picker(db_url):
    slot = await ledger.create_slot(db_url=db_url, track=DAILY, now=NOW)
    assert (await ledger.get_open_slot(db_url=db_url, track="DG")).id == slot.id

    await ledger.assign_picker(db_url=db_url, slot_id=slot.id, picker_id="u1",
                               nominator_id="u0", at=NOW)
    assigned = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert (assigned.picker_id, assigned.nominator_id) == ("u1", "u0")
    assert assigned.picker_assigned_at == NOW
    assert await ledger.get_open_slot(db_url=db_url, track="DG") is None
    assert [s.id for s in await ledger.list_awaiting_pick(db_url=db_url, track="DG")] == [slot.id]

    await ledger.clear_picker(db_url=db_url, slot_id=slot.id)
    cleared = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert cleared.picker_id is None
    assert cleared.nominator_id is None
    assert cleared.picker_assigned_at is None


@pytest.mark.asyncio
async def test_set_slot_table_keeps_picker(db_url):
    slot = await ledger.create_slot(db_url=db_url, track=DAILY, now=NOW)
    await ledger.assign_picker(db_url=db_url, slot_id=slot.id, picker_id="u1")
    await ledger.set_slot_table(db_url=db_url, slot_id=slot.id,
                                table_name="Medieval Madness", name="Medieval Madness DG")
    picked = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert picked.picker_id == "u1"
    assert picked.table_name == "Medieval Madness"
    assert await ledger.list_awaiting_pick(db_url=db_url, track="DG") == []


@pytest.mark.asyncio
async def test_overwrite_slot_replaces_in_place(db_url):
    slot = await ledger.create_slot(db_url=db_url, track=DAILY, now=NOW)
    await ledger.assign_picker(db_url=db_url, slot_id=slot.id, picker_id="u1", nominator_id="u0")
    await ledger.overwrite_slot(db_url=db_url, slot_id=slot.id, name="Attack from Mars DG",
                                external_id="ext-9", table_name="Attack from Mars")
    slot_after = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert slot_after.name == "Attack from Mars DG"
    assert slot_after.external_id == "ext-9"
    assert slot_after.picker_id is None
    assert slot_after.nominator_id is None
    assert len(await ledger.list_queued_slots(db_url=db_url, track="DG")) == 1
    found = await ledger.get_slot_by_external_id(db_url=db_url, external_id="ext-9")
    assert found.id == slot.id


@pytest.mark.asyncio
async def test_add_scores_is_idempotent(db_url):
    slot = await ledger.create_slot(db_url=db_url, track=DAILY, now=NOW)
    assert not await ledger.has_scores(db_url=db_url, slot_id=slot.id)

    first = await ledger.add_scores(db_url=db_url, slot_id=slot.id,
                                    scores=[(1, "alice", "500"), (2, "bob", "400")])
    second = await ledger.add_scores(db_url=db_url, slot_id=slot.id,
                                     scores=[(1, "carol", "900")])
    assert (first, second) == (2, 0)
    assert await ledger.has_scores(db_url=db_url, slot_id=slot.id)
    rows = await ledger.list_scores(db_url=db_url, slot_id=slot.id)
    assert [(r.rank, r.username, r.score) for r in rows] == [(1, "alice", "500"), (2, "bob", "400")]


@pytest.mark.asyncio
async def test_recent_table_names_window(db_url):
    await ledger.create_slot(db_url=db_url, track=DAILY, table_name="Medieval Madness",
                             name="Medieval Madness DG", now=NOW - timedelta(days=5))
    await ledger.create_slot(db_url=db_url, track=DAILY, name="Attack from Mars DG",
                             now=NOW - timedelta(days=10))
    await ledger.create_slot(db_url=db_url, track=DAILY, table_name="Old Timer",
                             name="Old Timer DG", now=NOW - timedelta(days=30))
    await ledger.create_slot(db_url=db_url, track=WEEKLY_VR, table_name="Other Track",
                             name="Other Track WG-VR", now=NOW)

    recent = await ledger.recent_table_names(db_url=db_url, track="DG", days=21, now=NOW)
    assert recent == {"Medieval Madness", "Attack from Mars"}


@pytest.mark.asyncio
async def test_upsert_observed_slot_creates_then_updates(db_url):
    slot, created = await ledger.upsert_observed_slot(
        db_url=db_url, track="DG", external_id="ext-1", name="Medieval Madness DG",
        status=SlotStatus.ACTIVE, now=NOW,
    )
    assert created
    assert slot.table_name == "Medieval Madness"

    slot, created = await ledger.upsert_observed_slot(
        db_url=db_url, track="DG", external_id="ext-1", name="Medieval Madness DG",
        status=SlotStatus.COMPLETED, now=NOW + timedelta(hours=1),
    )
    assert not created
    stored = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert stored.status == SlotStatus.COMPLETED
    assert stored.completed_at == NOW + timedelta(hours=1)


@pytest.mark.asyncio
async def test_demote_unobserved(db_url):
    seen = await ledger.create_slot(db_url=db_url, track=DAILY, external_id="seen",
                                    status=SlotStatus.ACTIVE, now=NOW)
    gone = await ledger.create_slot(db_url=db_url, track=WEEKLY_VR, external_id="gone",
                                    status=SlotStatus.ACTIVE, now=NOW)
    queued = await ledger.create_slot(db_url=db_url, track=DAILY, external_id="q-gone", now=NOW)

    count = await ledger.demote_unobserved(db_url=db_url, observed_external_ids=["seen"])
    assert count == 1
    assert (await ledger.get_slot(db_url=db_url, slot_id=seen.id)).status == SlotStatus.ACTIVE
    assert (await ledger.get_slot(db_url=db_url, slot_id=gone.id)).status == SlotStatus.HIDDEN
    assert (await ledger.get_slot(db_url=db_url, slot_id=queued.id)).status == SlotStatus.QUEUED


@pytest.mark.asyncio
async def test_wipe_single_track(db_url):
    dg = await ledger.create_slot(db_url=db_url, track=DAILY, now=NOW)
    await ledger.add_scores(db_url=db_url, slot_id=dg.id, scores=[(1, "alice", "1")])
    await ledger.create_slot(db_url=db_url, track=MONTHLY, now=NOW)

    removed = await ledger.wipe(db_url=db_url, track="DG")
    assert removed == 1
    assert await ledger.list_slots(db_url=db_url, track="DG") == []
    assert not await ledger.has_scores(db_url=db_url, slot_id=dg.id)
    assert len(await ledger.list_slots(db_url=db_url, track="MG")) == 1


@pytest.mark.asyncio
async def test_duplicate_external_id_is_a_persistence_error(db_url):
    await ledger.create_slot(db_url=db_url, track=DAILY, external_id="ext-1", now=NOW)
    with pytest.raises(PersistenceError):
        await ledger.create_slot(db_url=db_url, track=DAILY, external_id="ext-1", now=NOW)
