import asyncio
from datetime import datetime, timedelta

import pytest

from pingrind.db import catalog, ledger
from pingrind.db.models import SlotStatus
from pingrind.exceptions import VerificationFailedError
from pingrind.lifecycle import TimeoutEscalator, TrackLocks
from pingrind.tracks import DAILY, MONTHLY, WEEKLY_VR

NOW = datetime(2026, 3, 4, 12, 0)


@pytest.fixture
def escalator(db_url, lineup_factory, notifier):
    return TimeoutEscalator(lineup_factory, db_url=db_url, notifier=notifier, timeout_hours=18)


async def _awaiting(db_url, track, hours_ago, picker_id="u-alice"):
    slot = await ledger.create_slot(db_url=db_url, track=track, now=NOW - timedelta(days=1))
    await ledger.assign_picker(db_url=db_url, slot_id=slot.id, picker_id=picker_id,
                               at=NOW - timedelta(hours=hours_ago))
    return slot


@pytest.mark.asyncio
async def test_stale_picker_is_replaced_by_random_table(db_url, sandbox, escalator, notifier):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    slot = await _awaiting(db_url, DAILY, hours_ago=19)
    queue_before = len(await ledger.list_queued_slots(db_url=db_url, track="DG"))

    actions = await escalator.check_all(NOW)

    assert len(actions) == 1
    action = actions[0]
    assert (action.track, action.slot_id, action.picker_id) == ("DG", slot.id, "u-alice")
    assert action.table_name == "Medieval Madness"

    updated = await ledger.get_slot(db_url=db_url, slot_id=slot.id)
    assert updated.name == "Medieval Madness DG"
    assert updated.external_id == action.external_id
    assert updated.picker_id is None
    assert len(await ledger.list_queued_slots(db_url=db_url, track="DG")) == queue_before

    entry = sandbox.entry(action.external_id)
    assert entry.hidden
    assert entry.tags == ("DG",)
    assert "<@u-alice>" in notifier.messages[-1][1]


@pytest.mark.asyncio
async def test_recent_picker_is_left_alone(db_url, escalator):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    slot = await _awaiting(db_url, DAILY, hours_ago=17)
    assert await escalator.check_all(NOW) == []
    assert (await ledger.get_slot(db_url=db_url, slot_id=slot.id)).picker_id == "u-alice"


@pytest.mark.asyncio
async def test_monthly_track_is_exempt(db_url, escalator):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    slot = await _awaiting(db_url, MONTHLY, hours_ago=72)
    assert await escalator.check_all(NOW) == []
    assert (await ledger.get_slot(db_url=db_url, slot_id=slot.id)).table_name is None


@pytest.mark.asyncio
async def test_existing_entry_is_reused(db_url, sandbox, escalator):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    existing = sandbox.add_entry("Medieval Madness DG")
    await _awaiting(db_url, DAILY, hours_ago=20)

    actions = await escalator.check_all(NOW)

    assert actions[0].external_id == existing.external_id
    assert sandbox.entry(existing.external_id).hidden
    assert len(await sandbox.list_entries()) == 1


@pytest.mark.asyncio
async def test_no_eligible_table_leaves_slot(db_url, escalator):
    slot = await _awaiting(db_url, DAILY, hours_ago=30)
    assert await escalator.check_all(NOW) == []
    assert (await ledger.get_slot(db_url=db_url, slot_id=slot.id)).picker_id == "u-alice"


@pytest.mark.asyncio
async def test_failure_on_one_track_does_not_block_others(db_url, sandbox, escalator,
                                                          monkeypatch):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    await catalog.upsert_table(db_url=db_url, name="Twilight Zone", is_wg_vr=True)
    dg = await _awaiting(db_url, DAILY, hours_ago=20)
    await _awaiting(db_url, WEEKLY_VR, hours_ago=20, picker_id="u-bob")

    real_create = sandbox.create_entry

    async def flaky_create(name):
        if name.endswith(" DG"):
            raise VerificationFailedError(f"created entry {name!r} is not in the lineup")
        return await real_create(name)

    monkeypatch.setattr(sandbox, "create_entry", flaky_create)
    actions = await escalator.check_all(NOW)

    assert [a.track for a in actions] == ["WG-VR"]
    assert (await ledger.get_slot(db_url=db_url, slot_id=dg.id)).picker_id == "u-alice"


@pytest.mark.asyncio
async def test_locked_namesake_from_earlier_cycle_is_not_reused(db_url, sandbox, escalator):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    old = sandbox.add_entry("Medieval Madness DG", locked=True, tags=("DG",))
    await ledger.create_slot(db_url=db_url, track=DAILY, name=old.name,
                             table_name="Medieval Madness", external_id=old.external_id,
                             status=SlotStatus.COMPLETED, now=NOW - timedelta(days=40))
    slot = await _awaiting(db_url, DAILY, hours_ago=20)

    actions = await escalator.check_all(NOW)

    assert len(actions) == 1
    assert actions[0].external_id != old.external_id
    assert (await ledger.get_slot(db_url=db_url, slot_id=slot.id)).external_id == actions[0].external_id
    assert sandbox.entry(old.external_id).locked
    assert not sandbox.entry(old.external_id).hidden


@pytest.mark.asyncio
async def test_namesake_owned_by_another_slot_is_not_reused(db_url, sandbox, escalator):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    queued = sandbox.add_entry("Medieval Madness DG", hidden=True, tags=("DG",))
    await ledger.create_slot(db_url=db_url, track=DAILY, name=queued.name,
                             table_name="Medieval Madness", external_id=queued.external_id,
                             now=NOW - timedelta(days=40))
    await _awaiting(db_url, DAILY, hours_ago=20)

    actions = await escalator.check_all(NOW)

    assert actions[0].external_id != queued.external_id


@pytest.mark.asyncio
async def test_escalation_waits_for_the_track_lock(db_url, lineup_factory):
    await catalog.upsert_table(db_url=db_url, name="Medieval Madness", is_atgames=True)
    locks = TrackLocks()
    escalator = TimeoutEscalator(lineup_factory, db_url=db_url, timeout_hours=18, locks=locks)
    slot = await _awaiting(db_url, DAILY, hours_ago=19)

    lock = locks.get("DG")
    await lock.acquire()
    task = asyncio.create_task(escalator.check_track(DAILY, NOW))
    for _ in range(5):
        await asyncio.sleep(0)
    assert not task.done()
    assert (await ledger.get_slot(db_url=db_url, slot_id=slot.id)).picker_id == "u-alice"

    lock.release()
    actions = await asyncio.wait_for(task, timeout=5)
    assert [a.slot_id for a in actions] == [slot.id]
