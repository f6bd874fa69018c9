import random

import pytest

from config.settings import Settings
from pingrind.app import build_app
from pingrind.db import ledger
from pingrind.notify import NullNotifier
from pingrind.scoreboard import SandboxLineup


@pytest.fixture
def app_settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/app.db",
        NOTIFIER="none",
        SANDBOX_LINEUP_FILE=str(tmp_path / "lineup.json"),
        SCOREBOARD_ROOM="",
        PICKER_TIMEOUT_HOURS=6,
        DYNASTY_RULE_ENABLED=False,
    )


def test_build_app_wires_settings(app_settings):
    app = build_app(app_settings, rng=random.Random(1))
    assert isinstance(app.notifier, NullNotifier)
    assert isinstance(app.lineup_factory(), SandboxLineup)
    assert app.escalator.timeout_hours == 6
    assert app.picker.dynasty_enabled is False
    assert app.controller.picker is app.picker
    assert app.controller.pause is app.pause
    assert app.escalator.picker is app.picker
    assert app.scheduler.controller is app.controller
    assert app.escalator.locks is app.controller.locks
    assert app.pause.lineup_factory is app.lineup_factory
    assert app.controller.results_limit == app_settings.SCOREBOARD_FINAL_RESULTS_MAX
    assert app.db_url == app_settings.DATABASE_URL


@pytest.mark.asyncio
async def test_startup_creates_schema(app_settings):
    from pingrind.db.database import close_db_async

    app = build_app(app_settings)
    await app.startup()
    try:
        assert await ledger.list_slots(db_url=app.db_url) == []
    finally:
        await close_db_async(app.db_url)
