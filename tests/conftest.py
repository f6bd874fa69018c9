import pytest

from pingrind.db.database import close_db_async, init_db_async
from pingrind.scoreboard import SandboxLineup


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    async def notify(self, text, track=None):
        self.messages.append((track, text))
        return True


@pytest.fixture
async def db_url(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path}/grind.db"
    await init_db_async(url)
    yield url
    await close_db_async(url)


@pytest.fixture
def sandbox():
    return SandboxLineup()


@pytest.fixture
def lineup_factory(sandbox):
    return lambda: sandbox


@pytest.fixture
def notifier():
    return RecordingNotifier()
