from unittest.mock import AsyncMock

import httpx
import pytest

from pingrind.exceptions import EntryNotFoundError, TransientScoreboardError
from pingrind.utils.retry import retry_async


@pytest.mark.asyncio
async def test_returns_first_success():
    call = AsyncMock(side_effect=[TransientScoreboardError("blip"), ["ok"]])
    assert await retry_async(call, max_attempts=3, base_delay=0) == ["ok"]
    assert call.await_count == 2


@pytest.mark.asyncio
async def test_reraises_after_last_attempt():
    call = AsyncMock(side_effect=httpx.ConnectError("down"))
    with pytest.raises(httpx.ConnectError):
        await retry_async(call, max_attempts=3, base_delay=0, operation="results:DG")
    assert call.await_count == 3


@pytest.mark.asyncio
async def test_non_retryable_errors_propagate_immediately():
    call = AsyncMock(side_effect=EntryNotFoundError("gone"))
    with pytest.raises(EntryNotFoundError):
        await retry_async(call, max_attempts=5, base_delay=0)
    assert call.await_count == 1


@pytest.mark.asyncio
async def test_backoff_doubles(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr("pingrind.utils.retry.asyncio.sleep", fake_sleep)
    call = AsyncMock(side_effect=TransientScoreboardError("blip"))
    with pytest.raises(TransientScoreboardError):
        await retry_async(call, max_attempts=4, base_delay=0.5)
    assert delays == [0.5, 1.0, 2.0]
