import httpx
import pytest

from config.settings import Settings
from pingrind.exceptions import ConfigError, TransientScoreboardError
from pingrind.scoreboard import SandboxLineup, ScoreboardResultsClient, load_lineup_factory
from pingrind.scoreboard.results import parse_scores

BASE = "https://scores.example.test/api/v1/rooms"


def _client(**kwargs) -> ScoreboardResultsClient:
    return ScoreboardResultsClient(base_url=BASE + "/", room="The Grind", **kwargs)


def test_parse_scores_skips_nameless_and_sorts():
    payload = {"scores": [
        {"rank": "2", "name": "bob", "score": "400"},
        {"rank": "1", "name": "alice", "score": "1,234,560"},
        {"rank": "3", "name": "", "score": "1"},
        {"rank": "n/a", "name": "dave", "score": "10"},
    ]}
    scores = parse_scores(payload)
    assert [(s.rank, s.username, s.score) for s in scores] == [
        (1, "alice", "1,234,560"),
        (2, "bob", "400"),
        (4, "dave", "10"),
    ]


def test_parse_scores_tolerates_bad_shapes():
    assert parse_scores(None) == []
    assert parse_scores({"scores": "nope"}) == []
    assert parse_scores({"scores": ["x", {"name": "alice"}]})[0].username == "alice"


def test_room_is_required():
    with pytest.raises(ConfigError):
        ScoreboardResultsClient(base_url=BASE, room="")


def test_url_quotes_room_and_entry_name():
    url = _client().url_for("Attack from Mars WG-VR")
    assert url == f"{BASE}/The%20Grind/Attack%20from%20Mars%20WG-VR"


@pytest.mark.asyncio
async def test_fetch_returns_ranked_scores(respx_mock):
    route = respx_mock.get(f"{BASE}/The%20Grind/Medieval%20Madness%20DG").mock(
        return_value=httpx.Response(200, json={"scores": [
            {"rank": "1", "name": "alice", "score": "500"},
        ]})
    )
    scores = await _client(max_results=5).fetch("Medieval Madness DG")
    assert scores[0].username == "alice"
    assert route.called
    assert route.calls.last.request.url.params["max"] == "5"


@pytest.mark.asyncio
async def test_fetch_limit_overrides_default(respx_mock):
    route = respx_mock.get(url__startswith=BASE).mock(
        return_value=httpx.Response(200, json={"scores": []})
    )
    await _client().fetch("Medieval Madness DG", limit=3)
    assert route.calls.last.request.url.params["max"] == "3"


@pytest.mark.asyncio
async def test_missing_entry_is_empty(respx_mock):
    respx_mock.get(url__startswith=BASE).mock(return_value=httpx.Response(404))
    assert await _client().fetch("Gone DG") == []


@pytest.mark.asyncio
async def test_client_error_is_empty(respx_mock):
    respx_mock.get(url__startswith=BASE).mock(return_value=httpx.Response(403))
    assert await _client().fetch("Medieval Madness DG") == []


@pytest.mark.asyncio
async def test_bad_json_is_empty(respx_mock):
    respx_mock.get(url__startswith=BASE).mock(
        return_value=httpx.Response(200, content=b"<html>")
    )
    assert await _client().fetch("Medieval Madness DG") == []


@pytest.mark.asyncio
async def test_server_error_is_transient(respx_mock):
    respx_mock.get(url__startswith=BASE).mock(return_value=httpx.Response(502))
    with pytest.raises(TransientScoreboardError):
        await _client().fetch("Medieval Madness DG")


@pytest.mark.asyncio
async def test_connect_error_is_transient(respx_mock):
    respx_mock.get(url__startswith=BASE).mock(side_effect=httpx.ConnectError("down"))
    with pytest.raises(TransientScoreboardError):
        await _client().fetch("Medieval Madness DG")


@pytest.mark.asyncio
async def test_sandbox_delegates_unseeded_entries_to_client(respx_mock):
    respx_mock.get(url__startswith=BASE).mock(
        return_value=httpx.Response(200, json={"scores": [
            {"rank": "1", "name": "bob", "score": "900"},
        ]})
    )
    lineup = SandboxLineup(results_client=_client())
    entry = lineup.add_entry("Attack from Mars DG")
    scores = await lineup.fetch_ranked_results(entry.external_id)
    assert scores[0].username == "bob"


@pytest.mark.asyncio
async def test_replayed_name_still_resolves_through_the_feed(respx_mock):
    route = respx_mock.get(url__startswith=BASE).mock(
        return_value=httpx.Response(200, json={"scores": [
            {"rank": "1", "name": "carol", "score": "1,000"},
        ]})
    )
    lineup = SandboxLineup(results_client=_client())
    lineup.add_entry("Attack from Mars DG", locked=True)
    current = lineup.add_entry("Attack from Mars DG")

    assert len(await lineup.find_entries_by_name("attack from mars dg")) == 2
    scores = await lineup.fetch_ranked_results(current.external_id, 1000)

    assert [s.username for s in scores] == ["carol"]
    assert route.calls.last.request.url.params["max"] == "1000"


def test_load_lineup_factory_builds_sessions():
    settings = Settings(_env_file=None, SANDBOX_LINEUP_FILE="", SCOREBOARD_ROOM="")
    factory = load_lineup_factory("pingrind.scoreboard.sandbox:SandboxLineup", settings)
    lineup = factory()
    assert isinstance(lineup, SandboxLineup)
    assert factory() is not lineup


@pytest.mark.parametrize("target", [
    "no-colon",
    "pingrind.does_not_exist:Thing",
    "pingrind.scoreboard.results:ScoreboardResultsClient",
    "pingrind.scoreboard.sandbox:Missing",
])
def test_load_lineup_factory_rejects_bad_targets(target):
    with pytest.raises(ConfigError):
        load_lineup_factory(target, settings=None)
