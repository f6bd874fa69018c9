import pytest

from pingrind.tracks import (
    ALL_TRACKS,
    DAILY,
    MONTHLY,
    WEEKLY_VPXS,
    WEEKLY_VR,
    Platform,
    get_track,
    track_for_entry,
)


def test_four_tracks_with_expected_rules():
    assert [t.code for t in ALL_TRACKS] == ["DG", "WG-VPXS", "WG-VR", "MG"]
    assert DAILY.lead_hours == 48.0
    assert WEEKLY_VR.lead_hours == 0.0
    assert MONTHLY.timeout_exempt is True
    assert not any(t.timeout_exempt for t in (DAILY, WEEKLY_VPXS, WEEKLY_VR))
    assert WEEKLY_VPXS.platform is Platform.VPXS
    assert MONTHLY.platform is Platform.ATGAMES


def test_get_track_is_case_insensitive():
    assert get_track("dg") is DAILY
    assert get_track(" wg-vr ") is WEEKLY_VR


def test_get_track_unknown_raises():
    with pytest.raises(KeyError):
        get_track("XX")


def test_entry_name_appends_code():
    assert DAILY.entry_name("Medieval Madness") == "Medieval Madness DG"


def test_track_for_entry_prefers_tag():
    assert track_for_entry("Attack from Mars", ("wg-vr",)) is WEEKLY_VR


def test_track_for_entry_falls_back_to_name_suffix():
    assert track_for_entry("Attack from Mars WG-VPXS") is WEEKLY_VPXS
    assert track_for_entry("Attack from Mars WG-VR") is WEEKLY_VR
    assert track_for_entry("Twilight Zone mg") is MONTHLY


def test_track_for_entry_unowned():
    assert track_for_entry("Some Side Event") is None
