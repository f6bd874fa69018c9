import pytest

from config import validators
from config.settings import Settings, settings
from pingrind.exceptions import ConfigError


def test_settings_tournament_defaults():
    s = Settings(_env_file=None)
    assert s.PICKER_TIMEOUT_HOURS == 18.0
    assert s.RANDOM_PICK_EXCLUDE_DAYS == 21
    assert s.FAST_TRACK_LEAD_HOURS == 48.0
    assert s.DYNASTY_RULE_ENABLED is True
    assert s.TIMEZONE == "America/Chicago"
    assert s.SCOREBOARD_RESULTS_MAX == 10
    assert s.SCOREBOARD_FINAL_RESULTS_MAX == 1000


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("PICKER_TIMEOUT_HOURS", "12")
    monkeypatch.setenv("DYNASTY_RULE_ENABLED", "false")
    s = Settings(_env_file=None)
    assert s.PICKER_TIMEOUT_HOURS == 12.0
    assert s.DYNASTY_RULE_ENABLED is False


def test_settings_has_per_track_webhooks():
    s = Settings(_env_file=None)
    for name in ("DG", "WG_VPXS", "WG_VR", "MG"):
        assert hasattr(s, f"DISCORD_WEBHOOK_URL_{name}")


def test_validate_scoreboard(monkeypatch):
    monkeypatch.setattr(settings, "SCOREBOARD_ROOM", "")
    with pytest.raises(ConfigError):
        validators.validate_scoreboard()

    monkeypatch.setattr(settings, "SCOREBOARD_ROOM", "the-grind")
    monkeypatch.setattr(settings, "LINEUP_ADAPTER", "no_colon")
    with pytest.raises(ConfigError):
        validators.validate_scoreboard()

    monkeypatch.setattr(settings, "LINEUP_ADAPTER", "pingrind.scoreboard.sandbox:SandboxLineup")
    validators.validate_scoreboard()


def test_validate_discord_accepts_per_track_webhook(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFIER", "discord")
    monkeypatch.setattr(settings, "DISCORD_WEBHOOK_URL", "")
    monkeypatch.setattr(settings, "DISCORD_WEBHOOK_URL_DG", "")
    monkeypatch.setattr(settings, "DISCORD_WEBHOOK_URL_WG_VPXS", "")
    monkeypatch.setattr(settings, "DISCORD_WEBHOOK_URL_WG_VR", "")
    monkeypatch.setattr(settings, "DISCORD_WEBHOOK_URL_MG", "")
    with pytest.raises(ConfigError):
        validators.validate_notifier()

    monkeypatch.setattr(settings, "DISCORD_WEBHOOK_URL_MG", "https://discord.test/hook")
    validators.validate_notifier()


def test_validate_telegram(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFIER", "telegram")
    monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "token")
    monkeypatch.setattr(settings, "TELEGRAM_CHAT_ID", "")
    with pytest.raises(ConfigError, match="TELEGRAM_CHAT_ID"):
        validators.validate_notifier()


@pytest.mark.parametrize("backend", ["none", "LOG", "null"])
def test_validate_log_only_notifier(monkeypatch, backend):
    monkeypatch.setattr(settings, "NOTIFIER", backend)
    validators.validate_notifier()


def test_validate_unknown_notifier(monkeypatch):
    monkeypatch.setattr(settings, "NOTIFIER", "carrier-pigeon")
    with pytest.raises(ConfigError):
        validators.validate_notifier()
