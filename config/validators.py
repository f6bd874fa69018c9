"""Credential and configuration validators."""

from pingrind.exceptions import ConfigError


def validate_scoreboard() -> None:
    """Raise ConfigError if the results feed cannot be addressed."""
    from config.settings import settings
    if not settings.SCOREBOARD_ROOM:
        raise ConfigError("SCOREBOARD_ROOM is required to read ranked results")
    if ":" not in settings.LINEUP_ADAPTER:
        raise ConfigError("LINEUP_ADAPTER must look like 'package.module:ClassName'")


def validate_discord() -> None:
    """Raise ConfigError if no Discord webhook is configured."""
    from config.settings import settings
    per_track = (
        settings.DISCORD_WEBHOOK_URL_DG,
        settings.DISCORD_WEBHOOK_URL_WG_VPXS,
        settings.DISCORD_WEBHOOK_URL_WG_VR,
        settings.DISCORD_WEBHOOK_URL_MG,
    )
    if not settings.DISCORD_WEBHOOK_URL and not any(per_track):
        raise ConfigError("DISCORD_WEBHOOK_URL (or a per-track webhook) is required")


def validate_telegram() -> None:
    """Raise ConfigError if Telegram credentials are missing."""
    from config.settings import settings
    if not settings.TELEGRAM_BOT_TOKEN:
        raise ConfigError("TELEGRAM_BOT_TOKEN is required")
    if not settings.TELEGRAM_CHAT_ID:
        raise ConfigError("TELEGRAM_CHAT_ID is required")


def validate_notifier() -> None:
    """Validate credentials for whichever notifier NOTIFIER selects."""
    from config.settings import settings
    backend = settings.NOTIFIER.lower()
    if backend == "discord":
        validate_discord()
    elif backend == "telegram":
        validate_telegram()
    elif backend not in ("none", "null", "log"):
        raise ConfigError(f"Unknown NOTIFIER backend: {settings.NOTIFIER}")
