"""Runtime configuration, loaded from the environment and ``.env``."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Database ===
    DATABASE_URL: str = "sqlite+aiosqlite:///data/pingrind.db"

    # === Scheduling ===
    TIMEZONE: str = "America/Chicago"

    # === Tournament rules ===
    PICKER_TIMEOUT_HOURS: float = 18.0
    RANDOM_PICK_EXCLUDE_DAYS: int = 21
    FAST_TRACK_LEAD_HOURS: float = 48.0
    PAUSE_DEFAULT_HOURS: float = 24.0
    DYNASTY_RULE_ENABLED: bool = True

    # === Scoreboard (results feed) ===
    SCOREBOARD_API_URL: str = "https://www.iscored.info/api"
    SCOREBOARD_ROOM: str = ""
    SCOREBOARD_RESULTS_MAX: int = 10  # live standings
    SCOREBOARD_FINAL_RESULTS_MAX: int = 1000  # ranks recorded when a slot closes
    SCOREBOARD_TIMEOUT_SECONDS: float = 15.0
    RESULTS_RETRY_ATTEMPTS: int = 3
    RESULTS_RETRY_DELAY: float = 2.0

    # === Scoreboard (admin surface) ===
    # "module:Class" of the LineupAdapter implementation
    LINEUP_ADAPTER: str = "pingrind.scoreboard.sandbox:SandboxLineup"
    SANDBOX_LINEUP_FILE: str = "data/sandbox_lineup.json"

    # === Notifications ===
    NOTIFIER: str = "discord"  # "discord" | "telegram" | "none"
    DISCORD_WEBHOOK_URL: str = ""
    DISCORD_WEBHOOK_URL_DG: str = ""
    DISCORD_WEBHOOK_URL_WG_VPXS: str = ""
    DISCORD_WEBHOOK_URL_WG_VR: str = ""
    DISCORD_WEBHOOK_URL_MG: str = ""
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
