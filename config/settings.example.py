"""Configuration template - copy to .env (or export) and fill in values."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Database ===
    DATABASE_URL: str = "sqlite+aiosqlite:///data/pingrind.db"

    # === Scoreboard ===
    SCOREBOARD_ROOM: str = "your_gameroom"
    LINEUP_ADAPTER: str = "pingrind.scoreboard.sandbox:SandboxLineup"

    # === Notifications ===
    NOTIFIER: str = "discord"
    DISCORD_WEBHOOK_URL: str = ""
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""

    model_config = {"env_file": ".env"}


settings = Settings()
