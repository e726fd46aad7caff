"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Recitation counter configuration. All values come from environment variables."""

    # Clock
    timezone: str = Field(default="Africa/Kinshasa")

    # Database
    database_path: Path = Field(default=Path("data/recitation.db"))

    # Scheduler
    tick_interval_seconds: int = Field(default=30, ge=1, le=60)
    missed_sweep_interval_seconds: int = Field(default=300, ge=1)
    missed_reminder_delay_minutes: int = Field(default=30, ge=0)
    missed_sweep_window_minutes: int = Field(default=120, ge=1)

    # Notifications
    default_notification_channel: str = Field(default="log")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
