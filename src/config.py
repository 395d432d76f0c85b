"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Supervisor configuration. All values come from environment variables."""

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4100)

    # Redis cache
    redis_url: str = Field(default="redis://localhost:6379")

    # Connectivity probe
    probe_url: str = Field(default="https://www.google.com/generate_204")
    probe_timeout_seconds: float = Field(default=5.0, gt=0, le=5.0)
    probe_retry_seconds: float = Field(default=60.0, gt=0)

    # Shutdown drain
    drain_timeout_seconds: float = Field(default=15.0, gt=0)
    drain_poll_interval_seconds: float = Field(default=0.5, gt=0)

    # Scheduler
    periodic_anchor: str = Field(default="first_run", pattern="^(first_run|start)$")
    disabled_tasks: str = Field(default="")

    # Outbound HTTP used by refresh sources
    http_timeout_seconds: float = Field(default=15.0, gt=0)
    user_agent: str = Field(default="monitored-supervisor/1.0")

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

    def get_disabled_tasks(self) -> set[str]:
        """Parse DISABLED_TASKS into a set of task names."""
        if not self.disabled_tasks.strip():
            return set()
        return {name.strip() for name in self.disabled_tasks.split(",") if name.strip()}


settings = Settings()
