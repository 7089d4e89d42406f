"""Package Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All settings come from METATYPES_* environment variables or a .env file
    - get_settings() is cached (lru_cache) — single instance per process
    - Settings never influence derived ids: identity depends on structure only

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for every setting: the package works without any configuration
"""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Package settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="METATYPES_", env_file=".env", case_sensitive=False, extra="ignore",
    )

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept any case ("debug"), store the logging module's spelling ("DEBUG")."""
        level = str(v).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    # Converter loader
    # Import-path loaders run importlib in a worker thread so module import
    # side effects never block the event loop.
    converter_import_in_thread: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
