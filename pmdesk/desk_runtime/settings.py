"""Service configuration loaded from PMDESK_* environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "pmdesk"


class DeskSettings(BaseSettings):
    """pmdesk runtime settings.

    All fields are read from environment variables with the ``PMDESK_`` prefix.
    For example, ``PMDESK_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    Per-workspace data (projects, repositories, directory types) is **not**
    configured here -- it lives in each workspace's own database.
    """

    model_config = SettingsConfigDict(
        env_prefix="PMDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Storage ---------------------------------------------------------------
    config_dir: Path = Field(default_factory=_default_config_dir)
    """Per-user directory holding the recent-workspaces cache."""

    workspace: str | None = None
    """Optional workspace root opened automatically at startup."""

    # -- Git -------------------------------------------------------------------
    git_network_timeout: float = 60.0
    """Seconds before a clone / fetch is killed and reported as timed out."""

    watch_interval: float = 300.0
    """Seconds between two background status sweeps."""

    watch_concurrency: int = 4
    """Maximum number of concurrent background status checks."""

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8765

    # -- Helpers ---------------------------------------------------------------

    @property
    def recent_workspaces_file(self) -> Path:
        return self.config_dir / "recent_workspaces.json"


def get_settings() -> DeskSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> DeskSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return DeskSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
