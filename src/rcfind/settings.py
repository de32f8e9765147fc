"""Environment-driven defaults for rcfind.

Uses Pydantic v2 BaseSettings so tools embedding rcfind can tune the
search without touching code, e.g. `RCFIND_STOP_DIR=/srv/app`.
"""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RcfindSettings(BaseSettings):
    """Defaults applied when a searcher is created without explicit options.

    Priority order (highest to lowest):
    1. Options passed to the searcher constructor
    2. Environment variables with RCFIND_ prefix
    3. Field defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="RCFIND_",
        case_sensitive=False,
        extra="ignore",
    )

    stop_dir: str | None = Field(
        default=None,
        description="Highest directory checked by search (default: home directory)",
    )

    cache: bool = Field(
        default=True,
        description="Cache search and load results per searcher instance",
    )

    ignore_empty_search_places: bool = Field(
        default=True,
        description="Skip empty candidate files during search",
    )


def get_home_dir() -> str:
    """Get the current user's home directory."""
    return os.path.expanduser("~")


def get_stop_dir(settings: RcfindSettings) -> str:
    """Get the default stop directory.

    Args:
        settings: rcfind settings.

    Returns:
        `settings.stop_dir` if set, otherwise the home directory.
    """
    if settings.stop_dir:
        return settings.stop_dir
    return get_home_dir()
