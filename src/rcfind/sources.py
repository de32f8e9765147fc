"""Custom pydantic-settings source backed by a config search.

This module provides a settings source that can be returned from
`settings_customise_sources()` so a `BaseSettings` class picks up the
project's config file wherever the user put it.
"""

import os
from collections.abc import Mapping
from typing import Any

from pydantic_settings import BaseSettings
from pydantic_settings.sources import InitSettingsSource

from rcfind.exceptions import ConfigurationError
from rcfind.searcher import ConfigResult, ConfigSearcherSync


class SearchedConfigSettingsSource(InitSettingsSource):
    """Settings source that loads the nearest config file for a project.

    Example:
        class AppSettings(BaseSettings):
            debug: bool = False

            @classmethod
            def settings_customise_sources(cls, settings_cls, init_settings,
                                           env_settings, dotenv_settings,
                                           file_secret_settings):
                return (
                    init_settings,
                    env_settings,
                    SearchedConfigSettingsSource(settings_cls, "myapp"),
                )
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        name: str,
        search_from: str | os.PathLike[str] | None = None,
        **options: Any,
    ) -> None:
        """Initialize the source and run the search.

        Args:
            settings_cls: The pydantic-settings class.
            name: The project name to search config for.
            search_from: Directory to start in (default: current directory).
            **options: Searcher options, see `resolve_options`. `transform`
                is not accepted: the source needs the raw ConfigResult.

        Raises:
            ConfigurationError: If `transform` is given, or the found config
                is not a mapping.
        """
        if "transform" in options:
            raise ConfigurationError(
                "SearchedConfigSettingsSource does not accept a transform", "transform"
            )
        self.searcher = ConfigSearcherSync(name, **options)
        self.result = self.searcher.search(search_from)
        super().__init__(settings_cls, self._to_mapping(self.result))

    @staticmethod
    def _to_mapping(result: ConfigResult | None) -> dict[str, Any]:
        """Convert a search result into settings values.

        Raises:
            ConfigurationError: If the config is not a mapping.
        """
        if result is None or result.config is None:
            return {}
        if not isinstance(result.config, Mapping):
            raise ConfigurationError(
                f"Config in {result.filepath} must be a mapping, "
                f"got {type(result.config).__name__}"
            )
        return dict(result.config)
