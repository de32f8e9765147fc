"""rcfind - find and load a project's config file wherever the user put it."""

from rcfind.exceptions import ConfigurationError, RcfindError, ValidationError
from rcfind.loaders import (
    dynamic_import,
    is_module_mismatch,
    json_loader,
    make_dynamic_import,
    require,
    toml_loader,
)
from rcfind.options import (
    ResolvedOptions,
    get_default_loaders,
    get_default_search_places,
    resolve_options,
)
from rcfind.searcher import ConfigResult, ConfigSearcher, ConfigSearcherSync
from rcfind.settings import RcfindSettings
from rcfind.sources import SearchedConfigSettingsSource

__all__ = [
    # Exceptions
    "RcfindError",
    "ConfigurationError",
    "ValidationError",
    # Searchers
    "ConfigResult",
    "ConfigSearcher",
    "ConfigSearcherSync",
    # Options
    "ResolvedOptions",
    "get_default_loaders",
    "get_default_search_places",
    "resolve_options",
    # Loaders
    "dynamic_import",
    "is_module_mismatch",
    "json_loader",
    "make_dynamic_import",
    "require",
    "toml_loader",
    # Settings
    "RcfindSettings",
    "SearchedConfigSettingsSource",
]
