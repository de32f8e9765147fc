"""Option resolution for searchers.

Builds the fully-populated, immutable options a searcher runs with from a
project name, environment defaults and caller overrides.
"""

import os
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from rcfind.exceptions import ConfigurationError
from rcfind.loaders import Loader, dynamic_import, json_loader, require, toml_loader
from rcfind.settings import RcfindSettings, get_stop_dir

# Loader key for search places without an extension
NO_EXT = "noExt"


def get_default_search_places(name: str, sync: bool) -> list[str]:
    """Get the default search places for a project, in priority order.

    `.aio` modules may use top-level `await`, so they are only searched
    by the async searcher.

    Args:
        name: The project name, e.g. "myapp".
        sync: Whether the list is for the blocking searcher.

    Returns:
        Relative paths checked in each directory.
    """
    return [
        "package.json",
        f".{name}rc.json",
        f".{name}rc.toml",
        f".{name}rc.py",
        *([] if sync else [f".{name}rc.aio"]),
        f".config/{name}rc",
        f".config/{name}rc.json",
        f".config/{name}rc.toml",
        f".config/{name}rc.py",
        *([] if sync else [f".config/{name}rc.aio"]),
        f"{name}.config.py",
        f"{name}.config.toml",
        *([] if sync else [f"{name}.config.aio"]),
    ]


def get_default_loaders(sync: bool) -> dict[str, Loader]:
    """Build a fresh default loader table.

    Args:
        sync: Whether the loaders are for the blocking searcher.

    Returns:
        Mapping of extension (or "noExt") to loader.
    """
    loaders: dict[str, Loader] = {
        ".json": json_loader,
        ".toml": toml_loader,
        NO_EXT: json_loader,
    }
    if sync:
        loaders[".py"] = require
    else:
        loaders[".py"] = dynamic_import
        loaders[".aio"] = dynamic_import
    return loaders


def loader_key(path: str) -> str:
    """Get the loader key for a path: its extension, or "noExt"."""
    return os.path.splitext(path)[1] or NO_EXT


def identity(result: Any) -> Any:
    return result


class ResolvedOptions(BaseModel):
    """Options a searcher runs with. Immutable once resolved."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    stop_dir: str
    search_places: tuple[str, ...]
    ignore_empty_search_places: bool
    cache: bool
    transform: Callable[[Any], Any]
    package_prop: str | tuple[str, ...]
    # Checked by validate_loaders, not by pydantic
    loaders: dict[str, Any]


def validate_loaders(search_places: Sequence[str], loaders: Mapping[str, Any]) -> None:
    """Ensure every search place has a callable loader.

    Raises:
        ConfigurationError: If a loader is missing or not callable.
    """
    for place in search_places:
        key = loader_key(place)
        loader = loaders.get(key)
        if loader is None:
            raise ConfigurationError(f'Missing loader for extension "{place}"', key)
        if not callable(loader):
            raise ConfigurationError(
                f'Loader for extension "{place}" is not callable: '
                f"received {type(loader).__name__}",
                key,
            )


def resolve_options(
    name: str,
    *,
    sync: bool,
    settings: RcfindSettings | None = None,
    stop_dir: str | os.PathLike[str] | None = None,
    search_places: Sequence[str] | None = None,
    ignore_empty_search_places: bool | None = None,
    cache: bool | None = None,
    transform: Callable[[Any], Any] | None = None,
    package_prop: str | Sequence[str] | None = None,
    loaders: Mapping[str, Any] | None = None,
) -> ResolvedOptions:
    """Resolve searcher options.

    Explicit arguments replace defaults entirely, except `loaders`, whose
    entries are merged over the default loader table.

    Args:
        name: The project name.
        sync: Whether options are for the blocking searcher.
        settings: Environment defaults (read from RCFIND_* if not given).
        stop_dir: Highest directory searched.
        search_places: Relative paths checked in each directory.
        ignore_empty_search_places: Skip empty files during search.
        cache: Cache search and load results.
        transform: Hook applied to every result, including None.
        package_prop: Key or dotted path looked up in package manifests.
        loaders: Extra or replacement loaders keyed by extension.

    Returns:
        The resolved options.

    Raises:
        ConfigurationError: If a search place has no callable loader.
    """
    if settings is None:
        settings = RcfindSettings()

    merged_loaders = {**get_default_loaders(sync), **(loaders or {})}

    if package_prop is None:
        package_prop = (name,)
    elif not isinstance(package_prop, str):
        package_prop = tuple(package_prop)

    places = (
        tuple(search_places)
        if search_places is not None
        else tuple(get_default_search_places(name, sync))
    )
    validate_loaders(places, merged_loaders)

    return ResolvedOptions(
        stop_dir=os.fspath(stop_dir) if stop_dir is not None else get_stop_dir(settings),
        search_places=places,
        ignore_empty_search_places=(
            ignore_empty_search_places
            if ignore_empty_search_places is not None
            else settings.ignore_empty_search_places
        ),
        cache=cache if cache is not None else settings.cache,
        transform=transform if transform is not None else identity,
        package_prop=package_prop,
        loaders=merged_loaders,
    )
