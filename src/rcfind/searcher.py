"""Configuration search and loading.

Walks from a start directory up to a stop directory, checking each search
place in order, and loads explicit config files. `ConfigSearcherSync`
blocks on every file access; `ConfigSearcher` exposes the same operations
as coroutines. Both follow the same algorithm step for step.
"""

import asyncio
import inspect
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from rcfind.exceptions import ConfigurationError, ValidationError
from rcfind.options import ResolvedOptions, loader_key, resolve_options

logger = logging.getLogger(__name__)

# Package manifests and the table their config lives under
MANIFEST_PREFIXES: dict[str, tuple[str, ...]] = {
    "package.json": (),
    "pyproject.toml": ("tool",),
}


class ConfigResult(BaseModel):
    """A located configuration.

    Attributes:
        filepath: Path of the file the config came from.
        config: The parsed config (None for empty files).
        is_empty: True when the file had no content.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    filepath: str
    config: Any = None
    is_empty: bool | None = None


def parent_dir(path: str) -> str:
    """Get the parent directory of a path.

    `os.path.dirname` yields "" when ascending past the top of a relative
    path; the filesystem root is used instead.
    """
    return os.path.dirname(path) or os.sep


def extract_package_prop(props: str | Sequence[str], obj: Any) -> Any:
    """Look up a key or dotted path inside a parsed manifest.

    Args:
        props: A key, a dotted path ("a.b.c") or a sequence of keys.
        obj: The parsed manifest.

    Returns:
        The value found, or None as soon as a segment is missing.

    Examples:
        >>> extract_package_prop("myapp", {"myapp": {"x": 1}})
        {'x': 1}

        >>> extract_package_prop("a.b", {"a": {"b": 2}})
        2

        >>> extract_package_prop(["a", "c"], {"a": {"b": 2}}) is None
        True
    """
    if isinstance(props, str) and isinstance(obj, Mapping) and props in obj:
        return obj[props]

    value = obj
    for prop in props.split(".") if isinstance(props, str) else props:
        if not isinstance(value, Mapping):
            return None
        value = value.get(prop)
    return value


def manifest_config(filename: str, props: str | Sequence[str], manifest: Any) -> Any:
    """Extract the project's config from a parsed package manifest."""
    value = manifest
    for table in MANIFEST_PREFIXES[filename]:
        if not isinstance(value, Mapping):
            return None
        value = value.get(table)
    return extract_package_prop(props, value)


def _is_file(path: str) -> bool:
    try:
        return Path(path).is_file()
    except OSError:
        return False


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def _is_empty(content: str) -> bool:
    return content.strip() == ""


class _BaseSearcher:
    """State and helpers shared by the blocking and async searchers."""

    def __init__(self, name: str, options: ResolvedOptions) -> None:
        self.name = name
        self.options = options
        self._search_cache: dict[str, Any] = {}
        self._load_cache: dict[str, Any] = {}

    def _get_loader(self, key: str) -> Any:
        """Get the loader for a key, failing if it is unusable.

        Raises:
            ConfigurationError: If the loader is missing or not callable.
        """
        loader = self.options.loaders.get(key)
        if loader is None:
            raise ConfigurationError(f'No loader specified for extension "{key}"', key)
        if not callable(loader):
            raise ConfigurationError(f'Loader for extension "{key}" is not callable', key)
        return loader

    def _cached_search(self, directory: str, visited: list[str]) -> tuple[bool, Any]:
        """Check the search cache, recording the directory as visited on a miss."""
        if directory in self._search_cache:
            hit = self._search_cache[directory]
            logger.debug("Search cache hit for %s", directory)
            self._store_search(visited, hit)
            return True, hit
        visited.append(directory)
        return False, None

    def _store_search(self, directories: list[str], result: Any) -> None:
        for directory in directories:
            self._search_cache[directory] = result

    def _store_load(self, filepath: str, result: Any) -> Any:
        if self.options.cache:
            self._load_cache[filepath] = result
        return result

    def _is_last_directory(self, directory: str) -> bool:
        return directory == self.options.stop_dir or directory == parent_dir(directory)

    def _resolve_load_path(self, filepath: str | os.PathLike[str] | None) -> str:
        # Path("") normalizes to "."
        if filepath is None or os.fspath(filepath) in ("", "."):
            raise ValidationError()
        return os.path.abspath(os.fspath(filepath))

    def clear_load_cache(self) -> None:
        """Forget results returned by `load`."""
        if self.options.cache:
            self._load_cache.clear()

    def clear_search_cache(self) -> None:
        """Forget results returned by `search`."""
        if self.options.cache:
            self._search_cache.clear()

    def clear_caches(self) -> None:
        """Forget all cached results."""
        if self.options.cache:
            self._load_cache.clear()
            self._search_cache.clear()


class ConfigSearcherSync(_BaseSearcher):
    """Blocking configuration searcher.

    Example:
        >>> searcher = ConfigSearcherSync("myapp")
        >>> result = searcher.search()
        >>> if result is not None:
        ...     print(result.filepath, result.config)
    """

    def __init__(self, name: str, **options: Any) -> None:
        """Initialize the searcher.

        Args:
            name: The project name used to build default search places.
            **options: Overrides accepted by `resolve_options`.

        Raises:
            ConfigurationError: If a search place has no callable loader.
        """
        super().__init__(name, resolve_options(name, sync=True, **options))

    def _search_directory(self, directory: str) -> ConfigResult | None:
        """Check each search place in one directory."""
        options = self.options
        for search_place in options.search_places:
            filepath = os.path.join(directory, search_place)
            if not _is_file(filepath):
                continue
            content = _read_text(filepath)
            key = loader_key(search_place)

            if search_place in MANIFEST_PREFIXES:
                manifest = options.loaders[key](filepath, content)
                config = manifest_config(search_place, options.package_prop, manifest)
                if config is not None:
                    return ConfigResult(filepath=filepath, config=config)
                continue

            if _is_empty(content):
                if options.ignore_empty_search_places:
                    logger.debug("Skipping empty config file %s", filepath)
                    continue
                return ConfigResult(filepath=filepath, config=None, is_empty=True)

            loader = self._get_loader(key)
            return ConfigResult(filepath=filepath, config=loader(filepath, content))
        return None

    def search(self, search_from: str | os.PathLike[str] | None = None) -> Any:
        """Search for configuration from a directory upward.

        Args:
            search_from: Directory to start in (default: current directory).

        Returns:
            The transformed result; by default a ConfigResult, or None if
            nothing was found before reaching the stop directory.
        """
        options = self.options
        start = os.fspath(search_from) if search_from is not None else os.getcwd()
        directory = start
        visited: list[str] = []
        found: ConfigResult | None = None

        while True:
            if options.cache:
                hit, cached = self._cached_search(directory, visited)
                if hit:
                    return cached

            found = self._search_directory(directory)
            if found is not None or self._is_last_directory(directory):
                break
            directory = parent_dir(directory)

        if found is None:
            logger.debug("No %s config found from %s", self.name, start)
        else:
            logger.debug("Found %s config at %s", self.name, found.filepath)

        transformed = options.transform(found)
        if options.cache:
            self._store_search(visited, transformed)
        return transformed

    def load(self, filepath: str | os.PathLike[str]) -> Any:
        """Load a specific config file.

        Args:
            filepath: Path to the file, relative to the current directory or absolute.

        Returns:
            The transformed ConfigResult.

        Raises:
            ValidationError: If filepath is empty.
            ConfigurationError: If no loader handles the file's extension.
            FileNotFoundError: If the file does not exist.
        """
        abs_path = self._resolve_load_path(filepath)
        options = self.options
        if options.cache and abs_path in self._load_cache:
            return self._load_cache[abs_path]

        loader = self._get_loader(loader_key(abs_path))
        content = _read_text(abs_path)
        basename = os.path.basename(abs_path)

        if basename in MANIFEST_PREFIXES:
            manifest = loader(abs_path, content)
            result = ConfigResult(
                filepath=abs_path,
                config=manifest_config(basename, options.package_prop, manifest),
            )
        elif _is_empty(content):
            result = ConfigResult(filepath=abs_path, config=None, is_empty=True)
        else:
            result = ConfigResult(filepath=abs_path, config=loader(abs_path, content))

        return self._store_load(abs_path, options.transform(result))


async def _resolve(value: Any) -> Any:
    """Await a value returned by a loader or transform if needed."""
    if inspect.isawaitable(value):
        return await value
    return value


class ConfigSearcher(_BaseSearcher):
    """Async configuration searcher.

    File access runs in worker threads; loaders and transforms may be
    coroutines. Directories and search places are still visited one at a
    time, in the same order as `ConfigSearcherSync`.

    Concurrent calls sharing one searcher are not de-duplicated: each
    computes its own result and the last one written to the cache wins.
    """

    def __init__(self, name: str, **options: Any) -> None:
        super().__init__(name, resolve_options(name, sync=False, **options))

    async def _search_directory(self, directory: str) -> ConfigResult | None:
        options = self.options
        for search_place in options.search_places:
            filepath = os.path.join(directory, search_place)
            if not await asyncio.to_thread(_is_file, filepath):
                continue
            content = await asyncio.to_thread(_read_text, filepath)
            key = loader_key(search_place)

            if search_place in MANIFEST_PREFIXES:
                manifest = await _resolve(options.loaders[key](filepath, content))
                config = manifest_config(search_place, options.package_prop, manifest)
                if config is not None:
                    return ConfigResult(filepath=filepath, config=config)
                continue

            if _is_empty(content):
                if options.ignore_empty_search_places:
                    logger.debug("Skipping empty config file %s", filepath)
                    continue
                return ConfigResult(filepath=filepath, config=None, is_empty=True)

            loader = self._get_loader(key)
            config = await _resolve(loader(filepath, content))
            return ConfigResult(filepath=filepath, config=config)
        return None

    async def search(self, search_from: str | os.PathLike[str] | None = None) -> Any:
        """Search for configuration from a directory upward.

        See `ConfigSearcherSync.search`.
        """
        options = self.options
        start = os.fspath(search_from) if search_from is not None else os.getcwd()
        directory = start
        visited: list[str] = []
        found: ConfigResult | None = None

        while True:
            if options.cache:
                hit, cached = self._cached_search(directory, visited)
                if hit:
                    return cached

            found = await self._search_directory(directory)
            if found is not None or self._is_last_directory(directory):
                break
            directory = parent_dir(directory)

        if found is None:
            logger.debug("No %s config found from %s", self.name, start)
        else:
            logger.debug("Found %s config at %s", self.name, found.filepath)

        transformed = await _resolve(options.transform(found))
        if options.cache:
            self._store_search(visited, transformed)
        return transformed

    async def load(self, filepath: str | os.PathLike[str]) -> Any:
        """Load a specific config file.

        See `ConfigSearcherSync.load`.
        """
        abs_path = self._resolve_load_path(filepath)
        options = self.options
        if options.cache and abs_path in self._load_cache:
            return self._load_cache[abs_path]

        loader = self._get_loader(loader_key(abs_path))
        content = await asyncio.to_thread(_read_text, abs_path)
        basename = os.path.basename(abs_path)

        if basename in MANIFEST_PREFIXES:
            manifest = await _resolve(loader(abs_path, content))
            result = ConfigResult(
                filepath=abs_path,
                config=manifest_config(basename, options.package_prop, manifest),
            )
        elif _is_empty(content):
            result = ConfigResult(filepath=abs_path, config=None, is_empty=True)
        else:
            config = await _resolve(loader(abs_path, content))
            result = ConfigResult(filepath=abs_path, config=config)

        return self._store_load(abs_path, await _resolve(options.transform(result)))
