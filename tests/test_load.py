"""Tests for searcher.py explicit file loading."""

import asyncio
import json
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from rcfind import (
    ConfigResult,
    ConfigSearcher,
    ConfigSearcherSync,
    ConfigurationError,
    ValidationError,
)

WriteJson = Callable[[Path, object], Path]


@pytest.fixture
def searcher(project_dir: Path) -> ConfigSearcherSync:
    return ConfigSearcherSync("myapp", stop_dir=project_dir)


class TestLoadSync:
    """Tests for ConfigSearcherSync.load."""

    def test_loads_json(
        self, searcher: ConfigSearcherSync, project_dir: Path, write_json: WriteJson
    ) -> None:
        config = write_json(project_dir / "custom.json", {"x": 1})
        assert searcher.load(config) == ConfigResult(filepath=str(config), config={"x": 1})

    def test_loads_toml(self, searcher: ConfigSearcherSync, project_dir: Path) -> None:
        config = project_dir / "settings.toml"
        config.write_text('[server]\nport = 8080\n')
        assert searcher.load(str(config)).config == {"server": {"port": 8080}}

    def test_loads_python_module(
        self, searcher: ConfigSearcherSync, project_dir: Path
    ) -> None:
        """Modules without a `config` attribute export their public names."""
        config = project_dir / "settings.py"
        config.write_text("import os\n\nDEBUG = True\n_private = 1\nPORTS = [80, 443]\n")
        assert searcher.load(config).config == {"DEBUG": True, "PORTS": [80, 443]}

    def test_relative_path(
        self,
        searcher: ConfigSearcherSync,
        project_dir: Path,
        write_json: WriteJson,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Relative paths resolve against the current directory."""
        write_json(project_dir / "custom.json", {"x": 1})
        monkeypatch.chdir(project_dir)
        result = searcher.load("custom.json")
        assert result.filepath == os.path.abspath("custom.json")
        assert os.path.isabs(result.filepath)

    def test_empty_file_returns_empty_result(
        self, searcher: ConfigSearcherSync, project_dir: Path
    ) -> None:
        """An explicit empty file is returned, not skipped."""
        config = project_dir / ".myapprc.json"
        config.write_text("   ")
        assert searcher.options.ignore_empty_search_places is True
        assert searcher.load(config) == ConfigResult(
            filepath=str(config), config=None, is_empty=True
        )

    def test_empty_file_not_ignored(self, project_dir: Path) -> None:
        config = project_dir / ".myapprc.json"
        config.write_text("")
        searcher = ConfigSearcherSync(
            "myapp", stop_dir=project_dir, ignore_empty_search_places=False
        )
        result = searcher.load(config)
        assert result.is_empty is True
        assert result.config is None

    def test_package_json(
        self, searcher: ConfigSearcherSync, project_dir: Path, write_json: WriteJson
    ) -> None:
        manifest = write_json(project_dir / "package.json", {"myapp": {"x": 1}})
        assert searcher.load(manifest) == ConfigResult(
            filepath=str(manifest), config={"x": 1}
        )

    def test_package_json_without_property(
        self, searcher: ConfigSearcherSync, project_dir: Path, write_json: WriteJson
    ) -> None:
        manifest = write_json(project_dir / "package.json", {"name": "pkg"})
        assert searcher.load(manifest) == ConfigResult(filepath=str(manifest), config=None)

    def test_pyproject(self, searcher: ConfigSearcherSync, project_dir: Path) -> None:
        manifest = project_dir / "pyproject.toml"
        manifest.write_text("[tool.myapp]\nstrict = true\n")
        assert searcher.load(manifest).config == {"strict": True}

    @pytest.mark.parametrize("filepath", ["", None, Path("")])
    def test_empty_path(
        self,
        searcher: ConfigSearcherSync,
        filepath: Any,
        no_fs_access: Callable[[], None],
    ) -> None:
        """Empty paths fail before any filesystem access."""
        no_fs_access()
        with pytest.raises(ValidationError):
            searcher.load(filepath)

    def test_missing_file(self, searcher: ConfigSearcherSync, project_dir: Path) -> None:
        with pytest.raises(FileNotFoundError):
            searcher.load(project_dir / "missing.json")

    def test_unknown_extension(
        self, searcher: ConfigSearcherSync, project_dir: Path
    ) -> None:
        config = project_dir / "config.yaml"
        config.write_text("x: 1")
        with pytest.raises(ConfigurationError, match=r"\.yaml"):
            searcher.load(config)

    def test_invalid_json_propagates(
        self, searcher: ConfigSearcherSync, project_dir: Path
    ) -> None:
        config = project_dir / "broken.json"
        config.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            searcher.load(config)

    def test_transform(self, project_dir: Path, write_json: WriteJson) -> None:
        config = write_json(project_dir / "custom.json", {"x": 1})
        searcher = ConfigSearcherSync(
            "myapp",
            stop_dir=project_dir,
            transform=lambda result: {**result.config, "source": result.filepath},
        )
        assert searcher.load(config) == {"x": 1, "source": str(config)}


class TestLoadCache:
    """Tests for load caching."""

    def test_cached_until_cleared(
        self, searcher: ConfigSearcherSync, project_dir: Path, write_json: WriteJson
    ) -> None:
        config = write_json(project_dir / "custom.json", {"x": 1})
        first = searcher.load(config)

        config.unlink()
        assert searcher.load(config) is first

        searcher.clear_load_cache()
        with pytest.raises(FileNotFoundError):
            searcher.load(config)

    def test_package_json_cached(
        self, searcher: ConfigSearcherSync, project_dir: Path, write_json: WriteJson
    ) -> None:
        manifest = write_json(project_dir / "package.json", {"myapp": {"x": 1}})
        first = searcher.load(manifest)
        manifest.unlink()
        assert searcher.load(manifest) is first

    def test_clear_caches(
        self, searcher: ConfigSearcherSync, project_dir: Path, write_json: WriteJson
    ) -> None:
        config = write_json(project_dir / ".myapprc.json", {"x": 1})
        searcher.load(config)
        searcher.search(project_dir)

        searcher.clear_search_cache()
        assert searcher._search_cache == {}
        assert len(searcher._load_cache) == 1

        searcher.search(project_dir)
        searcher.clear_caches()
        assert searcher._search_cache == {}
        assert searcher._load_cache == {}

    def test_cache_disabled(self, project_dir: Path, write_json: WriteJson) -> None:
        config = write_json(project_dir / "custom.json", {"x": 1})
        searcher = ConfigSearcherSync("myapp", stop_dir=project_dir, cache=False)
        assert searcher.load(config).config == {"x": 1}

        write_json(config, {"x": 2})
        assert searcher.load(config).config == {"x": 2}
        assert searcher.clear_caches() is None


class TestLoadAsync:
    """Tests for ConfigSearcher.load."""

    def test_loads_json(self, project_dir: Path, write_json: WriteJson) -> None:
        config = write_json(project_dir / "custom.json", {"x": 1})
        searcher = ConfigSearcher("myapp", stop_dir=project_dir)
        result = asyncio.run(searcher.load(config))
        assert result == ConfigResult(filepath=str(config), config={"x": 1})

    def test_awaitable_config(self, project_dir: Path) -> None:
        """An awaitable `config` is resolved before returning."""
        config = project_dir / "myapp.config.aio"
        config.write_text(
            "async def build():\n    return {'x': 1}\n\nconfig = build()\n"
        )
        searcher = ConfigSearcher("myapp", stop_dir=project_dir)
        assert asyncio.run(searcher.load(config)).config == {"x": 1}

    def test_empty_file(self, project_dir: Path) -> None:
        config = project_dir / "myapp.config.py"
        config.write_text("\n\n")
        searcher = ConfigSearcher("myapp", stop_dir=project_dir)
        result = asyncio.run(searcher.load(config))
        assert result == ConfigResult(filepath=str(config), config=None, is_empty=True)

    @pytest.mark.parametrize("filepath", ["", Path("")])
    def test_empty_path(self, project_dir: Path, filepath: Any) -> None:
        searcher = ConfigSearcher("myapp", stop_dir=project_dir)
        with pytest.raises(ValidationError):
            asyncio.run(searcher.load(filepath))

    def test_package_json(self, project_dir: Path, write_json: WriteJson) -> None:
        manifest = write_json(project_dir / "package.json", {"myapp": {"y": 2}, "name": "p"})
        searcher = ConfigSearcher("myapp", stop_dir=project_dir)
        result = asyncio.run(searcher.load(manifest))
        assert result == ConfigResult(filepath=str(manifest), config={"y": 2})

    def test_unknown_extension(self, project_dir: Path) -> None:
        config = project_dir / "config.yaml"
        config.write_text("a: 1\n")
        searcher = ConfigSearcher("myapp", stop_dir=project_dir)
        with pytest.raises(ConfigurationError, match=r"\.yaml"):
            asyncio.run(searcher.load(config))

    def test_cached(self, project_dir: Path, write_json: WriteJson) -> None:
        config = write_json(project_dir / "custom.json", {"x": 1})
        searcher = ConfigSearcher("myapp", stop_dir=project_dir)
        first = asyncio.run(searcher.load(config))
        config.unlink()
        assert asyncio.run(searcher.load(config)) is first
