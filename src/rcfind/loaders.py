"""Default loaders for configuration files.

A loader is a callable taking ``(filepath, content)`` and returning the
parsed configuration. Loaders used by the async searcher may also return an
awaitable.
"""

import ast
import importlib.util
import inspect
import itertools
import json
import logging
import sys
import tomllib
import types
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from importlib.machinery import ModuleSpec, SourceFileLoader
from typing import Any

from rcfind.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Loader = Callable[[str, str], Any]
MismatchPredicate = Callable[[BaseException], bool]

# Module attribute holding the exported configuration
CONFIG_ATTRIBUTE = "config"

_module_ids = itertools.count()


def json_loader(filepath: str, content: str) -> Any:
    """Parse JSON content."""
    return json.loads(content)


def toml_loader(filepath: str, content: str) -> dict[str, Any]:
    """Parse TOML content."""
    return tomllib.loads(content)


class ConfigFileLoader(SourceFileLoader):
    """Source loader for config modules with any file suffix.

    Bytecode is never read from or written to `__pycache__`, so loading a
    config file leaves its directory untouched.
    """

    def get_code(self, fullname: str) -> types.CodeType:
        path = self.get_filename(fullname)
        return compile(self.get_data(path), path, "exec", dont_inherit=True)


def _module_spec(filepath: str) -> ModuleSpec:
    # Unique name so two config files never share a sys.modules entry
    module_name = f"_rcfind_config_{next(_module_ids)}"
    spec = importlib.util.spec_from_file_location(
        module_name, filepath, loader=ConfigFileLoader(module_name, filepath)
    )
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load config module from {filepath}")
    return spec


@contextmanager
def _registered(module: types.ModuleType) -> Iterator[None]:
    """Expose the module in sys.modules while its body runs."""
    sys.modules[module.__name__] = module
    try:
        yield
    finally:
        sys.modules.pop(module.__name__, None)


def module_config(module: types.ModuleType) -> Any:
    """Get the configuration exported by an executed module.

    Args:
        module: An executed config module.

    Returns:
        The module's `config` attribute if it defines one, otherwise a dict
        of its public names (imported modules, functions and classes are
        left out).
    """
    namespace = vars(module)
    if CONFIG_ATTRIBUTE in namespace:
        return namespace[CONFIG_ATTRIBUTE]
    return {
        key: value
        for key, value in namespace.items()
        if not key.startswith("_")
        and not inspect.ismodule(value)
        and not inspect.isfunction(value)
        and not inspect.isclass(value)
    }


def require(filepath: str, content: str) -> Any:
    """Import a Python config file synchronously.

    The module is imported from disk with `ConfigFileLoader`, so the file
    suffix does not matter and `content` is not used.

    Args:
        filepath: Path of the config file.
        content: Source already read by the searcher.

    Returns:
        The exported configuration (see `module_config`).

    Raises:
        SyntaxError: If the source is invalid, including top-level `await`.
        ConfigurationError: If the exported config is awaitable.
    """
    spec = _module_spec(filepath)
    module = importlib.util.module_from_spec(spec)
    with _registered(module):
        spec.loader.exec_module(module)

    config = module_config(module)
    if inspect.isawaitable(config):
        if inspect.iscoroutine(config):
            config.close()
        raise ConfigurationError(
            f"{filepath} exports an awaitable config; load it with ConfigSearcher"
        )
    return config


def compile_async(filepath: str, content: str) -> types.CodeType:
    """Compile config source, allowing top-level `await`."""
    return compile(
        content,
        filepath,
        "exec",
        flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
        dont_inherit=True,
    )


async def run_async(filepath: str, code: types.CodeType) -> Any:
    """Run compiled config code in a fresh module.

    An awaitable `config` value is awaited before being returned.
    """
    module = importlib.util.module_from_spec(_module_spec(filepath))
    with _registered(module):
        body = eval(code, module.__dict__)
        if code.co_flags & inspect.CO_COROUTINE:
            await body

    config = module_config(module)
    if inspect.isawaitable(config):
        config = await config
    return config


async def import_async(filepath: str, content: str) -> Any:
    """Execute a Python config file that may use top-level `await`."""
    return await run_async(filepath, compile_async(filepath, content))


def is_module_mismatch(error: BaseException) -> bool:
    """Check whether a synchronous load failed because the module is async-only.

    Args:
        error: Exception raised by `require`.

    Returns:
        True for syntax errors about `await`/`async` used outside an async
        function; False for every other error, including genuine syntax errors.
    """
    if not isinstance(error, SyntaxError):
        return False
    message = error.msg or ""
    return "outside" in message and ("await" in message or "async" in message)


def make_dynamic_import(
    is_mismatch: MismatchPredicate = is_module_mismatch,
) -> Callable[[str, str], Awaitable[Any]]:
    """Build the async module loader.

    The loader compiles the module for async execution first. Only when
    that compilation fails does it fall back to `require`; once the module
    body has started running, its errors (and errors from an awaited
    `config`) are raised as is, so the body never runs twice.

    When the fallback fails too, `is_mismatch` decides which error the
    caller sees: a mismatch means the module can only run asynchronously,
    so the original compile error is the meaningful one; anything else is
    raised as is.

    Args:
        is_mismatch: Predicate applied to the fallback's exception.

    Returns:
        An async loader suitable for `.py` and `.aio` search places.
    """

    async def dynamic_import(filepath: str, content: str) -> Any:
        try:
            code = compile_async(filepath, content)
        except Exception as compile_error:
            logger.debug(
                "Async compile of %s failed (%s), retrying synchronously",
                filepath,
                compile_error,
            )
            try:
                return require(filepath, content)
            except Exception as require_error:
                if is_mismatch(require_error):
                    raise compile_error from require_error
                raise
        return await run_async(filepath, code)

    return dynamic_import


dynamic_import = make_dynamic_import()
