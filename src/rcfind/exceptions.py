"""Exceptions raised by rcfind."""


class RcfindError(Exception):
    """Base exception for rcfind errors."""

    pass


class ConfigurationError(RcfindError):
    """Raised when a search place or load target has no usable loader.

    For example, if `.myapprc.yaml` is listed as a search place but no
    `.yaml` loader was registered.
    """

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class ValidationError(RcfindError):
    """Raised when `load` is called without a file path."""

    def __init__(self, message: str = "load requires a non-empty file path") -> None:
        super().__init__(message)
