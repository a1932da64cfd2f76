"""Error types raised by zed-go-tasks.

Every failure that should end an invocation derives from ``GoTasksError``.
Core modules raise these; only ``zed_go_tasks.main`` catches them, prints a
single ``Error:`` line to stderr and exits with status 1.
"""

from __future__ import annotations


class GoTasksError(Exception):
    """Base class for all fatal zed-go-tasks errors."""


class InputError(GoTasksError):
    """The source file path is missing, not a file, or not a ``.go`` file."""


class ParseError(GoTasksError):
    """The Go source file is not syntactically valid."""

    def __init__(self, message: str, path: str = "", line: int | None = None) -> None:
        location = path
        if path and line is not None:
            location = f"{path}:{line}"
        super().__init__(f"{location}: {message}" if location else message)
        self.path = path
        self.line = line


class ToolchainError(GoTasksError):
    """Listing tests with the go toolchain failed."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class DiscoveryError(GoTasksError):
    """Running tests for subtest discovery failed and discovered nothing."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class DiscoveryTimeoutError(GoTasksError, TimeoutError):
    """Subtest discovery exceeded its timeout before reporting any test."""

    def __init__(
        self,
        message: str,
        output: str = "",
        discovered: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.output = output
        self.discovered = list(discovered or [])


class MalformedDocumentError(GoTasksError):
    """A tasks/debug document is not valid (relaxed) JSON or not an entry list."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class ConfigError(GoTasksError):
    """Configuration from the environment or a config file is invalid."""


class StorageError(GoTasksError):
    """Reading, writing, or creating directories on disk failed."""
