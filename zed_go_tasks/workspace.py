"""Workspace layout helpers: root detection and path arguments."""

from __future__ import annotations

import os
from pathlib import Path

from zed_go_tasks.errors import InputError


def validate_source_file(file_path: str | Path) -> Path:
    """Resolve *file_path* and check that it is an existing ``.go`` file.

    Raises:
        InputError: If the path is empty, missing, a directory, or not ``.go``.
    """
    if not str(file_path):
        raise InputError("missing required flag: --file")

    path = Path(file_path).expanduser().absolute()
    try:
        is_dir = path.is_dir()
        exists = path.exists()
    except OSError as e:
        raise InputError(f"cannot stat file {str(path)!r}: {e}") from e

    if not exists:
        raise InputError(f"file not found: {str(path)!r}")
    if is_dir:
        raise InputError(f"file path points to a directory: {str(path)!r}")
    if path.suffix != ".go":
        raise InputError(f"file must have .go extension: {str(path)!r}")
    return path


def detect_workspace_root(start: Path, cwd: Path | None = None) -> Path:
    """Find the nearest ancestor of *start* holding ``go.mod`` or ``.git``.

    Falls back to *cwd* (the process working directory by default) when no
    marker is found.
    """
    current = start.absolute()
    while True:
        if (current / "go.mod").is_file() or (current / ".git").exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return (cwd or Path.cwd()).absolute()


def package_arg(root: Path, package_dir: Path) -> str:
    """Return the ``go test`` package argument for *package_dir* under *root*.

    Raises:
        InputError: If the package directory lies outside the root.
    """
    rel = Path(os.path.relpath(package_dir, root)).as_posix()
    if rel == ".":
        return "."
    if rel == ".." or rel.startswith("../"):
        raise InputError(
            f"package directory {str(package_dir)!r} is outside root {str(root)!r}"
        )
    return "./" + rel


def relative_file_path(root: Path, file_path: Path) -> str:
    """Slash-separated path of *file_path* relative to *root* when possible."""
    try:
        return Path(os.path.relpath(file_path, root)).as_posix()
    except ValueError:
        # Different drives on Windows.
        return file_path.as_posix()


def resolve_path(root: Path, path: Path) -> Path:
    """Anchor a relative document path at the workspace root."""
    if path.is_absolute():
        return path
    return root / path
