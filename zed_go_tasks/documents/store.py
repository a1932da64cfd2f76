"""Read and write Zed entry documents (``tasks.json`` / ``debug.json``).

A document is a top-level JSON array of objects. Entries are kept as plain
dicts in file order; only ``label`` and the marker inside ``env`` are ever
inspected, every other field is carried through untouched.

Writes replace the whole file atomically. Concurrent invocations against the
same document are not guarded against.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from zed_go_tasks.documents import relaxed_json
from zed_go_tasks.errors import MalformedDocumentError, StorageError


def parse_entries(text: str, path: str = "") -> list[dict[str, Any]]:
    """Decode document text into a list of entry dicts.

    Empty or whitespace-only text is an empty document.

    Raises:
        MalformedDocumentError: If the text is not relaxed JSON or its top
            level is not an array of objects.
    """
    if not text.strip():
        return []

    try:
        data = relaxed_json.loads(text)
    except MalformedDocumentError as e:
        raise MalformedDocumentError(str(e), path) from e

    if not isinstance(data, list):
        raise MalformedDocumentError("expected a top-level JSON array", path)
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise MalformedDocumentError(
                f"entry {index} is not a JSON object", path
            )
    return data


def read_entries(path: Path) -> list[dict[str, Any]]:
    """Read a document from disk. A missing file is an empty document.

    Raises:
        StorageError: If the file exists but cannot be read.
        MalformedDocumentError: If the content is not a valid document.
    """
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return []
    except OSError as e:
        raise StorageError(f"cannot read {path}: {e}") from e

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedDocumentError("document is not valid UTF-8", str(path)) from e

    return parse_entries(text, str(path))


def serialize_entries(entries: list[dict[str, Any]]) -> str:
    """Render entries as indented JSON with a trailing newline."""
    return json.dumps(entries, indent=2, ensure_ascii=False) + "\n"


def write_entries(path: Path, text: str) -> None:
    """Atomically replace *path* with *text*, creating parent directories.

    A symlinked document is written through to its target.

    Raises:
        StorageError: If the directory or file cannot be written.
    """
    if path.is_symlink():
        path = path.resolve()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"cannot create directory {path.parent}: {e}") from e

    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_name = f.name
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o777)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise StorageError(f"cannot write {path}: {e}") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
