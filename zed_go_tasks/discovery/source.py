"""Static discovery of test functions declared in one Go source file.

The file is parsed with the tree-sitter Go grammar. Any ERROR or MISSING node
in the tree is a syntax error. The names of top-level ``function_declaration``
nodes are collected; methods (``method_declaration``) and function literals
are ignored.

The file is never compiled or type-checked; build constraints and other
reasons a test may not be runnable are left to ``go test -list``.
"""

from __future__ import annotations

import functools
import re
from pathlib import Path
from typing import Any

from tree_sitter_language_pack import get_parser

from zed_go_tasks.errors import InputError, ParseError

# Node types allowed directly under source_file
_TOP_LEVEL_TYPES = frozenset({
    "package_clause",
    "import_declaration",
    "function_declaration",
    "method_declaration",
    "const_declaration",
    "type_declaration",
    "var_declaration",
    "comment",
})


@functools.lru_cache(maxsize=None)
def _go_parser() -> Any:
    return get_parser("go")


def _line(node: Any) -> int:
    return node.start_point[0] + 1


def _first_syntax_error(root: Any) -> Any | None:
    """Return the first ERROR or MISSING node in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


def find_tests_in_source(source: str, name_pattern: re.Pattern[str], path: str = "") -> list[str]:
    """Return top-level free function names matching *name_pattern*.

    Names keep declaration order and appear once even if declared twice.

    Raises:
        ParseError: If the source has a syntax error, lacks a package clause,
            or has a statement outside a function body.
    """
    data = source.encode("utf-8")
    tree = _go_parser().parse(data)
    root = tree.root_node

    error = _first_syntax_error(root)
    if error is not None:
        if error.is_missing:
            message = f"syntax error: missing {error.type!r}"
        else:
            snippet = data[error.start_byte:error.end_byte].decode("utf-8", errors="replace")
            message = f"syntax error near {snippet.strip()[:40]!r}"
        raise ParseError(message, path, _line(error))

    declarations = [node for node in root.named_children if node.type != "comment"]
    if not declarations or declarations[0].type != "package_clause":
        line = _line(declarations[0]) if declarations else 1
        raise ParseError("expected 'package' clause", path, line)

    names: list[str] = []
    seen: set[str] = set()
    for node in declarations:
        if node.type not in _TOP_LEVEL_TYPES:
            raise ParseError(
                "non-declaration statement outside function body", path, _line(node)
            )
        if node.type != "function_declaration":
            continue
        name_node = node.child_by_field_name("name")
        if name_node is None:
            continue
        name = data[name_node.start_byte:name_node.end_byte].decode("utf-8")
        if name in seen or not name_pattern.search(name):
            continue
        seen.add(name)
        names.append(name)

    return names


def extract_test_names(path: Path, name_pattern: re.Pattern[str]) -> list[str]:
    """Read a Go file and return its top-level test function names.

    Raises:
        InputError: If the file cannot be read.
        ParseError: If the file is not valid UTF-8 or not valid Go.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InputError(f"cannot read {path}: {e}") from e

    try:
        source = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError("source is not valid UTF-8", str(path)) from e

    return find_tests_in_source(source, name_pattern, str(path))
