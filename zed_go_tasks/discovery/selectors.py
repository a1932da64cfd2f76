"""Build ``go test -run`` selectors for exact test and subtest names.

``go test`` splits a ``-run`` pattern on unbracketed slashes and matches each
element against the corresponding level of the test name. Anchoring every
element (``^Parent$/^child$``) therefore selects exactly one path instead of
every test whose name merely contains the pattern.
"""

from __future__ import annotations

import re
from typing import Iterable

# Characters escaped by Go's regexp.QuoteMeta
_GO_REGEX_META = frozenset("\\.+*?()|[]{}^$")


def quote_meta(text: str) -> str:
    """Escape *text* for literal use inside a Go regular expression."""
    return "".join("\\" + ch if ch in _GO_REGEX_META else ch for ch in text)


def run_pattern_for_test(test_name: str) -> str:
    """Return the ``-run`` selector matching exactly *test_name*.

    Each ``/``-separated segment is escaped and anchored on its own:
    ``Outer/inner case`` becomes ``^Outer$/^inner case$``.
    """
    if not test_name:
        return "^$"
    return "/".join(f"^{quote_meta(segment)}$" for segment in test_name.split("/"))


def top_level_run_pattern(test_names: Iterable[str]) -> str:
    """Return one selector matching exactly the given top-level tests."""
    quoted = sorted(quote_meta(name) for name in test_names)
    if not quoted:
        return "^$"
    if len(quoted) == 1:
        return f"^{quoted[0]}$"
    return "^(" + "|".join(quoted) + ")$"


def split_selector(selector: str) -> list[str]:
    """Split a ``-run`` selector into per-level elements like ``go test`` does.

    Slashes inside ``(...)`` or ``[...]`` and escaped characters do not split.
    """
    elements: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(selector):
        ch = selector[i]
        if ch == "\\":
            i += 2
            continue
        if ch in "([":
            depth += 1
        elif ch in ")]":
            if depth > 0:
                depth -= 1
        elif ch == "/" and depth == 0:
            elements.append(selector[start:i])
            start = i + 1
        i += 1
    elements.append(selector[start:])
    return elements


def selector_matches(selector: str, test_name: str) -> bool:
    """Report whether ``go test -run selector`` would run *test_name*.

    Levels of *test_name* deeper than the selector are run as part of their
    matched parent, so they count as matches.
    """
    elements = split_selector(selector)
    for level, segment in enumerate(test_name.split("/")):
        if level >= len(elements):
            break
        if re.search(elements[level], segment) is None:
            return False
    return True
