"""Combine statically found, runnable, and runtime-discovered test names."""

from __future__ import annotations

from typing import Iterable

from zed_go_tasks.discovery.selectors import selector_matches, top_level_run_pattern


def intersect_tests(file_tests: Iterable[str], listed: set[str]) -> list[str]:
    """Keep the file's tests that go also lists, in file order."""
    return [name for name in file_tests if name in listed]


def merge_unique_tests(base: Iterable[str], extra: Iterable[str]) -> list[str]:
    """Concatenate *base* and *extra*, keeping the first occurrence of each name."""
    seen: set[str] = set()
    merged: list[str] = []
    for name in [*base, *extra]:
        if name in seen:
            continue
        seen.add(name)
        merged.append(name)
    return merged


def count_unique_not_in_base(base: Iterable[str], candidates: Iterable[str]) -> int:
    """Count distinct *candidates* that are not already in *base*."""
    return len(set(candidates) - set(base))


def filter_discovered(
    discovered: Iterable[str], top_level: list[str],
) -> tuple[list[str], list[str]]:
    """Split discovered names into those under *top_level* tests and the rest.

    Discovery only runs the *top_level* tests, so anything outside them comes
    from a toolchain anomaly and is dropped.

    Returns:
        ``(kept, dropped)``, both in input order.
    """
    if not top_level:
        names = list(discovered)
        return [], names

    selector = top_level_run_pattern(top_level)
    kept: list[str] = []
    dropped: list[str] = []
    for name in discovered:
        if name and selector_matches(selector, name):
            kept.append(name)
        else:
            dropped.append(name)
    return kept, dropped


def select_tests(
    file_tests: Iterable[str],
    listed: set[str],
    discovered: Iterable[str] | None = None,
) -> list[str]:
    """Return the final sorted set of test names to generate entries for."""
    runnable = sorted(intersect_tests(file_tests, listed))
    if discovered is None:
        return runnable
    kept, _ = filter_discovered(discovered, runnable)
    return sorted(merge_unique_tests(runnable, kept))
