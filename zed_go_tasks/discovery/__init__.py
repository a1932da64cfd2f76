"""Test discovery: static scanning, go toolchain calls, and name selection."""

from zed_go_tasks.discovery.selection import (
    count_unique_not_in_base,
    filter_discovered,
    intersect_tests,
    merge_unique_tests,
    select_tests,
)
from zed_go_tasks.discovery.selectors import (
    quote_meta,
    run_pattern_for_test,
    selector_matches,
    top_level_run_pattern,
)
from zed_go_tasks.discovery.source import extract_test_names, find_tests_in_source
from zed_go_tasks.discovery.toolchain import (
    DiscoveryResult,
    discover_subtests,
    list_runnable_tests,
)

__all__ = [
    "DiscoveryResult",
    "count_unique_not_in_base",
    "discover_subtests",
    "extract_test_names",
    "filter_discovered",
    "find_tests_in_source",
    "intersect_tests",
    "list_runnable_tests",
    "merge_unique_tests",
    "quote_meta",
    "run_pattern_for_test",
    "select_tests",
    "selector_matches",
    "top_level_run_pattern",
]
