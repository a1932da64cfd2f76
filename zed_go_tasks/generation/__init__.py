"""Entry generation: building tagged task/debug entries and merging them."""

from zed_go_tasks.generation.entries import (
    EntryContext,
    Marker,
    make_debug_entries,
    make_task_entries,
    normalize_args_for_delve,
)
from zed_go_tasks.generation.reconcile import MergeStats, clear_generated, merge_entries

__all__ = [
    "EntryContext",
    "Marker",
    "MergeStats",
    "clear_generated",
    "make_debug_entries",
    "make_task_entries",
    "merge_entries",
    "normalize_args_for_delve",
]
