"""Merge generated entries into an existing document.

Entries are matched by ``label``. Only entries that carry the generation
marker are ever replaced or removed; user-authored entries keep their content
and relative order, and new entries are appended at the end. Running the same
merge twice gives no additions and no removals the second time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from zed_go_tasks.generation.entries import Marker


@dataclass
class MergeStats:
    """Counts reported after a merge.

    ``skipped`` lists labels that were not written because a user-authored
    entry already uses them.
    """

    added: int = 0
    updated: int = 0
    removed: int = 0
    skipped: list[str] = field(default_factory=list)


def merge_entries(
    existing: list[dict[str, Any]],
    generated: list[dict[str, Any]],
    marker: Marker,
    prune: bool = True,
) -> tuple[list[dict[str, Any]], MergeStats]:
    """Upsert *generated* into *existing* by label.

    Args:
        existing: Entries read from the document, in file order.
        generated: Freshly built entries, each carrying *marker*.
        marker: Marker identifying generated entries.
        prune: Remove generated entries whose label is not regenerated.
            Duplicate generated labels are collapsed either way.

    Returns:
        The merged entry list and the merge counts.
    """
    stats = MergeStats()
    new_labels = {
        entry.get("label") for entry in generated if isinstance(entry.get("label"), str)
    }

    merged: list[dict[str, Any]] = []
    kept_generated: set[str] = set()
    for entry in existing:
        if marker.matches(entry):
            label = entry.get("label")
            if isinstance(label, str) and label in kept_generated:
                # Only the first generated entry per label is kept.
                stats.removed += 1
                continue
            if prune and label not in new_labels:
                stats.removed += 1
                continue
            if isinstance(label, str):
                kept_generated.add(label)
        merged.append(entry)

    label_index: dict[str, int] = {}
    for index, entry in enumerate(merged):
        label = entry.get("label")
        if isinstance(label, str):
            label_index[label] = index

    for entry in generated:
        label = entry.get("label")
        index = label_index.get(label) if isinstance(label, str) else None
        if index is None:
            merged.append(entry)
            if isinstance(label, str):
                label_index[label] = len(merged) - 1
            stats.added += 1
        elif marker.matches(merged[index]):
            merged[index] = entry
            stats.updated += 1
        else:
            stats.skipped.append(label)

    return merged, stats


def clear_generated(
    existing: list[dict[str, Any]], marker: Marker,
) -> tuple[list[dict[str, Any]], int]:
    """Drop every generated entry.

    Returns:
        The remaining entries and the number removed.
    """
    kept = [entry for entry in existing if not marker.matches(entry)]
    return kept, len(existing) - len(kept)
