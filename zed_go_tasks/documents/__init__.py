"""Zed entry documents: relaxed JSON decoding and atomic persistence."""

from zed_go_tasks.documents.relaxed_json import normalize, strip_comments, strip_trailing_commas
from zed_go_tasks.documents.store import (
    parse_entries,
    read_entries,
    serialize_entries,
    write_entries,
)

__all__ = [
    "normalize",
    "parse_entries",
    "read_entries",
    "serialize_entries",
    "strip_comments",
    "strip_trailing_commas",
    "write_entries",
]
