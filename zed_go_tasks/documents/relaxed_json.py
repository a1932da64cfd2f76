"""Tolerant reader for hand-edited JSON.

Zed's ``tasks.json`` and ``debug.json`` are usually edited by hand and may
contain ``//`` and ``/* */`` comments and trailing commas. These are removed
outside of string literals so the text can be handed to ``json.loads``.
String contents, including escaped quotes, are copied through untouched.
"""

from __future__ import annotations

import json
from typing import Any

from zed_go_tasks.errors import MalformedDocumentError

_JSON_WHITESPACE = " \t\n\r"


def strip_comments(text: str) -> str:
    """Remove ``//`` line comments and ``/* */`` block comments.

    The newline ending a line comment is kept so line numbers in later
    decoding errors stay meaningful.

    Raises:
        MalformedDocumentError: If a block comment or string is unterminated.
    """
    out: list[str] = []
    in_string = False
    in_line_comment = False
    in_block_comment = False
    escape = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if in_line_comment:
            if ch == "\n":
                in_line_comment = False
                out.append(ch)
            i += 1
            continue

        if in_block_comment:
            if ch == "*" and i + 1 < n and text[i + 1] == "/":
                in_block_comment = False
                i += 2
                continue
            i += 1
            continue

        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
            continue

        if ch == "/" and i + 1 < n:
            following = text[i + 1]
            if following == "/":
                in_line_comment = True
                i += 2
                continue
            if following == "*":
                in_block_comment = True
                i += 2
                continue

        out.append(ch)
        i += 1

    if in_block_comment:
        raise MalformedDocumentError("unterminated block comment")
    if in_string:
        raise MalformedDocumentError("unterminated string")
    return "".join(out)


def strip_trailing_commas(text: str) -> str:
    """Remove commas that are followed only by whitespace and ``}`` or ``]``."""
    out: list[str] = []
    in_string = False
    escape = False
    n = len(text)

    for i, ch in enumerate(text):
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            continue

        if ch == ",":
            j = i + 1
            while j < n and text[j] in _JSON_WHITESPACE:
                j += 1
            if j < n and text[j] in "}]":
                continue

        out.append(ch)

    return "".join(out)


def normalize(text: str) -> str:
    """Turn relaxed JSON into strict JSON text."""
    return strip_trailing_commas(strip_comments(text))


def loads(text: str) -> Any:
    """Decode relaxed JSON.

    Raises:
        MalformedDocumentError: If the text is not valid even after
            comments and trailing commas are removed.
    """
    normalized = normalize(text)
    try:
        return json.loads(normalized)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(
            f"invalid JSON at line {e.lineno} column {e.colno}: {e.msg}"
        ) from e
