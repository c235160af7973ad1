"""
Tag normalization.

Tags arrive as delimited strings ("a; b, c") or sequences. Every store's tags
go through `normalize` and cross-store merges go through `dedupe`, so the
canonical list is trimmed, non-empty, and unique by case-insensitive key with
the first-seen casing and order kept.
"""
from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

_SPLIT_RE = re.compile(r"[;,]")

DEFAULT_JOINER = "; "


def _split(value: str) -> list[str]:
    return [piece.strip() for piece in _SPLIT_RE.split(value)]


def _tag_key(tag: str) -> str:
    return tag.casefold()


def _unique(tags: Iterable[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        key = _tag_key(tag)
        if key in seen:
            continue
        seen.add(key)
        out.append(tag)
    return out


def normalize(value: Any) -> list[str]:
    """
    Convert tag input into an ordered, deduplicated list of trimmed strings.

    Strings are split on `;` or `,`. Sequence items are coerced to str and
    trimmed (they are not split further). Anything else yields [].
    """
    if value is None:
        return []
    if isinstance(value, str):
        pieces = _split(value)
    elif isinstance(value, (bytes, bytearray)):
        pieces = _split(bytes(value).decode("utf-8", errors="replace"))
    elif isinstance(value, Iterable) and not isinstance(value, dict):
        pieces = []
        for item in value:
            if item is None:
                continue
            try:
                pieces.append(str(item).strip())
            except Exception:
                continue
    else:
        return []
    return _unique(p for p in pieces if p)


def dedupe(*sequences: Any) -> list[str]:
    """
    Concatenate tag sequences in argument order and drop later duplicates.

    Comparison is case-insensitive; the first occurrence keeps its casing and
    position. Each argument may be anything `normalize` accepts.
    """
    combined: list[str] = []
    for seq in sequences:
        combined.extend(normalize(seq))
    return _unique(combined)


def join_tags(tags: Iterable[str], sep: str = DEFAULT_JOINER) -> str:
    """Render tags as one delimited string (shell property surface)."""
    return sep.join(normalize(list(tags or [])))
