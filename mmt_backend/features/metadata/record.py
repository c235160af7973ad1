"""
Canonical metadata record.

`MetadataRecord` is the only shape exchanged between the resolver, the stores
and callers. Field aliases found in payloads (windowsTags, macTags, Keywords,
description, ...) are translated here, at the boundary, and nowhere else.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

from .tags import dedupe, normalize

MIN_RATING = 0
MAX_RATING = 5

_TITLE_KEYS = ("title", "Title")
_COMMENTS_KEYS = ("comments", "comment", "Comments", "Comment", "description", "Description")
_TAG_KEYS = ("tags", "Tags", "windowsTags", "tagsWin", "macTags", "tagsMac", "keywords", "Keywords")
_RATING_KEYS = ("rating", "Rating", "stars")


def coerce_rating(value: Any) -> int:
    """
    Coerce arbitrary input into a 0..5 star rating.

    Integers clamp, floats and numeric strings truncate then clamp, booleans and
    anything unparsable become 0.
    """
    if value is None or isinstance(value, bool):
        return MIN_RATING
    number: Optional[int] = None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if math.isfinite(value):
            number = int(value)
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            try:
                parsed = float(text)
            except ValueError:
                parsed = math.nan
            if math.isfinite(parsed):
                number = int(parsed)
    if number is None:
        return MIN_RATING
    return max(MIN_RATING, min(MAX_RATING, number))


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = next((v for v in value if v not in (None, "")), "")
    try:
        return str(value).strip()
    except Exception:
        return ""


def _first_present(payload: Mapping[str, Any], keys: tuple[str, ...]) -> tuple[bool, Any]:
    for key in keys:
        if key in payload:
            return True, payload[key]
    return False, None


@dataclass
class MetadataRecord:
    """Title, comments, tags and a 0..5 rating; always fully populated."""

    title: str = ""
    comments: str = ""
    tags: list[str] = field(default_factory=list)
    rating: int = 0

    def __post_init__(self) -> None:
        self.title = _as_text(self.title)
        self.comments = _as_text(self.comments)
        self.tags = normalize(self.tags)
        self.rating = coerce_rating(self.rating)

    def is_empty(self) -> bool:
        """No meaningful metadata: empty strings, no tags, rating 0."""
        return not self.title and not self.comments and not self.tags and self.rating == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "comments": self.comments,
            "tags": list(self.tags),
            "rating": self.rating,
        }

    @classmethod
    def empty(cls) -> "MetadataRecord":
        return cls()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "MetadataRecord":
        return MetadataPatch.from_payload(payload).to_record()


@dataclass
class MetadataPatch:
    """
    Partial record: `None` means "not supplied by the caller".

    Used for sidecar patch writes and for write requests where omitted fields
    must not overwrite stored values.
    """

    title: Optional[str] = None
    comments: Optional[str] = None
    tags: Optional[list[str]] = None
    rating: Optional[int] = None

    def __post_init__(self) -> None:
        if self.title is not None:
            self.title = _as_text(self.title)
        if self.comments is not None:
            self.comments = _as_text(self.comments)
        if self.tags is not None:
            self.tags = normalize(self.tags)
        if self.rating is not None:
            self.rating = coerce_rating(self.rating)

    def supplied(self) -> set[str]:
        return {f.name for f in fields(self) if getattr(self, f.name) is not None}

    def only(self, names: set[str] | frozenset[str]) -> "MetadataPatch":
        """Copy keeping just the named fields (others become unsupplied)."""
        return MetadataPatch(**{f.name: (getattr(self, f.name) if f.name in names else None) for f in fields(self)})

    def to_record(self) -> MetadataRecord:
        return MetadataRecord(
            title=self.title or "",
            comments=self.comments or "",
            tags=list(self.tags or []),
            rating=self.rating or 0,
        )

    def apply_to(self, base: MetadataRecord | None) -> MetadataRecord:
        """Supplied fields replace `base` values; the rest are kept (tags replace wholesale)."""
        base = base or MetadataRecord()
        return MetadataRecord(
            title=self.title if self.title is not None else base.title,
            comments=self.comments if self.comments is not None else base.comments,
            tags=list(self.tags) if self.tags is not None else list(base.tags),
            rating=self.rating if self.rating is not None else base.rating,
        )

    @classmethod
    def from_record(cls, record: MetadataRecord) -> "MetadataPatch":
        return cls(title=record.title, comments=record.comments, tags=list(record.tags), rating=record.rating)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "MetadataPatch":
        """
        Translate a loosely-shaped payload into a patch.

        Every tag alias present is unioned (first alias first), so a payload with
        both `windowsTags` and `macTags` keeps both lists.
        """
        payload = payload or {}
        has_title, title = _first_present(payload, _TITLE_KEYS)
        has_comments, comments = _first_present(payload, _COMMENTS_KEYS)
        has_rating, rating = _first_present(payload, _RATING_KEYS)
        tag_sources = [payload[key] for key in _TAG_KEYS if key in payload]
        return cls(
            title=title if has_title and title is not None else ("" if has_title else None),
            comments=comments if has_comments and comments is not None else ("" if has_comments else None),
            tags=dedupe(*tag_sources) if tag_sources else None,
            rating=coerce_rating(rating) if has_rating else None,
        )
