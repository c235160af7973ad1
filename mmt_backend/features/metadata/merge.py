"""
Per-class merge of the records read back from each store.

Scalars (title, comments, rating) take the first non-empty value in the
class's precedence order. Tags are never first-wins: they are the
case-insensitive union of every store, in the class's tag order.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .classifier import CapabilityClass
from .ports import STORE_EMBEDDED, STORE_SHELL, STORE_SIDECAR
from .record import MetadataRecord, coerce_rating
from .tags import dedupe


@dataclass(frozen=True)
class MergePolicy:
    scalar_order: tuple[str, ...]
    tag_order: tuple[str, ...]


MERGE_POLICIES: dict[CapabilityClass, MergePolicy] = {
    CapabilityClass.SIDECAR_ONLY: MergePolicy(
        scalar_order=(STORE_SIDECAR, STORE_SHELL),
        tag_order=(STORE_SIDECAR, STORE_SHELL),
    ),
    CapabilityClass.EMBED_REQUIRED: MergePolicy(
        scalar_order=(STORE_EMBEDDED, STORE_SIDECAR, STORE_SHELL),
        tag_order=(STORE_EMBEDDED, STORE_SIDECAR, STORE_SHELL),
    ),
    CapabilityClass.TAGS_SIDECAR_ONLY: MergePolicy(
        scalar_order=(STORE_SHELL, STORE_SIDECAR),
        tag_order=(STORE_SIDECAR, STORE_SHELL),
    ),
    CapabilityClass.SHELL_PRIMARY: MergePolicy(
        scalar_order=(STORE_SHELL, STORE_SIDECAR, STORE_EMBEDDED),
        tag_order=(STORE_SHELL, STORE_SIDECAR, STORE_EMBEDDED),
    ),
}


def merge_records(
    capability: CapabilityClass,
    sources: Mapping[str, Optional[MetadataRecord]],
) -> MetadataRecord:
    """Merge store records (missing stores map to None) into one full record."""
    policy = MERGE_POLICIES[capability]
    ordered = [sources.get(name) for name in policy.scalar_order]
    present = [rec for rec in ordered if rec is not None]

    title = next((rec.title for rec in present if rec.title), "")
    comments = next((rec.comments for rec in present if rec.comments), "")
    rating = next((rec.rating for rec in present if rec.rating), 0)
    tags = dedupe(*[(sources.get(name) or MetadataRecord()).tags for name in policy.tag_order])

    return MetadataRecord(title=title, comments=comments, tags=tags, rating=coerce_rating(rating))
