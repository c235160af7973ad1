"""Metadata record model, tag normalization and capability classification."""
from .classifier import CapabilityClass, capability_table, classify
from .record import MetadataPatch, MetadataRecord, coerce_rating
from .tags import dedupe, join_tags, normalize

__all__ = [
    "CapabilityClass",
    "capability_table",
    "classify",
    "MetadataPatch",
    "MetadataRecord",
    "coerce_rating",
    "dedupe",
    "join_tags",
    "normalize",
]
