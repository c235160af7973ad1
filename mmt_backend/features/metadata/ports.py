"""
Store ports used by the resolver.

The shell and embedded stores are external executables today; anything with
this shape (an in-process implementation, a test fake) can replace them.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from mmt_shared import Result

from .record import MetadataPatch, MetadataRecord

STORE_SHELL = "shell"
STORE_EMBEDDED = "embedded"
STORE_SIDECAR = "sidecar"


@runtime_checkable
class MetadataPort(Protocol):
    """Best-effort metadata store backed by an external tool."""

    store_name: str

    def is_available(self) -> bool: ...

    def get(self, path: str) -> Result[MetadataRecord]: ...

    def set(self, path: str, record: MetadataRecord) -> Result[bool]: ...

    def clear(self, path: str) -> Result[bool]: ...


class SidecarPort(Protocol):
    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> Result[Optional[MetadataRecord]]: ...

    def write(
        self,
        path: str,
        fields: MetadataPatch | MetadataRecord,
        mode=...,
        *,
        force: bool = False,
    ) -> Result[Optional[MetadataRecord]]: ...
