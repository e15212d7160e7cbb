"""
Ports — Protocol-based interfaces for infrastructure adapters.

These define WHAT the export pipeline needs without specifying HOW:

  Domain ← Ports (protocols) ← Adapters (implementations)

  TslLoader      → obtain a parsed trusted-list document (file or HTTP)
  ServiceWalker  → turn the document into ResolvedService records
  BundleSink     → append PEM blocks to the output stream

Each port is a Protocol (structural typing) so adapters satisfy
the contract simply by implementing the methods — no inheritance.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from lxml import etree
from railway.result import Result

from ca_bundle_extractor.domain.models import ResolvedService


@runtime_checkable
class TslLoader(Protocol):
    """
    Port: load and parse a trusted-list XML document.

    `location` is a local path or a URL, depending on the adapter.
    Returns Result.failure(DOCUMENT_UNAVAILABLE, ...) when the document
    cannot be read or is not well-formed XML.
    """

    def load(self, location: str) -> Result[etree._Element]: ...


@runtime_checkable
class ServiceWalker(Protocol):
    """
    Port: traverse provider → service structure in document order.

    Must be lazy and tolerant: a service missing expected elements is
    yielded with UNKNOWN/empty defaults rather than aborting the walk.
    """

    def walk(self, root: etree._Element) -> Iterator[ResolvedService]: ...


@runtime_checkable
class BundleSink(Protocol):
    """
    Port: append-only output for PEM blocks.

    write() returns Result[int] with the number of bytes written, or
    Result.failure(OUTPUT_WRITE_FAILURE, ...). Nothing already written is
    rolled back on a later failure.
    """

    def write(self, block: str) -> Result[int]: ...

    def flush(self) -> Result[int]: ...
