"""
Bundle sink adapter — append PEM blocks to a binary stream.

Adapter layer — implements the BundleSink port over any writable binary
stream (a file opened by open_bundle_sink(), or standard output).

Writes are not transactional: when a write fails, blocks already written
stay in the stream. Every OSError is captured into
Result.failure(OUTPUT_WRITE_FAILURE, ...).
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

import structlog
from railway import ErrorCode
from railway.result import Result

log = structlog.get_logger()

STDOUT_MARKER = "-"


class StreamBundleSink:
    """
    Write PEM blocks to an already-open binary stream.

    Implements the BundleSink port. The sink never closes the stream;
    its owner does.
    """

    def __init__(self, stream: BinaryIO, name: str = "<stream>") -> None:
        self._stream = stream
        self._name = name
        self._bytes_written = 0

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def write(self, block: str) -> Result[int]:
        """
        Append one PEM block (ASCII) to the stream.

        Returns Result[int] with the number of bytes written,
        or Result.failure(OUTPUT_WRITE_FAILURE, ...) on I/O error.
        """
        return Result.from_computation(
            lambda: self._do_write(block.encode("ascii")),
            ErrorCode.OUTPUT_WRITE_FAILURE,
            f"Failed to write to {self._name}",
        )

    def flush(self) -> Result[int]:
        """Flush the stream; returns the total bytes written so far."""
        return Result.from_computation(
            self._do_flush,
            ErrorCode.OUTPUT_WRITE_FAILURE,
            f"Failed to flush {self._name}",
        )

    def _do_write(self, data: bytes) -> int:
        self._stream.write(data)
        self._bytes_written += len(data)
        return len(data)

    def _do_flush(self) -> int:
        self._stream.flush()
        log.debug("sink.flushed", output=self._name, bytes_written=self._bytes_written)
        return self._bytes_written


@contextmanager
def open_bundle_sink(output: str | None) -> Iterator[StreamBundleSink]:
    """
    Open the output destination for writing and yield a sink over it.

    None or "-" means standard output (left open on exit). Any other value
    is a file path, truncated on open and closed on exit. Opening errors
    propagate as OSError to the caller.
    """
    if output is None or output == STDOUT_MARKER:
        yield StreamBundleSink(sys.stdout.buffer, name="<stdout>")
        return

    with open(output, "wb") as stream:
        log.debug("sink.opened", output=output)
        yield StreamBundleSink(stream, name=output)
