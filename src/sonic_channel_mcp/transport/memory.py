"""In-memory duplex transport for tests and offline use."""

from __future__ import annotations


class MemoryTransport:
    """Serves scripted inbound bytes and records flushed outbound bytes.

    Args:
        inbound: Bytes the "server" will send.
        chunk_size: Maximum bytes returned per ``read()``, to simulate a
            stream that delivers lines split across several packets.
    """

    def __init__(self, inbound: bytes = b"", chunk_size: int | None = None) -> None:
        if chunk_size is not None and chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._inbound = bytearray(inbound)
        self._chunk_size = chunk_size
        self._pending = bytearray()
        self.written = bytearray()
        self.reads = 0
        self.closed = False

    def feed(self, data: bytes) -> None:
        """Queue more inbound bytes."""
        self._inbound += data

    def read(self, max_bytes: int) -> bytes:
        if self.closed:
            raise ConnectionError("transport is closed")
        self.reads += 1
        n = max_bytes if self._chunk_size is None else min(max_bytes, self._chunk_size)
        data = bytes(self._inbound[:n])
        del self._inbound[:n]
        return data

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionError("transport is closed")
        self._pending += data

    def flush(self) -> None:
        if self.closed:
            raise ConnectionError("transport is closed")
        self.written += self._pending
        self._pending.clear()

    def close(self) -> None:
        self.closed = True
