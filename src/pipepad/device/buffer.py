"""Newline-delimited command buffer."""

from __future__ import annotations

from collections.abc import Iterator


class CommandBuffer:
    """Accumulates raw stream bytes and yields complete lines.

    Holds exactly the bytes that have not yet been resolved into a
    newline-terminated line. A partial line stays buffered until its
    newline arrives.

    There is no upper bound on the buffered size: a producer that never
    sends a newline grows the buffer for as long as the device lives.
    """

    def __init__(self) -> None:
        self._buf = bytearray()

    def feed(self, data: bytes) -> None:
        """Append newly read bytes."""
        self._buf += data

    def drain_lines(self) -> Iterator[str]:
        """Yield every complete line, consuming it and its newline."""
        newline = self._buf.find(b"\n")
        while newline != -1:
            line = bytes(self._buf[:newline])
            del self._buf[: newline + 1]
            yield line.decode("utf-8", errors="replace")
            newline = self._buf.find(b"\n")

    def clear(self) -> None:
        """Discard any buffered partial line."""
        self._buf.clear()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete line."""
        return len(self._buf)

    def __len__(self) -> int:
        return len(self._buf)
