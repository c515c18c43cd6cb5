"""Non-blocking byte sources a pipe device reads its commands from."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

import zmq

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 32


class TransportError(Exception):
    """Raised when a byte source fails for a reason other than "no data yet"."""


class ByteSource(ABC):
    """A stream that can be polled without blocking."""

    @abstractmethod
    def poll(self) -> bytes:
        """Return whatever bytes are available right now, possibly none."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying stream. Safe to call more than once."""

    @property
    @abstractmethod
    def closed(self) -> bool: ...

    def __enter__(self) -> ByteSource:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class FifoSource(ByteSource):
    """Reads from a named pipe (or any file) opened in non-blocking mode.

    Opening raises OSError if the path cannot be opened, so a caller never
    holds a half-constructed source.
    """

    def __init__(self, path: Path | str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._path = Path(path)
        self._chunk_size = chunk_size
        self._fd: int | None = os.open(self._path, os.O_RDONLY | os.O_NONBLOCK)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._fd is None

    def poll(self) -> bytes:
        if self._fd is None:
            raise TransportError(f"{self._path} is closed")

        data = bytearray()
        while True:
            try:
                chunk = os.read(self._fd, self._chunk_size)
            except BlockingIOError:
                break
            except OSError as e:
                raise TransportError(f"read from {self._path} failed: {e}") from e
            if not chunk:
                # EOF: no writer currently has the pipe open
                break
            data += chunk
        return bytes(data)

    def close(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None


class ZmqSource(ByteSource):
    """Receives command messages from a ZeroMQ PULL socket.

    Each poll receives at most one message. A line split across two
    messages is reassembled by the device's command buffer.
    """

    def __init__(self, port: int, host: str = "localhost") -> None:
        self._address = f"tcp://{host}:{port}"
        self._ctx = zmq.Context()
        try:
            self._sock: zmq.Socket | None = self._ctx.socket(zmq.PULL)
            self._sock.connect(self._address)
        except zmq.ZMQError:
            self._ctx.destroy(linger=0)
            raise
        logger.info("Connected pipe socket to %s", self._address)

    @property
    def address(self) -> str:
        return self._address

    @property
    def closed(self) -> bool:
        return self._sock is None

    def poll(self) -> bytes:
        if self._sock is None:
            raise TransportError(f"{self._address} is closed")
        try:
            return self._sock.recv(flags=zmq.NOBLOCK)
        except zmq.Again:
            return b""
        except zmq.ZMQError as e:
            raise TransportError(f"receive from {self._address} failed: {e}") from e

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close(linger=0)
            self._sock = None
            self._ctx.term()
