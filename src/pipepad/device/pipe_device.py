"""Virtual controller driven by text commands read from a byte source."""

from __future__ import annotations

import logging
import threading

from pipepad.device.buffer import CommandBuffer
from pipepad.device.commands import (
    AxisCommand,
    ButtonCommand,
    ButtonName,
    axis_catalog,
    parse_command,
)
from pipepad.device.source import ByteSource, TransportError

logger = logging.getLogger(__name__)


class PipeDevice:
    """A virtual game controller whose state is set over a stream.

    Every poll reads the pending bytes of the source, splits them into
    newline-terminated lines and applies each line as a command::

        PRESS <button>
        RELEASE <button>
        SET <L|R> <value>        value in [-1, 1]
        SET <MAIN|C> <x> <y>     x, y in [0, 1]

    Each analog axis is stored as two non-negative components, ``"<axis> +"``
    and ``"<axis> -"``, because consumers read every analog input as a
    unidirectional magnitude.

    Usage::

        with PipeDevice("pad0", FifoSource(path)) as device:
            device.update()
            device.state("Button A")
    """

    def __init__(self, name: str, source: ByteSource) -> None:
        self._name = name
        self._source = source
        self._buffer = CommandBuffer()
        self._lock = threading.Lock()
        self._buttons: dict[str, float] = {str(button): 0.0 for button in ButtonName}
        self._axes: dict[str, float] = {}
        for axis, default in axis_catalog():
            # Both halves start at the raw default, not its split encoding.
            self._axes[f"{axis} -"] = default
            self._axes[f"{axis} +"] = default

    @property
    def name(self) -> str:
        return self._name

    @property
    def source(self) -> ByteSource:
        return self._source

    @property
    def closed(self) -> bool:
        return self._source.closed

    # --- Polling ---

    def update(self) -> int:
        """Poll the source once and apply every complete line.

        Returns the number of lines processed. Transport errors are logged
        and leave the device state untouched.
        """
        try:
            data = self._source.poll()
        except TransportError as e:
            logger.warning("%s: %s", self._name, e)
            data = b""

        with self._lock:
            if data:
                self._buffer.feed(data)
            count = 0
            for line in self._buffer.drain_lines():
                self._apply(line)
                count += 1
        return count

    def apply(self, line: str) -> None:
        """Interpret one command line. Malformed lines are ignored."""
        with self._lock:
            self._apply(line)

    def set_axis(self, name: str, value: float) -> None:
        """Set the axis-pair ``name`` from a logical value in [0, 1]."""
        with self._lock:
            self._set_axis(name, value)

    def _apply(self, line: str) -> None:
        commands = parse_command(line)
        if not commands:
            logger.debug("%s: ignored %r", self._name, line)
            return
        for command in commands:
            if isinstance(command, ButtonCommand):
                if command.button in self._buttons:
                    self._buttons[command.button] = command.value
            elif isinstance(command, AxisCommand):
                self._set_axis(command.axis, command.value)

    def _set_axis(self, name: str, value: float) -> None:
        value = min(max(value, 0.0), 1.0)
        hi = max(0.0, value - 0.5) * 2.0
        lo = (0.5 - min(0.5, value)) * 2.0
        # Either half may be missing for names outside the catalog.
        if f"{name} +" in self._axes:
            self._axes[f"{name} +"] = hi
        if f"{name} -" in self._axes:
            self._axes[f"{name} -"] = lo

    # --- Reading ---

    def button(self, name: str) -> float:
        """Return a button state. Raises KeyError for unknown buttons."""
        return self._buttons[name]

    def axis(self, key: str) -> float:
        """Return one axis component, e.g. ``axis("MAIN X +")``."""
        return self._axes[key]

    def inputs(self) -> dict[str, float]:
        """Snapshot of every input, keyed by its identifier, in stable order."""
        with self._lock:
            snapshot = {f"Button {name}": value for name, value in self._buttons.items()}
            snapshot.update({f"Axis {key}": value for key, value in self._axes.items()})
        return snapshot

    def state(self, identifier: str) -> float:
        """Return the value of one input identifier, e.g. ``"Axis C Y -"``."""
        kind, _, key = identifier.partition(" ")
        if kind == "Button":
            return self._buttons[key]
        if kind == "Axis":
            return self._axes[key]
        raise KeyError(identifier)

    # --- Lifecycle ---

    def close(self) -> None:
        """Release the source. Buffered partial input is discarded."""
        if self._source.closed:
            return
        with self._lock:
            self._buffer.clear()
            self._source.close()
        logger.info("Closed pipe device %s", self._name)

    def __enter__(self) -> PipeDevice:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PipeDevice(name={self._name!r}, source={type(self._source).__name__})"
