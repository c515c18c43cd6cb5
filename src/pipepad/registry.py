"""DeviceRegistry - owns every discovered pipe device."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path

import zmq

from pipepad.config import PipesConfig
from pipepad.device.pipe_device import PipeDevice
from pipepad.device.source import FifoSource, ZmqSource
from pipepad.paths import pipes_dir

logger = logging.getLogger(__name__)

# Leading integer of a zmq endpoint file; anything after it is ignored.
_PORT_RE = re.compile(r"\s*([+-]?\d+)")


class DeviceRegistry:
    """Maps device name -> PipeDevice. Closing the registry closes every device."""

    def __init__(self) -> None:
        self._devices: dict[str, PipeDevice] = {}

    def add(self, device: PipeDevice) -> None:
        """Register a device, replacing (and closing) one with the same name."""
        previous = self._devices.pop(device.name, None)
        if previous is not None and previous is not device:
            previous.close()
        self._devices[device.name] = device
        logger.info("Added pipe device: %s", device.name)

    def remove(self, name: str) -> bool:
        """Close and unregister a device. Returns False if the name is unknown."""
        device = self._devices.pop(name, None)
        if device is None:
            return False
        device.close()
        return True

    def get(self, name: str) -> PipeDevice | None:
        return self._devices.get(name)

    @property
    def devices(self) -> list[PipeDevice]:
        return list(self._devices.values())

    @property
    def names(self) -> list[str]:
        return list(self._devices)

    def update_all(self) -> int:
        """Poll every device once. Returns the total number of lines applied."""
        return sum(device.update() for device in self._devices.values())

    def shutdown(self) -> None:
        """Close every device and empty the registry."""
        for device in self._devices.values():
            device.close()
        self._devices.clear()

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, name: object) -> bool:
        return name in self._devices

    def __iter__(self) -> Iterator[PipeDevice]:
        return iter(list(self._devices.values()))

    def __enter__(self) -> DeviceRegistry:
        return self

    def __exit__(self, *_: object) -> None:
        self.shutdown()


def populate_devices(registry: DeviceRegistry, config: PipesConfig) -> int:
    """Create one device per endpoint in the pipes directory.

    Endpoints that cannot be opened are skipped. Returns the number of
    devices added.
    """
    directory = pipes_dir(config.directory)
    if not directory.is_dir():
        logger.debug("Pipes directory %s does not exist.", directory)
        return 0

    added = 0
    for entry in sorted(directory.iterdir()):
        if entry.is_dir():
            continue

        if config.transport == "zmq":
            device = _open_zmq_device(entry, config.zmq_host)
        else:
            device = _open_fifo_device(entry, config.read_chunk_size)

        if device is not None:
            registry.add(device)
            added += 1
    return added


def parse_port(text: str) -> int | None:
    """Return the leading integer of a zmq endpoint file, or None."""
    match = _PORT_RE.match(text)
    if match is None:
        return None
    return int(match.group(1))


def _open_fifo_device(path: Path, chunk_size: int) -> PipeDevice | None:
    try:
        source = FifoSource(path, chunk_size=chunk_size)
    except OSError as e:
        logger.debug("Skipping %s: %s", path, e)
        return None
    return PipeDevice(path.name, source)


def _open_zmq_device(path: Path, host: str) -> PipeDevice | None:
    try:
        text = path.read_text()
    except (OSError, ValueError) as e:
        logger.warning("Skipping %s: %s", path, e)
        return None

    port = parse_port(text)
    if port is None:
        logger.warning("Skipping %s: no port number", path)
        return None

    try:
        source = ZmqSource(port, host=host)
    except zmq.ZMQError as e:
        logger.warning("Skipping %s: cannot connect to port %d: %s", path, port, e)
        return None
    return PipeDevice(path.name, source)
