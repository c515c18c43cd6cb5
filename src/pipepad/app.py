"""Pipepad application - discovers devices and polls them."""

from __future__ import annotations

import asyncio
import logging

from pipepad.config import AppConfig
from pipepad.registry import DeviceRegistry, populate_devices

logger = logging.getLogger(__name__)


class App:
    """Main Pipepad application."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._registry = DeviceRegistry()
        self._last: dict[str, dict[str, float]] = {}

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    async def setup(self) -> None:
        """Discover endpoints and create one device per endpoint."""
        count = populate_devices(self._registry, self._config.pipes)
        if count == 0:
            logger.warning("No pipe devices found.")
        else:
            names = ", ".join(self._registry.names)
            logger.info("Pipepad ready with %d device(s): %s", count, names)
        self._last = {device.name: device.inputs() for device in self._registry}

    def tick(self) -> int:
        """Poll every device once. Returns the number of lines applied."""
        count = self._registry.update_all()
        if count and self._config.poll.log_changes:
            self._log_changes()
        return count

    async def run(self) -> None:
        """Poll devices until cancelled."""
        interval = self._config.poll.interval_ms / 1000
        while True:
            self.tick()
            await asyncio.sleep(interval)

    async def shutdown(self) -> None:
        """Close every device."""
        self._registry.shutdown()
        self._last.clear()
        logger.info("Pipepad shut down.")

    # --- Helpers ---

    def _log_changes(self) -> None:
        for device in self._registry:
            current = device.inputs()
            previous = self._last.get(device.name, {})
            for identifier, value in current.items():
                if previous.get(identifier) != value:
                    logger.info("%s: %s = %.3f", device.name, identifier, value)
            self._last[device.name] = current
