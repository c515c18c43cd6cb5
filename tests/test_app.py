"""Tests for the main App class."""

from __future__ import annotations

import asyncio
import logging
import os

import pytest

from pipepad.app import App
from pipepad.config import AppConfig


@pytest.fixture
def pipes(tmp_path):
    os.mkfifo(tmp_path / "pad0")
    return tmp_path


@pytest.fixture
def app(pipes):
    return App(AppConfig(pipes={"directory": str(pipes)}, poll={"log_changes": True}))


@pytest.mark.asyncio
async def test_app_setup_and_tick(app, pipes):
    await app.setup()
    assert app.registry.names == ["pad0"]

    writer = os.open(pipes / "pad0", os.O_WRONLY | os.O_NONBLOCK)
    try:
        os.write(writer, b"PRESS A\nSET L 0.5\n")
        assert app.tick() == 2
    finally:
        os.close(writer)

    device = app.registry.get("pad0")
    assert device.state("Button A") == 1.0
    assert device.state("Axis L +") == pytest.approx(0.5)

    await app.shutdown()
    assert len(app.registry) == 0
    assert device.closed


@pytest.mark.asyncio
async def test_app_logs_changes(app, pipes, caplog):
    await app.setup()
    writer = os.open(pipes / "pad0", os.O_WRONLY | os.O_NONBLOCK)
    try:
        os.write(writer, b"PRESS START\n")
        with caplog.at_level(logging.INFO, logger="pipepad.app"):
            app.tick()
    finally:
        os.close(writer)
        await app.shutdown()

    assert "pad0: Button START = 1.000" in caplog.text
    assert "Button A" not in caplog.text


@pytest.mark.asyncio
async def test_app_setup_without_devices(tmp_path, caplog):
    app = App(AppConfig(pipes={"directory": str(tmp_path / "missing")}))
    with caplog.at_level(logging.WARNING):
        await app.setup()
    assert "No pipe devices found" in caplog.text
    assert app.tick() == 0


@pytest.mark.asyncio
async def test_app_run_polls_until_cancelled(app, pipes):
    await app.setup()
    writer = os.open(pipes / "pad0", os.O_WRONLY | os.O_NONBLOCK)
    task = asyncio.create_task(app.run())
    try:
        os.write(writer, b"PRESS B\n")
        for _ in range(100):
            await asyncio.sleep(0.01)
            if app.registry.get("pad0").button("B") == 1.0:
                break
        assert app.registry.get("pad0").button("B") == 1.0
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        os.close(writer)
        await app.shutdown()
