import os
from unittest.mock import MagicMock, patch

import pytest
import zmq

from pipepad.config import PipesConfig
from pipepad.device.pipe_device import PipeDevice
from pipepad.device.source import FifoSource
from pipepad.registry import DeviceRegistry, parse_port, populate_devices


def make_device(name: str) -> PipeDevice:
    source = MagicMock()
    source.closed = False
    source.poll.return_value = b""

    def _close() -> None:
        source.closed = True

    source.close.side_effect = _close
    return PipeDevice(name, source)


def test_registry_add_get_remove():
    registry = DeviceRegistry()
    pad = make_device("pad0")
    registry.add(pad)

    assert "pad0" in registry
    assert len(registry) == 1
    assert registry.get("pad0") is pad
    assert registry.get("nope") is None
    assert registry.names == ["pad0"]

    assert registry.remove("pad0") is True
    assert pad.closed
    assert registry.remove("pad0") is False


def test_registry_add_replaces_same_name():
    registry = DeviceRegistry()
    old = make_device("pad0")
    new = make_device("pad0")
    registry.add(old)
    registry.add(new)
    assert registry.devices == [new]
    assert old.closed
    assert not new.closed


def test_registry_update_all():
    registry = DeviceRegistry()
    first = make_device("pad0")
    second = make_device("pad1")
    first.source.poll.return_value = b"PRESS A\nPRESS B\n"
    second.source.poll.return_value = b"SET L 1\n"
    registry.add(first)
    registry.add(second)

    assert registry.update_all() == 3
    assert first.button("A") == 1.0
    assert second.axis("L +") == 1.0


def test_registry_shutdown():
    pads = [make_device("pad0"), make_device("pad1")]
    with DeviceRegistry() as registry:
        for pad in pads:
            registry.add(pad)
    assert len(registry) == 0
    assert all(pad.closed for pad in pads)


# --- discovery ---


def test_populate_missing_directory(tmp_path):
    registry = DeviceRegistry()
    config = PipesConfig(directory=str(tmp_path / "missing"))
    assert populate_devices(registry, config) == 0
    assert len(registry) == 0


def test_populate_fifo(tmp_path):
    os.mkfifo(tmp_path / "pad1")
    os.mkfifo(tmp_path / "pad0")
    (tmp_path / "subdir").mkdir()

    with DeviceRegistry() as registry:
        assert populate_devices(registry, PipesConfig(directory=str(tmp_path))) == 2
        assert registry.names == ["pad0", "pad1"]
        assert all(isinstance(device.source, FifoSource) for device in registry)

        writer = os.open(tmp_path / "pad0", os.O_WRONLY | os.O_NONBLOCK)
        try:
            os.write(writer, b"PRESS A\n")
            registry.update_all()
        finally:
            os.close(writer)
        assert registry.get("pad0").button("A") == 1.0
        assert registry.get("pad1").button("A") == 0.0


def test_populate_fifo_skips_unopenable(tmp_path):
    os.mkfifo(tmp_path / "pad0")
    os.mkfifo(tmp_path / "pad1")

    real_init = FifoSource.__init__

    def flaky_init(self, path, chunk_size=32):
        if path.name == "pad1":
            raise PermissionError(13, "Permission denied")
        real_init(self, path, chunk_size)

    with (
        patch.object(FifoSource, "__init__", flaky_init),
        DeviceRegistry() as registry,
    ):
        assert populate_devices(registry, PipesConfig(directory=str(tmp_path))) == 1
        assert registry.names == ["pad0"]


def test_populate_zmq(tmp_path):
    (tmp_path / "remote").write_text("5555\n")
    (tmp_path / "bad").write_text("not a port")
    (tmp_path / "empty").write_text("")

    config = PipesConfig(directory=str(tmp_path), transport="zmq", zmq_host="10.0.0.2")
    with patch("pipepad.registry.ZmqSource") as mock_source:
        registry = DeviceRegistry()
        assert populate_devices(registry, config) == 1
        mock_source.assert_called_once_with(5555, host="10.0.0.2")
        assert registry.names == ["remote"]


def test_populate_zmq_connect_error(tmp_path):
    (tmp_path / "remote").write_text("5555")
    config = PipesConfig(directory=str(tmp_path), transport="zmq")
    with patch("pipepad.registry.ZmqSource", side_effect=zmq.ZMQError(zmq.EINVAL)):
        registry = DeviceRegistry()
        assert populate_devices(registry, config) == 0


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("5555", 5555),
        ("5555\n", 5555),
        ("  8000abc", 8000),
        ("8000 9000", 8000),
        ("port 8000", None),
        ("", None),
    ],
)
def test_parse_port(text, expected):
    assert parse_port(text) == expected


def test_populate_zmq_leading_integer(tmp_path):
    (tmp_path / "remote").write_text("8000abc")
    config = PipesConfig(directory=str(tmp_path), transport="zmq")
    with patch("pipepad.registry.ZmqSource") as mock_source:
        registry = DeviceRegistry()
        assert populate_devices(registry, config) == 1
        mock_source.assert_called_once_with(8000, host="localhost")
