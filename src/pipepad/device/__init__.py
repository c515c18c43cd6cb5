"""Pipepad device subsystem."""

from pipepad.device.buffer import CommandBuffer
from pipepad.device.commands import AxisCommand, ButtonCommand, ButtonName, parse_command
from pipepad.device.pipe_device import PipeDevice
from pipepad.device.source import ByteSource, FifoSource, TransportError, ZmqSource

__all__ = [
    "AxisCommand",
    "ButtonCommand",
    "ButtonName",
    "ByteSource",
    "CommandBuffer",
    "FifoSource",
    "PipeDevice",
    "TransportError",
    "ZmqSource",
    "parse_command",
]
