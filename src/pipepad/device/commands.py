"""Input token catalog and protocol line parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class ButtonName(StrEnum):
    """Buttons addressable with PRESS / RELEASE."""

    A = "A"
    B = "B"
    X = "X"
    Y = "Y"
    Z = "Z"
    START = "START"
    L = "L"
    R = "R"
    D_UP = "D_UP"
    D_DOWN = "D_DOWN"
    D_LEFT = "D_LEFT"
    D_RIGHT = "D_RIGHT"


class Verb(StrEnum):
    PRESS = "PRESS"
    RELEASE = "RELEASE"
    SET = "SET"


# Unidirectional shoulder axes, set with the single-scalar form of SET.
SHOULDER_AXES: tuple[str, ...] = ("L", "R")

# Two-dimensional sticks, set with the dual-scalar form of SET.
STICK_AXES: tuple[str, ...] = ("MAIN", "C")

SHOULDER_DEFAULT = 0.0
STICK_DEFAULT = 0.5  # centered

# Leading decimal literal, "." as the only decimal separator. An exponent
# marker without digits ("1e", "2E+") makes the whole token unparsable.
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?P<exp>[eE][+-]?\d*)?")


def axis_catalog() -> list[tuple[str, float]]:
    """Return (axis name, default value) for every axis-pair, in stable order."""
    catalog = [(name, SHOULDER_DEFAULT) for name in SHOULDER_AXES]
    for stick in STICK_AXES:
        catalog.append((f"{stick} X", STICK_DEFAULT))
        catalog.append((f"{stick} Y", STICK_DEFAULT))
    return catalog


def parse_number(text: str) -> float:
    """Best-effort, locale-independent float conversion.

    Converts the longest leading decimal literal and ignores whatever
    follows it. Text without a leading literal, or with an incomplete
    exponent, yields 0.0.
    """
    match = _NUMBER_RE.match(text.lstrip())
    if match is None:
        return 0.0
    exp = match.group("exp")
    if exp is not None and not exp[-1].isdigit():
        return 0.0
    return float(match.group())


@dataclass(frozen=True)
class ButtonCommand:
    """Set a button to pressed or released."""

    button: str
    pressed: bool

    @property
    def value(self) -> float:
        return 1.0 if self.pressed else 0.0


@dataclass(frozen=True)
class AxisCommand:
    """Set an axis-pair from a logical value in [0, 1] (0.5 = centered)."""

    axis: str
    value: float


Command = ButtonCommand | AxisCommand


def parse_command(line: str) -> list[Command]:
    """Parse one protocol line into zero or more commands.

    Tokens are split on single spaces, so consecutive spaces produce empty
    tokens. A single trailing space does not count as an extra token, so
    "PRESS A " is the same as "PRESS A". Lines with an unknown verb or a
    wrong token count yield no commands. Names are not validated here.
    """
    tokens = line.split(" ")
    if len(tokens) > 1 and tokens[-1] == "":
        tokens.pop()
    if len(tokens) < 2 or len(tokens) > 4:
        return []

    verb = tokens[0]
    if verb in (Verb.PRESS, Verb.RELEASE):
        if len(tokens) != 2:
            return []
        return [ButtonCommand(button=tokens[1], pressed=verb == Verb.PRESS)]

    if verb == Verb.SET:
        if len(tokens) == 3:
            # [-1, 1] -> [0, 1]
            value = parse_number(tokens[2])
            return [AxisCommand(axis=tokens[1], value=(value / 2.0) + 0.5)]
        if len(tokens) == 4:
            x = parse_number(tokens[2])
            y = parse_number(tokens[3])
            return [
                AxisCommand(axis=f"{tokens[1]} X", value=x),
                AxisCommand(axis=f"{tokens[1]} Y", value=y),
            ]

    return []
