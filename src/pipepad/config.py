"""Pipepad configuration - Pydantic v2 based."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PipesConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    directory: str = ""
    """Directory scanned for endpoints. Empty string = XDG data dir default."""
    transport: Literal["fifo", "zmq"] = "fifo"
    """fifo: each entry is a named pipe. zmq: each entry holds a TCP port number."""
    zmq_host: str = "localhost"
    read_chunk_size: Annotated[int, Field(ge=1, le=65536)] = 32
    """Bytes requested per non-blocking FIFO read."""

    @field_validator("zmq_host")
    @classmethod
    def zmq_host_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("zmq_host must not be empty.")
        return v.strip()


class PollConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    interval_ms: Annotated[int, Field(ge=1, le=1000)] = 16
    """Delay between two polls of every device."""
    log_changes: bool = False
    """Log every input whose value changed after a poll."""


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    pipes: PipesConfig = Field(default_factory=PipesConfig)
    poll: PollConfig = Field(default_factory=PollConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> AppConfig:
        """Load config from TOML file. Uses defaults if file not found."""
        from pipepad.paths import default_config_path

        config_path = path or default_config_path()
        if not config_path.exists():
            return cls()

        with config_path.open("rb") as f:
            data = tomllib.load(f)

        return cls.model_validate(data)

    @classmethod
    def load_with_override(
        cls,
        base: Path | None = None,
        override: Path | None = None,
    ) -> AppConfig:
        """Load base config, then merge override TOML on top."""
        from pipepad.paths import default_config_path

        base_path = base or default_config_path()
        base_data: dict[str, object] = {}
        if base_path.exists():
            with base_path.open("rb") as f:
                base_data = tomllib.load(f)

        if override and override.exists():
            with override.open("rb") as f:
                override_data = tomllib.load(f)
            base_data = _deep_merge(base_data, override_data)

        return cls.model_validate(base_data)


def _deep_merge(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    """Recursively merge override into base."""
    result: dict[str, object] = dict(base)
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = _deep_merge(base_value, value)
        else:
            result[key] = value
    return result
