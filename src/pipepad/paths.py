"""XDG-compliant config and data paths."""

from __future__ import annotations

import os
from pathlib import Path


def config_dir() -> Path:
    """Return ~/.config/pipepad, creating it if needed."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    p = Path(xdg) / "pipepad" if xdg else Path.home() / ".config" / "pipepad"
    p.mkdir(parents=True, exist_ok=True)
    return p


def default_config_path() -> Path:
    """Return the default config file path."""
    return config_dir() / "config.toml"


def data_dir() -> Path:
    """Return ~/.local/share/pipepad, creating it if needed."""
    xdg = os.environ.get("XDG_DATA_HOME")
    p = Path(xdg) / "pipepad" if xdg else Path.home() / ".local" / "share" / "pipepad"
    p.mkdir(parents=True, exist_ok=True)
    return p


def default_pipes_dir() -> Path:
    """Return the default directory scanned for pipe endpoints.

    The directory itself is not created: a missing directory simply means
    no devices are discovered.
    """
    return data_dir() / "Pipes"


def pipes_dir(configured: str = "") -> Path:
    """Resolve the pipes directory from config, falling back to the default."""
    if configured:
        return Path(configured).expanduser()
    return default_pipes_dir()
