"""Pipepad CLI - typer-based entry point."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Annotated

import typer

app = typer.Typer(
    name="pipepad",
    help="Virtual game controllers driven by text commands over pipes or sockets.",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration commands.")
app.add_typer(config_app, name="config")

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file."),
]


# --- Run ---


@app.command()
def run(
    config: ConfigOption = None,
    override: Annotated[
        Path | None,
        typer.Option("--override", "-o", help="Override TOML to merge on top of config."),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Enable debug logging.")] = False,
) -> None:
    """Discover pipe devices and poll them until interrupted."""
    _setup_logging(debug)
    from pipepad.app import App
    from pipepad.config import AppConfig

    cfg = AppConfig.load_with_override(base=config, override=override)
    application = App(cfg)

    async def _main() -> None:
        await application.setup()
        try:
            await application.run()
        finally:
            await application.shutdown()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_main())


# --- Endpoints ---


@app.command()
def mkpipe(
    name: Annotated[str, typer.Argument(help="Device name (file name of the pipe).")],
    config: ConfigOption = None,
) -> None:
    """Create a named pipe endpoint in the pipes directory."""
    from pipepad.config import AppConfig
    from pipepad.paths import pipes_dir

    cfg = AppConfig.load(config)
    directory = pipes_dir(cfg.pipes.directory)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / name
    if target.exists():
        typer.echo(f"✗ Already exists: {target}", err=True)
        raise typer.Exit(code=1)

    os.mkfifo(target)
    typer.echo(f"✓ Created {target}")


@app.command()
def send(
    name: Annotated[str, typer.Argument(help="Device name (file name of the endpoint).")],
    commands: Annotated[
        list[str],
        typer.Argument(help="Command lines, e.g. 'PRESS A' 'SET MAIN 1.0 0.5'."),
    ],
    config: ConfigOption = None,
) -> None:
    """Send command lines to a pipe device."""
    from pipepad.config import AppConfig
    from pipepad.paths import pipes_dir

    cfg = AppConfig.load(config)
    target = pipes_dir(cfg.pipes.directory) / name
    if not target.exists():
        typer.echo(f"✗ No such endpoint: {target}", err=True)
        raise typer.Exit(code=1)

    import zmq

    payload = "".join(f"{command}\n" for command in commands).encode()

    try:
        if cfg.pipes.transport == "zmq":
            _send_zmq(target, payload)
        else:
            _send_fifo(target, payload)
    except (OSError, ValueError, zmq.ZMQError) as e:
        typer.echo(f"✗ Send failed: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"✓ Sent {len(commands)} command(s) to {name}")


# --- Doctor ---


@app.command()
def doctor(
    json_output: Annotated[bool, typer.Option("--json", help="Output results as JSON.")] = False,
    config: ConfigOption = None,
) -> None:
    """Check the pipes directory, transport and configuration."""
    results: list[dict[str, str]] = []

    def check(name: str, fn: object) -> bool:
        try:
            fn()  # type: ignore[operator]
            results.append({"name": name, "status": "ok"})
            return True
        except Exception as e:
            results.append({"name": name, "status": "fail", "message": str(e)})
            return False

    def _check_config() -> None:
        from pipepad.config import AppConfig

        AppConfig.load(config)

    def _check_pyzmq() -> None:
        import zmq

        zmq.zmq_version()

    def _check_pipes() -> None:
        from pipepad.config import AppConfig
        from pipepad.paths import pipes_dir

        directory = pipes_dir(AppConfig.load(config).pipes.directory)
        if not directory.is_dir():
            raise RuntimeError(f"Pipes directory not found: {directory}")
        if not any(not entry.is_dir() for entry in directory.iterdir()):
            raise RuntimeError(f"No endpoints in {directory}. Create one with 'pipepad mkpipe'.")

    check("config", _check_config)
    check("pyzmq", _check_pyzmq)
    check("pipes", _check_pipes)

    if json_output:
        typer.echo(json.dumps(results, indent=2))
    else:
        all_ok = True
        for result in results:
            status = result["status"]
            message = result.get("message", "")
            icon = "✓" if status == "ok" else "✗"
            line = f"  {icon} {result['name']}"
            if message:
                line += f": {message}"
            typer.echo(line)
            if status != "ok":
                all_ok = False
        if not all_ok:
            raise typer.Exit(code=1)


# --- Config subcommands ---


@config_app.command("show")
def config_show(config: ConfigOption = None) -> None:
    """Show effective configuration as TOML."""
    import tomli_w

    from pipepad.config import AppConfig

    cfg = AppConfig.load(config)
    typer.echo(tomli_w.dumps(cfg.model_dump()))


@config_app.command("validate")
def config_validate(config: ConfigOption = None) -> None:
    """Validate configuration file and report errors."""
    from pydantic import ValidationError

    from pipepad.config import AppConfig
    from pipepad.paths import default_config_path, pipes_dir

    path = config or default_config_path()
    if not path.exists():
        typer.echo(f"Config file not found: {path}")
        typer.echo("Using defaults, nothing to validate.")
        return

    try:
        cfg = AppConfig.load(path)
        typer.echo(f"✓ Config valid: {path}")
        typer.echo(f"  pipes.directory = {pipes_dir(cfg.pipes.directory)}")
        typer.echo(f"  pipes.transport = {cfg.pipes.transport}")
    except ValidationError as e:
        typer.echo(f"✗ Config validation failed: {path}", err=True)
        for error in e.errors():
            loc = " -> ".join(str(item) for item in error["loc"])
            typer.echo(f"  [{loc}] {error['msg']}", err=True)
        raise typer.Exit(code=1) from e


# --- Helpers ---


def _send_fifo(target: Path, payload: bytes) -> None:
    # Non-blocking open fails with ENXIO when nobody is reading the pipe.
    fd = os.open(target, os.O_WRONLY | os.O_NONBLOCK)
    try:
        os.write(fd, payload)
    finally:
        os.close(fd)


def _send_zmq(target: Path, payload: bytes, timeout_ms: int = 2000) -> None:
    import zmq

    from pipepad.registry import parse_port

    # Devices connect their PULL socket to this port, so the sender binds.
    port = parse_port(target.read_text())
    if port is None:
        raise ValueError(f"no port number in {target}")
    ctx = zmq.Context()
    sock = ctx.socket(zmq.PUSH)
    try:
        sock.setsockopt(zmq.SNDTIMEO, timeout_ms)
        sock.bind(f"tcp://*:{port}")
        sock.send(payload)
    finally:
        sock.close(linger=timeout_ms)
        ctx.term()


def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
