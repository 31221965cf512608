"""CLI entrypoint running a stub http server from a stub file."""

from __future__ import annotations

import signal
import sys
import time
from pathlib import Path
from typing import Any, Optional

import typer
import yaml

if __package__ in {None, ""}:
    current_file = Path(__file__).resolve()
    for candidate in (current_file.parents[1], current_file.parents[2] / "stub-engine"):
        candidate_str = str(candidate)
        if candidate_str not in sys.path and candidate.exists():
            sys.path.insert(0, candidate_str)
    __package__ = "stub_server"

from stub_engine.mocker import Mocker

from .config import StubServerConfig, apply_config, describe_stub, load_config
from .logging_utils import configure_logging
from .output_config import get_log_format
from .server import create_mocker

app = typer.Typer(help="Serve canned HTTP responses from a stub file.")


def _load(path: Path) -> StubServerConfig:
    try:
        config = load_config(path)
        # dry run against a detached mocker to surface invalid statuses or encodings
        apply_config(config, Mocker())
    except (ValueError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Stub file {path} is invalid: {exc}") from exc
    return config


def _raise_interrupt(signum: int, frame: Any) -> None:
    raise KeyboardInterrupt


@app.command()
def serve(
    config: Optional[Path] = typer.Option(
        None,
        exists=True,
        readable=True,
        help="YAML/JSON stub file. Without it every request gets the 404 fallback.",
    ),
    host: Optional[str] = typer.Option(None, help="Bind host, overrides the stub file settings."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (0 picks a free one)."),
    log_level: str = typer.Option("info", help="Log level."),
    log_format: Optional[str] = typer.Option(
        None,
        "--log-format",
        help="console, plain or json (defaults to CONSOLE_OUTPUT_FORMAT or console).",
    ),
) -> None:
    """Start the stub server and block until interrupted."""

    logger = configure_logging(log_level, get_log_format(log_format))
    stub_config = _load(config) if config else StubServerConfig()

    overrides = {key: value for key, value in {"host": host, "port": port}.items() if value is not None}
    settings = stub_config.settings.model_copy(update=overrides)
    mocker = create_mocker(settings)
    apply_config(stub_config, mocker)

    signal.signal(signal.SIGTERM, _raise_interrupt)
    with mocker:
        typer.secho(
            f"[stub-server] listening on {settings.host}:{mocker.port} with {len(stub_config.stubs)} stub(s)",
            fg=typer.colors.GREEN,
        )
        for spec in stub_config.stubs:
            typer.echo(f"    - {describe_stub(spec)}")
        try:
            while True:
                time.sleep(0.5)
        except KeyboardInterrupt:
            logger.info("stub_server_interrupted", recorded_requests=len(mocker.recorded_requests()))


@app.command()
def check(
    config: Path = typer.Option(..., exists=True, readable=True, help="YAML/JSON stub file to validate."),
) -> None:
    """Validate a stub file and list the stubs it defines."""

    stub_config = _load(config)
    typer.secho(f"{len(stub_config.stubs)} stub(s) defined in {config}", fg=typer.colors.GREEN)
    for spec in stub_config.stubs:
        typer.echo(f"  - {describe_stub(spec)}")


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
