from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_reading
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for running and exercising the gas telemetry relay.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Relay base URL (defaults to API_BASE_URL env or http://localhost:9090).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    ppm: str = typer.Argument(..., help="Gas concentration in ppm."),
    sensor_id: Optional[str] = typer.Option(
        None, "--sensor-id", "-s", help="Sensor identifier; the server derives one from the source address if omitted."
    ),
    raw: Optional[str] = typer.Option(None, "--raw", help="Raw ADC value."),
    rs: Optional[str] = typer.Option(None, "--rs", help="Sensor resistance."),
    level: Optional[str] = typer.Option(None, "--level", help="Producer-assigned level label."),
) -> None:
    """Submit a single reading the way sensor firmware does."""
    state = _get_state(ctx)
    reading = state.client.send_reading(ppm=ppm, sensor_id=sensor_id, raw=raw, rs=rs, level=level)
    typer.secho(f"Reading accepted for {reading.get('sensorId')}", fg=typer.colors.GREEN)
    render_reading(reading)


@app.command("history")
def history_command(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", min=1, help="Show at most this many readings per sensor."
    ),
) -> None:
    """Print the current per-sensor history held by the relay."""
    state = _get_state(ctx)
    render_history(state.client.get_history(), limit=limit)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to RELAY_HOST)."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (defaults to RELAY_PORT)."),
) -> None:
    """Run the relay server."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )
