from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _display(value: Any) -> Any:
    return "NaN" if value is None else value


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Reading")
    echo_key_values(
        [
            ("sensorId", payload.get("sensorId")),
            ("ppm", _display(payload.get("ppm"))),
            ("raw", _display(payload.get("raw"))),
            ("rs", _display(payload.get("rs"))),
            ("level", payload.get("level")),
            ("timestamp", payload.get("timestamp")),
        ]
    )


def render_history(payload: Dict[str, List[Dict[str, Any]]], limit: Optional[int] = None) -> None:
    echo_heading("Sensor History")
    if not payload:
        typer.echo("No readings recorded.")
        return

    for sensor_id in sorted(payload):
        readings = payload[sensor_id]
        typer.echo()
        typer.secho(f"{sensor_id} ({len(readings)} readings)", bold=True)
        shown = readings if limit is None else readings[:limit]
        for reading in shown:
            typer.echo(
                f"  - {reading.get('timestamp')}: ppm={_display(reading.get('ppm'))} "
                f"level={reading.get('level')}"
            )
