from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_readings(readings: List[Dict[str, Any]]) -> None:
    echo_heading("Current Weather")
    if not readings:
        typer.echo("No readings available.")
        return
    for reading in readings:
        typer.echo(
            f"  - {reading.get('city')}: {reading.get('temperature')}°C, "
            f"{reading.get('condition')} (timestamp {reading.get('timestamp')})"
        )


def render_daily(records: List[Dict[str, Any]]) -> None:
    echo_heading("Daily Aggregates")
    if not records:
        typer.echo("No daily records found.")
        return
    for record in records:
        typer.echo()
        typer.secho(f"{record.get('city')} on {record.get('date')}", bold=True)
        echo_key_values(
            [
                ("max_temp", record.get("max_temp")),
                ("min_temp", record.get("min_temp")),
                ("avg_temp", record.get("avg_temp")),
                ("dominant_weather", record.get("dominant_weather")),
                ("samples", len(record.get("temperatures") or [])),
            ]
        )
        if record.get("alert_triggered"):
            typer.secho("alert_triggered: yes", fg=typer.colors.RED)
        else:
            typer.echo("alert_triggered: no")
