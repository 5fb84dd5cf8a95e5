from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_daily, render_readings
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the weather monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _validate_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise typer.BadParameter("Date must be formatted as YYYY-MM-DD.") from exc
    return value


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Weather monitor base URL (defaults to API_BASE_URL env or http://localhost:5000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the service to respond.",
    ),
) -> None:
    """Entry point for the CLI."""
    if ctx.invoked_subcommand == "serve":
        return
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("fetch")
def fetch_command(ctx: typer.Context) -> None:
    """Fetch current weather for all configured cities (nothing is stored)."""
    state = _get_state(ctx)
    typer.echo(f"Fetching current weather from {state.config.base_url} ...")
    readings = state.client.fetch_weather()
    typer.echo()
    render_readings(readings)


@app.command("daily")
def daily_command(
    ctx: typer.Context,
    city: Optional[str] = typer.Option(None, "--city", "-c", help="Only show this city."),
    date: Optional[str] = typer.Option(
        None, "--date", "-d", callback=_validate_date, help="Only show this UTC date (YYYY-MM-DD)."
    ),
) -> None:
    """Show persisted daily aggregates."""
    state = _get_state(ctx)
    records = state.client.list_daily(city=city, date=date)
    render_daily(records)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to listen on (defaults to PORT env)."),
) -> None:
    """Run the HTTP service and its background scheduler."""
    listen_port = port if port is not None else get_settings().port
    uvicorn.run("app.main:app", host=host, port=listen_port)
