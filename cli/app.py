from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    record_payload,
    render_ranking,
    render_record,
    render_row_errors,
    render_tiles,
)
from services.loader import LoadError, load_dataset
from services.ranking import RANKING_LIMIT, rank_records, unique_by_tile
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: Optional[ApiClient] = None


app = typer.Typer(
    help="Utilities for querying and serving internet speed rankings.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _get_client(ctx: typer.Context) -> ApiClient:
    state = _get_state(ctx)
    if state.client is None:
        state.client = ApiClient(state.config)
        ctx.call_on_close(state.client.close)
    return state.client


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Rankings API base URL (defaults to API_BASE_URL env or http://localhost:3001).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    ctx.obj = CLIState(config=load_config(base_url=base_url, timeout=timeout))


@app.command("speeds")
def speeds_command(ctx: typer.Context) -> None:
    """Show the ranked tiles served by the API."""
    render_ranking(_get_client(ctx).get_speeds())


@app.command("tiles")
def tiles_command(ctx: typer.Context) -> None:
    """List the distinct tiles in the ranking."""
    render_tiles(_get_client(ctx).get_tiles())


@app.command("tile")
def tile_command(
    ctx: typer.Context,
    tile: str = typer.Argument(..., help="Tile identifier to look up."),
) -> None:
    """Show measurements for a single tile."""
    render_record(_get_client(ctx).get_tile(tile))


@app.command("rank")
def rank_command(
    file: Path = typer.Argument(..., dir_okay=False, help="Path to a speed dataset CSV."),
    limit: int = typer.Option(RANKING_LIMIT, "--limit", "-n", min=0, help="Number of tiles to show."),
) -> None:
    """Rank a local dataset without starting the server."""
    try:
        result = load_dataset(file)
    except LoadError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    ranked = rank_records(unique_by_tile(result.records), limit=limit)
    render_ranking([record_payload(record) for record in ranked])
    render_row_errors(result.errors)


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (defaults to PORT env or 3001)."),
    dataset: Optional[Path] = typer.Option(
        None, "--dataset", "-d", help="Dataset to serve (defaults to SPEED_DATASET_PATH)."
    ),
) -> None:
    """Run the HTTP API and dashboard."""
    if dataset is not None:
        os.environ["SPEED_DATASET_PATH"] = str(dataset)
        get_settings.cache_clear()
    settings = get_settings()
    typer.echo(f"Serving {settings.dataset_path} on http://{host}:{port or settings.port}")
    uvicorn.run("app.main:app", host=host, port=port or settings.port)
