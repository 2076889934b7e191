from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence

import typer

from models.records import SpeedRecord
from services.loader import RowError


_COLUMNS = (
    ("#", 3),
    ("tile", 18),
    ("down Mbps", 10),
    ("up Mbps", 10),
    ("lat ms", 8),
    ("tests", 7),
    ("devices", 8),
    ("period", 8),
)


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _row(cells: Sequence[str]) -> str:
    return "  ".join(cell.ljust(width) for cell, (_, width) in zip(cells, _COLUMNS)).rstrip()


def _record_cells(rank: int, payload: Dict[str, Any]) -> list[str]:
    return [
        str(rank),
        str(payload.get("tile")),
        f"{payload.get('avgDownloadSpeed', 0.0):.2f}",
        f"{payload.get('avgUploadSpeed', 0.0):.2f}",
        f"{payload.get('avgLatency', 0.0):.0f}",
        str(payload.get("tests")),
        str(payload.get("devices")),
        f"{payload.get('year')} Q{payload.get('quarter')}",
    ]


def record_payload(record: SpeedRecord) -> Dict[str, Any]:
    return {
        "tile": record.tile,
        "avgDownloadSpeed": record.avg_download_speed,
        "avgUploadSpeed": record.avg_upload_speed,
        "avgLatency": record.avg_latency,
        "tests": record.tests,
        "devices": record.devices,
        "year": record.year,
        "quarter": record.quarter,
    }


def render_ranking(payloads: Sequence[Dict[str, Any]]) -> None:
    echo_heading("Internet Speed Ranking")
    if not payloads:
        typer.echo("No speed data available.")
        return
    typer.echo(_row([name for name, _ in _COLUMNS]))
    for rank, payload in enumerate(payloads, start=1):
        typer.echo(_row(_record_cells(rank, payload)))


def render_tiles(tiles: Sequence[str]) -> None:
    echo_heading("Tiles")
    if not tiles:
        typer.echo("No tiles available.")
        return
    for tile in tiles:
        typer.echo(f"  - {tile}")


def render_record(payload: Dict[str, Any]) -> None:
    echo_heading(f"Tile {payload.get('tile')}")
    echo_key_values(
        [
            ("avgDownloadSpeed", payload.get("avgDownloadSpeed")),
            ("avgUploadSpeed", payload.get("avgUploadSpeed")),
            ("avgLatency", payload.get("avgLatency")),
            ("tests", payload.get("tests")),
            ("devices", payload.get("devices")),
            ("year", payload.get("year")),
            ("quarter", payload.get("quarter")),
        ]
    )


def render_row_errors(errors: Sequence[RowError]) -> None:
    typer.echo()
    echo_heading("Rejected rows")
    if not errors:
        typer.echo("No errors recorded.")
        return
    for error in errors:
        typer.echo(f"  - row {error.row_number}: {error.reason}")
