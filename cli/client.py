from __future__ import annotations

from typing import Any, Dict, List
from urllib.parse import quote

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the rankings service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_speeds(self) -> List[Dict[str, Any]]:
        return self._get_json("/api/internet-speeds")

    def get_tiles(self) -> List[str]:
        return self._get_json("/api/tiles")

    def get_tile(self, tile: str) -> Dict[str, Any]:
        try:
            response = self._client.get(f"/api/internet-speeds/{quote(tile, safe='')}")
            if response.status_code == 404:
                typer.secho(f"Tile {tile} was not found.", fg=typer.colors.RED, err=True)
                raise typer.Exit(code=1)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            self._handle_request_error(exc)
        return response.json()

    def _get_json(self, path: str) -> Any:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            self._handle_request_error(exc)
        return response.json()

    def _handle_request_error(self, exc: httpx.RequestError) -> None:
        typer.secho(
            f"Could not reach {self._config.base_url}: {exc}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("message")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
