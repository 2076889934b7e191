"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SpeedRecord:
    """Aggregated speed measurements for one tile, speeds in Mbps."""

    tile: str
    avg_download_speed: float
    avg_upload_speed: float
    avg_latency: float
    tests: int
    devices: int
    year: int
    quarter: int
