"""Ranking logic for tile speed records."""

from __future__ import annotations

from typing import Iterable, Tuple

from models.records import SpeedRecord

RANKING_LIMIT = 10


def rank_records(
    records: Iterable[SpeedRecord], limit: int = RANKING_LIMIT
) -> Tuple[SpeedRecord, ...]:
    """Return the fastest ``limit`` records by average download speed.

    ``sorted`` is stable with ``reverse=True`` as well, so records with equal
    speeds keep their input order.
    """
    if limit < 0:
        raise ValueError("limit must be non-negative")
    ranked = sorted(records, key=lambda record: record.avg_download_speed, reverse=True)
    return tuple(ranked[:limit])


def unique_by_tile(records: Iterable[SpeedRecord]) -> Tuple[SpeedRecord, ...]:
    """Keep the first record seen for each tile, in input order."""
    seen: set[str] = set()
    unique: list[SpeedRecord] = []
    for record in records:
        if record.tile in seen:
            continue
        seen.add(record.tile)
        unique.append(record)
    return tuple(unique)
