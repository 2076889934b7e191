"""CSV dataset loading for tile speed measurements."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from models.records import SpeedRecord

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    "tile",
    "avg_d_kbps",
    "avg_u_kbps",
    "avg_lat_ms",
    "tests",
    "devices",
    "year",
    "quarter",
)

_FLOAT_COLUMNS = ("avg_d_kbps", "avg_u_kbps", "avg_lat_ms")
_INT_COLUMNS = ("tests", "devices", "year", "quarter")
_COUNT_COLUMNS = ("tests", "devices")
_KBPS_PER_MBPS = 1000


class LoadError(Exception):
    """Raised when a dataset file cannot be read as a whole."""


@dataclass(frozen=True)
class RowError:
    """A source row that was skipped because a field failed coercion."""

    row_number: int
    reason: str


@dataclass
class LoadResult:
    records: List[SpeedRecord] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)


def _parse_float(raw: str, column: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"invalid numeric value in {column}") from exc
    if not math.isfinite(value):
        raise ValueError(f"non-finite value in {column}")
    return value


def _parse_int(raw: str, column: str) -> int:
    try:
        return int(raw)
    except ValueError:
        pass
    value = _parse_float(raw, column)
    if not value.is_integer():
        raise ValueError(f"invalid integer value in {column}")
    return int(value)


def _parse_row(row: Mapping[str, Optional[str]], columns: Mapping[str, str]) -> SpeedRecord:
    values: Dict[str, str] = {
        name: (row.get(columns[name]) or "").strip() for name in REQUIRED_COLUMNS
    }
    if not values["tile"]:
        raise ValueError("missing tile")
    for name in REQUIRED_COLUMNS[1:]:
        if not values[name]:
            raise ValueError(f"missing {name}")

    floats = {name: _parse_float(values[name], name) for name in _FLOAT_COLUMNS}
    ints = {name: _parse_int(values[name], name) for name in _INT_COLUMNS}
    for name in _COUNT_COLUMNS:
        if ints[name] < 0:
            raise ValueError(f"negative value in {name}")

    return SpeedRecord(
        tile=values["tile"],
        avg_download_speed=floats["avg_d_kbps"] / _KBPS_PER_MBPS,
        avg_upload_speed=floats["avg_u_kbps"] / _KBPS_PER_MBPS,
        avg_latency=floats["avg_lat_ms"],
        tests=ints["tests"],
        devices=ints["devices"],
        year=ints["year"],
        quarter=ints["quarter"],
    )


def load_dataset(path: Union[str, Path]) -> LoadResult:
    """Read a comma separated dataset into speed records.

    Rows keep their source order. Rows whose fields cannot be coerced are
    skipped and reported in ``LoadResult.errors``; row numbers count the header
    as row 1. Any failure to read the file as a whole raises ``LoadError``.
    """
    dataset_path = Path(path)
    result = LoadResult()
    try:
        with dataset_path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle)
            if not reader.fieldnames:
                raise LoadError(f"Dataset {dataset_path} is missing a header row.")

            normalized = {name.lower().strip(): name for name in reader.fieldnames}
            missing = [name for name in REQUIRED_COLUMNS if name not in normalized]
            if missing:
                raise LoadError(
                    f"Dataset {dataset_path} missing required columns: {', '.join(missing)}"
                )

            for row_number, row in enumerate(reader, start=2):
                try:
                    record = _parse_row(row, normalized)
                except ValueError as exc:
                    result.errors.append(RowError(row_number=row_number, reason=str(exc)))
                    logger.warning(
                        "Skipping dataset row",
                        extra={"row_number": row_number, "reason": str(exc)},
                    )
                    continue
                result.records.append(record)
    except LoadError:
        raise
    except FileNotFoundError as exc:
        raise LoadError(f"Dataset {dataset_path} does not exist.") from exc
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise LoadError(f"Failed to read dataset {dataset_path}: {exc}") from exc

    seen: set[str] = set()
    duplicates: set[str] = set()
    for record in result.records:
        if record.tile in seen:
            duplicates.add(record.tile)
        seen.add(record.tile)
    if duplicates:
        logger.warning(
            "Dataset contains duplicate tiles, later rows are ignored: %s",
            ", ".join(sorted(duplicates)),
            extra={"source": str(dataset_path)},
        )

    logger.info(
        "Dataset loaded",
        extra={
            "source": str(dataset_path),
            "record_count": len(result.records),
            "rejected_count": len(result.errors),
        },
    )
    return result
