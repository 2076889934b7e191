"""Snapshot ownership and read queries for ranked tile speeds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import List, Optional, Tuple, Union

from models.records import SpeedRecord
from services.loader import LoadError, load_dataset
from services.notifier import WebhookNotifier
from services.ranking import rank_records, unique_by_tile
from settings import get_settings

logger = logging.getLogger(__name__)


class SnapshotState(str, Enum):
    empty = "empty"
    loaded = "loaded"


class TileNotFoundError(KeyError):
    """Raised when a tile is not part of the current snapshot."""

    def __init__(self, tile: str) -> None:
        super().__init__(tile)
        self.tile = tile

    def __str__(self) -> str:
        return f"Tile {self.tile!r} not found."


@dataclass(frozen=True)
class Snapshot:
    """Immutable ranked view served to all readers."""

    records: Tuple[SpeedRecord, ...] = ()
    state: SnapshotState = SnapshotState.empty
    source: Optional[str] = None
    loaded_at: Optional[datetime] = None


EMPTY_SNAPSHOT = Snapshot()


class SpeedQueryService:
    """Owns the published snapshot and answers read queries against it.

    Readers take the current reference without locking. ``reload`` builds a
    complete new ``Snapshot`` and publishes it with a single assignment, so a
    reader sees either the old sequence or the new one.
    """

    def __init__(
        self,
        dataset_path: Union[str, Path],
        notifier: Optional[WebhookNotifier] = None,
    ) -> None:
        self.dataset_path = Path(dataset_path)
        self.notifier = notifier
        self._snapshot = EMPTY_SNAPSHOT
        self._reload_lock = Lock()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def reload(self, path: Union[str, Path, None] = None) -> Snapshot:
        """Load and rank the dataset, then publish it as the current snapshot.

        A ``LoadError`` is logged and the previously published snapshot stays
        in place.
        """
        source = Path(path) if path is not None else self.dataset_path
        with self._reload_lock:
            try:
                result = load_dataset(source)
            except LoadError as exc:
                logger.error(
                    "Error loading data: %s",
                    exc,
                    extra={"source": str(source), "record_count": len(self._snapshot.records)},
                )
                return self._snapshot

            snapshot = Snapshot(
                records=rank_records(unique_by_tile(result.records)),
                state=SnapshotState.loaded,
                source=str(source),
                loaded_at=datetime.now(timezone.utc),
            )
            self._snapshot = snapshot

        logger.info(
            "Data loaded successfully",
            extra={
                "source": str(source),
                "record_count": len(snapshot.records),
                "rejected_count": len(result.errors),
            },
        )
        return snapshot

    def get_ranked(self) -> Tuple[SpeedRecord, ...]:
        self._notify("Website requested internet speeds data")
        return self._snapshot.records

    def get_distinct_tiles(self) -> List[str]:
        self._notify("Website requested tiles data")
        return list(dict.fromkeys(record.tile for record in self._snapshot.records))

    def get_by_tile(self, tile: str) -> SpeedRecord:
        self._notify(f"Website requested data for tile: {tile}")
        for record in self._snapshot.records:
            if record.tile == tile:
                return record
        raise TileNotFoundError(tile)

    def shutdown(self) -> None:
        """Release notifier resources during application shutdown."""
        if self.notifier is not None:
            self.notifier.shutdown()

    def _notify(self, message: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(message)
        except Exception:  # noqa: BLE001 - notifications must never fail a query
            logger.exception("Failed to dispatch notification")


@lru_cache
def build_default_query_service(
    dataset_path: Optional[str] = None,
) -> SpeedQueryService:
    """Factory that wires the query service from settings."""
    settings = get_settings()
    notifier = WebhookNotifier(
        provider=settings.notification_provider,
        webhook_url=settings.notification_webhook_url,
        timeout=settings.notification_timeout,
        workers=settings.notification_workers,
        max_pending=settings.notification_max_pending,
    )
    return SpeedQueryService(
        dataset_path=dataset_path or settings.dataset_path,
        notifier=notifier,
    )
