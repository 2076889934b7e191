"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import SpeedRecord
from services.query import Snapshot, SnapshotState


class SpeedRecordResponse(BaseModel):
    """One ranked tile as exposed to the dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    tile: str
    avg_download_speed: float = Field(..., alias="avgDownloadSpeed", description="Mbps")
    avg_upload_speed: float = Field(..., alias="avgUploadSpeed", description="Mbps")
    avg_latency: float = Field(..., alias="avgLatency", description="Milliseconds")
    tests: int = Field(..., ge=0)
    devices: int = Field(..., ge=0)
    year: int
    quarter: int

    @classmethod
    def from_record(cls, record: SpeedRecord) -> "SpeedRecordResponse":
        return cls(
            tile=record.tile,
            avg_download_speed=record.avg_download_speed,
            avg_upload_speed=record.avg_upload_speed,
            avg_latency=record.avg_latency,
            tests=record.tests,
            devices=record.devices,
            year=record.year,
            quarter=record.quarter,
        )


class SnapshotStatus(BaseModel):
    """Metadata about the currently published snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    state: SnapshotState
    record_count: int = Field(..., alias="recordCount", ge=0)
    source: Optional[str] = None
    loaded_at: Optional[datetime] = Field(default=None, alias="loadedAt")

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotStatus":
        return cls(
            state=snapshot.state,
            record_count=len(snapshot.records),
            source=snapshot.source,
            loaded_at=snapshot.loaded_at,
        )


class ErrorResponse(BaseModel):
    error: str


class NotFoundResponse(BaseModel):
    message: str
