from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Sequence

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from models.records import SpeedRecord
from services.query import SpeedQueryService, build_default_query_service
from settings import get_settings


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


@dataclass(frozen=True)
class Metric:
    key: str
    label: str
    unit: str
    value: Callable[[SpeedRecord], float]


METRICS: Dict[str, Metric] = {
    "download": Metric("download", "Download", "Mbps", lambda r: r.avg_download_speed),
    "upload": Metric("upload", "Upload", "Mbps", lambda r: r.avg_upload_speed),
    "latency": Metric("latency", "Latency", "ms", lambda r: r.avg_latency),
}


@dataclass(frozen=True)
class ChartBar:
    tile: str
    value: float
    percent: float


def get_query_service() -> SpeedQueryService:
    return build_default_query_service()


def _chart_bars(records: Sequence[SpeedRecord], metric: Metric) -> list[ChartBar]:
    values = [metric.value(record) for record in records]
    peak = max(values, default=0.0)
    return [
        ChartBar(
            tile=record.tile,
            value=value,
            percent=round(value / peak * 100, 1) if peak > 0 else 0.0,
        )
        for record, value in zip(records, values)
    ]


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_index", response_class=HTMLResponse)
async def ui_index(
    request: Request,
    metric: str = Query("download"),
    service: SpeedQueryService = Depends(get_query_service),
) -> HTMLResponse:
    selected = METRICS.get(metric, METRICS["download"])
    records = service.get_ranked()
    snapshot = service.snapshot
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "records": records,
            "bars": _chart_bars(records, selected),
            "metric": selected,
            "metrics": list(METRICS.values()),
            "loaded_at": snapshot.loaded_at,
            "refresh_seconds": get_settings().dashboard_refresh_seconds,
        },
    )
