"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.schemas import (
    ErrorResponse,
    NotFoundResponse,
    SnapshotStatus,
    SpeedRecordResponse,
)
from services.query import SpeedQueryService, TileNotFoundError, build_default_query_service

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"
TILE_NOT_FOUND_MESSAGE = "Tile not found"

router = APIRouter()


class InternalServiceError(Exception):
    """Wraps an unexpected fault raised while answering a query."""


def get_query_service() -> SpeedQueryService:
    return build_default_query_service()


async def _tile_not_found_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": TILE_NOT_FOUND_MESSAGE},
    )


async def _internal_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, InternalServiceError):
        logger.error("Unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TileNotFoundError, _tile_not_found_handler)
    app.add_exception_handler(InternalServiceError, _internal_error_handler)
    app.add_exception_handler(Exception, _internal_error_handler)


@router.get(
    "/api/internet-speeds",
    response_model=List[SpeedRecordResponse],
    responses={500: {"model": ErrorResponse}},
    summary="Top ranked tiles by average download speed.",
)
async def list_internet_speeds(
    service: SpeedQueryService = Depends(get_query_service),
) -> List[SpeedRecordResponse]:
    try:
        records = service.get_ranked()
        return [SpeedRecordResponse.from_record(record) for record in records]
    except Exception as exc:
        logger.exception("Error serving internet speeds", extra={"query": "ranked"})
        raise InternalServiceError("ranked") from exc


@router.get(
    "/api/tiles",
    response_model=List[str],
    responses={500: {"model": ErrorResponse}},
    summary="Distinct tiles present in the ranking.",
)
async def list_tiles(
    service: SpeedQueryService = Depends(get_query_service),
) -> List[str]:
    try:
        return service.get_distinct_tiles()
    except Exception as exc:
        logger.exception("Error serving tiles", extra={"query": "tiles"})
        raise InternalServiceError("tiles") from exc


@router.get(
    "/api/internet-speeds/{tile}",
    response_model=SpeedRecordResponse,
    responses={404: {"model": NotFoundResponse}, 500: {"model": ErrorResponse}},
    summary="Speed measurements for a single ranked tile.",
)
async def get_internet_speed(
    tile: str,
    service: SpeedQueryService = Depends(get_query_service),
) -> SpeedRecordResponse:
    try:
        record = service.get_by_tile(tile)
        return SpeedRecordResponse.from_record(record)
    except TileNotFoundError:
        logger.info("Tile not found", extra={"query": "tile", "tile": tile})
        raise
    except Exception as exc:
        logger.exception(
            "Error serving specific tile data", extra={"query": "tile", "tile": tile}
        )
        raise InternalServiceError("tile") from exc


@router.get(
    "/api/status",
    response_model=SnapshotStatus,
    responses={500: {"model": ErrorResponse}},
    summary="State of the currently served snapshot.",
)
async def snapshot_status(
    service: SpeedQueryService = Depends(get_query_service),
) -> SnapshotStatus:
    try:
        return SnapshotStatus.from_snapshot(service.snapshot)
    except Exception as exc:
        logger.exception("Error serving snapshot status", extra={"query": "status"})
        raise InternalServiceError("status") from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
