"""
Admin endpoints: score overrides, CSV/JSON import, manual refresh.

All routes require HTTP Basic credentials (see auth.py). Domain errors
raised by the service are mapped to HTTP statuses in main.py.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import Config
from ..errors import UnauthorizedError
from ..ingestion.adapters.upload_parser import RecordParser
from ..models import (
    ImportResponse,
    OverrideRequest,
    OverrideResponse,
    RankedWineResponse,
    RefreshResponse,
)
from ..services.catalog_service import CatalogService, get_catalog_service
from .auth import admin_authorized

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin")


def get_record_parser() -> RecordParser:
    """Get or create the upload parser (lazy singleton)."""
    if not hasattr(get_record_parser, "_instance"):
        get_record_parser._instance = RecordParser()
    return get_record_parser._instance


@router.post("/override", response_model=OverrideResponse)
def set_override(
    request: OverrideRequest,
    authorized: bool = Depends(admin_authorized),
    service: CatalogService = Depends(get_catalog_service),
) -> OverrideResponse:
    """
    Adjust a wine's score by up to +/-25%.

    Out-of-range values are rejected (400), not clamped.
    """
    ranked = service.set_override(request.wine_id, request.adjustment_percent, authorized=authorized)
    return OverrideResponse(wine=RankedWineResponse.from_ranked(ranked))


@router.post("/import", response_model=ImportResponse)
async def import_wines(
    file: UploadFile = File(..., description="CSV or JSON export"),
    format: Optional[str] = Form(None, description="'csv' or 'json' (default: from extension)"),
    authorized: bool = Depends(admin_authorized),
    service: CatalogService = Depends(get_catalog_service),
    parser: RecordParser = Depends(get_record_parser),
) -> ImportResponse:
    """Upsert wines (base ratings) from an upload. Overrides are kept."""
    try:
        content = await file.read()
    except IOError as e:
        logger.error(f"Failed to read uploaded file: {e}")
        raise HTTPException(status_code=400, detail="Failed to read uploaded file")

    if len(content) > Config.MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {Config.MAX_UPLOAD_SIZE_MB}MB."
        )

    if not authorized:
        raise UnauthorizedError("import requires admin authorization")

    records = await run_in_threadpool(parser.parse, content, file.filename, format)
    stats = await run_in_threadpool(service.ingest, records, authorized, parser.get_source_name())

    logger.info(f"Import of '{file.filename}' complete: {stats.to_dict()}")
    return ImportResponse(
        upserted=stats.records_upserted,
        inserted=stats.records_added,
        updated=stats.records_updated,
        coerced=stats.records_coerced,
    )


@router.post("/refresh", response_model=RefreshResponse)
def refresh_now(
    authorized: bool = Depends(admin_authorized),
    service: CatalogService = Depends(get_catalog_service),
) -> RefreshResponse:
    """Re-read the source feed now, regardless of the 75-day window."""
    outcome = service.trigger_refresh_now(authorized=authorized)
    return RefreshResponse(
        refreshed=outcome.refreshed,
        reason=outcome.reason,
        upserted=outcome.stats.records_upserted if outcome.stats else 0,
    )
