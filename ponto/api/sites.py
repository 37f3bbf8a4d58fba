"""Authorized site API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from ponto.core.errors import SiteConfigError

router = APIRouter(prefix="/api/v1")


@router.get("/sites")
async def get_sites(
    include_inactive: bool = Query(default=False),
) -> JSONResponse:
    """Return the configured sites, active ones only unless asked otherwise."""
    from ponto.main import get_directory

    try:
        sites = await get_directory().list_sites()
    except SiteConfigError as exc:
        return JSONResponse(content={"error": str(exc)}, status_code=503)

    if not include_inactive:
        sites = [s for s in sites if s.active]
    return JSONResponse(content={
        "sites": [s.to_dict() for s in sites],
        "total": len(sites),
    })
