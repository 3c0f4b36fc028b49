"""
Geocoding proxy so browsers do not call Nominatim directly.
"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query

from app.services import geocoding
from app.middleware.rate_limit import rate_limit
from app.schemas.error import get_error_responses


router = APIRouter(
    prefix="/proxy",
    tags=["Geocoding"],
    dependencies=[Depends(rate_limit("read"))],
    responses=get_error_responses(400, 429, 502)
)


@router.get("/nominatim/search", summary="Forward geocoding, India only")
async def nominatim_search(q: Optional[str] = Query(None)) -> Any:
    return await geocoding.search(q)


@router.get("/nominatim/reverse", summary="Reverse geocoding")
async def nominatim_reverse(
    lat: Optional[str] = Query(None),
    lon: Optional[str] = Query(None)
) -> Any:
    return await geocoding.reverse(lat, lon)
