"""
Forward and reverse geocoding through Nominatim.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.utils.exceptions import BadRequestError, ExternalServiceError

logger = logging.getLogger(__name__)

GEOCODER_TIMEOUT_SECONDS = 10
SEARCH_COUNTRY = "in"
SEARCH_LIMIT = 5


async def _nominatim_get(path: str, params: Dict[str, Any]) -> Any:
    url = f"{settings.nominatim_base_url.rstrip('/')}/{path}"
    headers = {"User-Agent": settings.nominatim_user_agent}
    try:
        async with httpx.AsyncClient(timeout=GEOCODER_TIMEOUT_SECONDS) as client:
            response = await client.get(url, params={"format": "json", **params}, headers=headers)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 403:
            logger.error("Nominatim refused the request; check the User-Agent and request rate")
        logger.error(f"Nominatim {path} returned {e.response.status_code}")
        raise ExternalServiceError("Nominatim", f"upstream returned {e.response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Nominatim {path} request failed: {e}")
        raise ExternalServiceError("Nominatim", str(e))


async def search(q: Optional[str]) -> Any:
    if not q or not q.strip():
        raise BadRequestError('Query parameter "q" is required')
    return await _nominatim_get("search", {"q": q, "countrycodes": SEARCH_COUNTRY, "limit": SEARCH_LIMIT})


async def reverse(lat: Optional[str], lon: Optional[str]) -> Any:
    if not lat or not lon:
        raise BadRequestError('Parameters "lat" and "lon" are required')
    return await _nominatim_get("reverse", {"lat": lat, "lon": lon, "addressdetails": 1})
