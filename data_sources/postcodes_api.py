"""
Postcodes.io location resolver
Turns free-text UK postcodes into canonical locations. Never raises: anything other
than a resolved location is reported as None (not found).
"""

import re
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel

from data_sources import http_client
from data_sources.error_handling import APIError, parse_payload
from data_sources.models import Location
from data_sources.utils import validate_coordinates
from logging_config import get_logger, log_error

logger = get_logger(__name__)

POSTCODES_IO_URL = "https://api.postcodes.io/postcodes"

_WHITESPACE = re.compile(r"\s+")


class _PostcodeResult(BaseModel):
    postcode: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    admin_district: Optional[str] = None
    parish: Optional[str] = None
    lsoa: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    admin_ward: Optional[str] = None


class _PostcodeResponse(BaseModel):
    status: int
    result: Optional[_PostcodeResult] = None


def normalize_postcode(text: str) -> str:
    """Collapse whitespace runs, trim, and upper-case a postcode."""
    return _WHITESPACE.sub(" ", text or "").strip().upper()


async def lookup_postcode(postcode: str) -> Optional[Location]:
    """
    Resolve a postcode to a Location.

    Args:
        postcode: Free-text postcode, e.g. "sw1a  1aa"

    Returns:
        Location, or None when the postcode is unknown or the lookup failed
    """
    query = normalize_postcode(postcode)
    if not query:
        return None

    try:
        payload = await http_client.fetch_json(
            f"{POSTCODES_IO_URL}/{quote(query, safe='')}",
            api_name="postcodes_io",
        )
        response = parse_payload(_PostcodeResponse, payload, "postcodes_io")
    except APIError as e:
        if e.status_code == 404:
            logger.info(f"Postcode not found: {query}", extra={"postcode": query})
        else:
            log_error(logger, "geocoding", f"Postcode lookup failed: {e}",
                      postcode=query, api_name="postcodes_io", status_code=e.status_code)
        return None
    except Exception as e:
        logger.error(f"Postcode lookup error: {e}", extra={
            "api_name": "postcodes_io",
            "postcode": query,
        })
        return None

    r = response.result
    if response.status != 200 or r is None:
        return None
    # Terminated postcodes come back without coordinates
    if r.latitude is None or r.longitude is None or not validate_coordinates(r.latitude, r.longitude):
        return None

    return Location(
        postcode=r.postcode,
        lat=r.latitude,
        lng=r.longitude,
        admin_district=r.admin_district,
        parish=r.parish,
        lsoa=r.lsoa,
        region=r.region,
        country=r.country,
        admin_ward=r.admin_ward,
    )
