"""Nearby healthcare places from the OpenStreetMap Overpass API.

Hides the Overpass query language and the shape of OSM elements; callers
get Place models sorted by distance.
"""

import logging
import math
from typing import Any

import httpx

from ..config import OVERPASS_URL, REQUEST_TIMEOUT
from ..errors import PlaceLookupError
from .models import (
    AMENITY_TAGS,
    DEFAULT_AMENITY_TAGS,
    DEFAULT_PLACE_TYPE,
    DEFAULT_RADIUS_METERS,
    NO_ADDRESS,
    UNKNOWN_DISTANCE_KM,
    Place,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
QUERY_TIMEOUT = 25  # Seconds the Overpass server may spend on a query


def build_query(lat: float, lng: float, radius: int, place_type: str) -> str:
    """Overpass QL for amenity nodes of place_type plus hospital areas."""
    around = f"(around:{radius},{lat},{lng})"
    nodes = "".join(
        f'node["amenity"="{tag}"]{around};'
        for tag in AMENITY_TAGS.get(place_type, DEFAULT_AMENITY_TAGS)
    )
    return (
        f"[out:json][timeout:{QUERY_TIMEOUT}];\n"
        f"(\n"
        f"  {nodes}\n"
        f'  way["amenity"="hospital"]{around};\n'
        f'  relation["amenity"="hospital"]{around};\n'
        f");\n"
        f"out center body;"
    )


def format_address(tags: dict[str, str] | None) -> str:
    if not tags:
        return NO_ADDRESS
    parts = [
        tags.get(key)
        for key in ("addr:housenumber", "addr:street", "addr:city", "addr:postcode")
    ]
    parts = [part for part in parts if part]
    return ", ".join(parts) if parts else tags.get("address") or NO_ADDRESS


def distance_km(lat1: float | None, lng1: float | None, lat2: float | None, lng2: float | None) -> float:
    """Great-circle distance in kilometres, rounded to two decimals."""
    if None in (lat1, lng1, lat2, lng2):
        return UNKNOWN_DISTANCE_KM
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return round(EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a)), 2)


def to_place(element: dict[str, Any], index: int, place_type: str, lat: float, lng: float) -> Place | None:
    """Convert one OSM element; None when it has no coordinates."""
    center = element.get("center") or {}
    place_lat = element.get("lat", center.get("lat"))
    place_lng = element.get("lon", center.get("lon"))
    if place_lat is None or place_lng is None:
        return None

    tags: dict[str, str] = element.get("tags") or {}
    fallback_name = f"{place_type[:1].upper()}{place_type[1:]} {index + 1}"
    return Place(
        id=f"osm-{element.get('id')}",
        name=tags.get("name") or tags.get("name:en") or fallback_name,
        address=format_address(tags),
        lat=place_lat,
        lng=place_lng,
        types=[t for t in (tags.get("amenity") or place_type, tags.get("healthcare")) if t],
        phone=tags.get("phone") or tags.get("contact:phone"),
        website=tags.get("website") or tags.get("contact:website"),
        emergency=tags.get("emergency") == "yes",
        distance=distance_km(lat, lng, place_lat, place_lng),
    )


class OverpassPlaceFinder:
    """Searches the Overpass API for healthcare places.

    Supports async context manager protocol:
        async with OverpassPlaceFinder() as finder:
            places = await finder.find(28.61, 77.21, place_type="pharmacy")
    """

    def __init__(self, url: str = OVERPASS_URL, timeout: float = REQUEST_TIMEOUT, **client_kwargs: Any):
        """Initialize the finder.

        Args:
            url: Overpass interpreter endpoint
            timeout: httpx timeout for the whole request
            **client_kwargs: Additional kwargs for httpx.AsyncClient
        """
        self._url = url
        self._client = httpx.AsyncClient(timeout=timeout, **client_kwargs)

    async def find(
        self,
        lat: float,
        lng: float,
        radius: int = DEFAULT_RADIUS_METERS,
        place_type: str = DEFAULT_PLACE_TYPE,
    ) -> list[Place]:
        """Find places of place_type within radius metres, nearest first.

        Raises:
            PlaceLookupError: If Overpass is unreachable or answers with an error
        """
        logger.info("Searching for %s near %s, %s within %sm", place_type, lat, lng, radius)
        try:
            response = await self._client.post(
                self._url,
                data={"data": build_query(lat, lng, radius, place_type)},
            )
        except httpx.HTTPError as e:
            raise PlaceLookupError(f"Overpass API unreachable: {e!r}") from e
        if response.is_error:
            logger.error("Overpass API error: %s", response.status_code)
            raise PlaceLookupError(f"Overpass API error: {response.status_code}")

        elements = response.json().get("elements") or []
        logger.info("Found %d results", len(elements))
        places = [
            place
            for index, element in enumerate(elements)
            if (place := to_place(element, index, place_type, lat, lng)) is not None
        ]
        places.sort(key=lambda p: p.distance)
        return places

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "OverpassPlaceFinder":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
