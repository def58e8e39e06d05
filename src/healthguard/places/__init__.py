"""Nearby healthcare places (hospitals, clinics, pharmacies) from OpenStreetMap."""

from .models import AMENITY_TAGS, FindHospitalsRequest, Place
from .overpass import OverpassPlaceFinder, build_query, distance_km, format_address

__all__ = [
    "AMENITY_TAGS",
    "FindHospitalsRequest",
    "OverpassPlaceFinder",
    "Place",
    "build_query",
    "distance_km",
    "format_address",
]
