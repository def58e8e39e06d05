"""Data models for nearby healthcare places."""

from pydantic import BaseModel, ConfigDict, Field

# Place types the finder understands, mapped to OpenStreetMap amenity tags
AMENITY_TAGS: dict[str, list[str]] = {
    "hospital": ["hospital"],
    "clinic": ["clinic", "doctors"],
    "pharmacy": ["pharmacy"],
    "dentist": ["dentist"],
    "veterinary": ["veterinary"],
    "nursing_home": ["nursing_home"],
    "laboratory": ["laboratory", "medical_laboratory"],
    "physiotherapist": ["physiotherapist"],
    "optician": ["optician"],
    "medical_supply": ["medical_supply"],
}
# Used for an unknown type
DEFAULT_AMENITY_TAGS = ["hospital", "clinic", "doctors"]

DEFAULT_PLACE_TYPE = "hospital"
DEFAULT_RADIUS_METERS = 5000
UNKNOWN_DISTANCE_KM = 999.0
NO_ADDRESS = "Address not available"


class Place(BaseModel):
    """A healthcare place near the caller, serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(description="'osm-' plus the OpenStreetMap element id")
    name: str
    address: str = NO_ADDRESS
    lat: float
    lng: float
    rating: float = 0
    total_ratings: int = Field(default=0, alias="totalRatings")
    is_open: bool | None = Field(default=None, alias="isOpen")
    types: list[str] = Field(default_factory=list)
    phone: str | None = None
    website: str | None = None
    emergency: bool = False
    distance: float = Field(default=UNKNOWN_DISTANCE_KM, description="Kilometres from the search point")


class FindHospitalsRequest(BaseModel):
    """Body of the find-hospitals function.

    lat and lng are optional here so a missing coordinate can be answered
    with the function's own error body.
    """

    lat: float | None = None
    lng: float | None = None
    radius: int = Field(default=DEFAULT_RADIUS_METERS, gt=0)
    type: str = DEFAULT_PLACE_TYPE
