"""Tests for the Overpass place finder."""
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import overpass_handler
from healthguard.errors import PlaceLookupError
from healthguard.places import OverpassPlaceFinder, build_query, distance_km, format_address
from healthguard.places.models import NO_ADDRESS, UNKNOWN_DISTANCE_KM

LAT, LNG = 28.61, 77.21


def sent_query(request: httpx.Request) -> str:
    return parse_qs(request.content.decode())["data"][0]


@pytest.fixture
async def make_finder():
    """Build finders backed by a fake Overpass handler."""
    finders: list[OverpassPlaceFinder] = []

    def _make(handler) -> OverpassPlaceFinder:
        finder = OverpassPlaceFinder("https://overpass.test/api/interpreter", transport=httpx.MockTransport(handler))
        finders.append(finder)
        return finder

    yield _make

    for finder in finders:
        await finder.close()


class TestQuery:
    """Tests for Overpass query building."""

    def test_type_maps_to_amenity_tags(self):
        """Test a clinic search also looks for doctors."""
        query = build_query(LAT, LNG, 2000, "clinic")

        assert 'node["amenity"="clinic"](around:2000,28.61,77.21);' in query
        assert 'node["amenity"="doctors"](around:2000,28.61,77.21);' in query
        assert 'way["amenity"="hospital"](around:2000,28.61,77.21);' in query
        assert query.startswith("[out:json][timeout:25];")
        assert query.endswith("out center body;")

    def test_unknown_type_uses_default_tags(self):
        """Test an unknown type searches hospitals, clinics and doctors."""
        query = build_query(LAT, LNG, 5000, "spa")

        for tag in ("hospital", "clinic", "doctors"):
            assert f'node["amenity"="{tag}"]' in query


class TestHelpers:
    """Tests for address formatting and distances."""

    def test_address_parts(self):
        """Test address tags are joined in order."""
        tags = {"addr:street": "Ring Road", "addr:housenumber": "12", "addr:postcode": "110001"}

        assert format_address(tags) == "12, Ring Road, 110001"

    @pytest.mark.parametrize("tags,expected", [
        (None, NO_ADDRESS),
        ({}, NO_ADDRESS),
        ({"address": "Near the station"}, "Near the station"),
    ])
    def test_address_fallbacks(self, tags, expected):
        """Test the free-text address and the placeholder."""
        assert format_address(tags) == expected

    def test_distance(self):
        """Test the great-circle distance between Delhi and Mumbai."""
        assert 1100 < distance_km(28.6139, 77.2090, 19.0760, 72.8777) < 1200
        assert distance_km(LAT, LNG, LAT, LNG) == 0.0

    def test_unknown_distance(self):
        """Test a missing coordinate sorts last."""
        assert distance_km(LAT, LNG, None, LNG) == UNKNOWN_DISTANCE_KM


class TestFind:
    """Tests for OverpassPlaceFinder.find."""

    async def test_places_nearest_first(self, make_finder):
        """Test elements become places sorted by distance."""
        requests: list[httpx.Request] = []
        finder = make_finder(overpass_handler(requests))

        places = await finder.find(LAT, LNG)

        assert [p.id for p in places] == ["osm-2", "osm-1"]
        nearest, city = places
        assert nearest.name == "Hospital 2"
        assert nearest.address == NO_ADDRESS
        assert nearest.types == ["hospital", "hospital"]
        assert nearest.distance == 0.01
        assert city.name == "City Hospital"
        assert city.address == "Main Road, Delhi"
        assert city.emergency
        assert city.phone == "+91 11 2345 6789"
        assert city.distance == 1.11

    async def test_request_shape(self, make_finder):
        """Test the query is form-posted with the requested type and radius."""
        requests: list[httpx.Request] = []
        finder = make_finder(overpass_handler(requests))

        await finder.find(LAT, LNG, radius=1500, place_type="pharmacy")

        request = requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert 'node["amenity"="pharmacy"](around:1500,28.61,77.21);' in sent_query(request)

    async def test_camel_case_serialization(self, make_finder):
        """Test places serialize with the function's key names."""
        finder = make_finder(overpass_handler([]))

        [place, _] = await finder.find(LAT, LNG)
        data = place.model_dump(by_alias=True)

        assert data["totalRatings"] == 0
        assert data["isOpen"] is None
        assert {"id", "name", "address", "lat", "lng", "distance"} <= data.keys()

    async def test_error_status(self, make_finder):
        """Test an Overpass error status raises PlaceLookupError."""
        finder = make_finder(overpass_handler([], status=504))

        with pytest.raises(PlaceLookupError, match="504"):
            await finder.find(LAT, LNG)

    async def test_unreachable(self, make_finder):
        """Test a connection failure raises PlaceLookupError."""
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        finder = make_finder(refuse)

        with pytest.raises(PlaceLookupError, match="unreachable"):
            await finder.find(LAT, LNG)
