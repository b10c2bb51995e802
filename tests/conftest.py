import pytest
from src.models.place_models import Place, PlaceKind, PriceTier, Coordinates
from src.services import places_cache


class StaticTravelProvider:
    """Travel-time provider returning fixed elements (or raising)."""

    def __init__(self, elements=None, error=None):
        self.elements = elements
        self.error = error
        self.calls = 0

    async def fetch_walking_elements(self, coordinates):
        self.calls += 1
        if self.error:
            raise self.error
        return self.elements


class GridTravelProvider:
    """Walking times derived from coordinate offsets: 0.001 degree = 80 seconds."""

    SECONDS_PER_DEGREE = 80000
    METERS_PER_DEGREE = 111000

    def __init__(self, unreachable=()):
        self.unreachable = set(unreachable)
        self.calls = 0

    async def fetch_walking_elements(self, coordinates):
        self.calls += 1
        elements = []
        for i, (lat1, lng1) in enumerate(coordinates):
            row = []
            for j, (lat2, lng2) in enumerate(coordinates):
                if (i, j) in self.unreachable:
                    row.append(None)
                    continue
                degrees = abs(lat1 - lat2) + abs(lng1 - lng2)
                row.append({
                    "duration_seconds": round(degrees * self.SECONDS_PER_DEGREE),
                    "distance_meters": round(degrees * self.METERS_PER_DEGREE)
                })
            elements.append(row)
        return elements


@pytest.fixture
def restaurant():
    """Factory for restaurant places"""
    def make(place_id, lat=40.7300, lng=-74.0000, price_tier=PriceTier.MODERATE, **kwargs):
        return Place(
            place_id=place_id,
            kind=PlaceKind.RESTAURANT,
            name=kwargs.pop("name", place_id),
            coordinates=Coordinates(lat=lat, lng=lng) if lat is not None else None,
            price_tier=price_tier,
            **kwargs
        )
    return make


@pytest.fixture
def landmark():
    """Factory for landmark places"""
    def make(place_id, lat=40.7300, lng=-74.0000, **kwargs):
        return Place(
            place_id=place_id,
            kind=PlaceKind.LANDMARK,
            name=kwargs.pop("name", place_id),
            coordinates=Coordinates(lat=lat, lng=lng) if lat is not None else None,
            **kwargs
        )
    return make


@pytest.fixture
def static_provider():
    return StaticTravelProvider


@pytest.fixture
def grid_provider():
    return GridTravelProvider


@pytest.fixture(autouse=True)
def empty_cache():
    places_cache.clear_cache()
    yield
    places_cache.clear_cache()
