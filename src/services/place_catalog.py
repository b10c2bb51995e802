import googlemaps
import asyncio
import logging
from datetime import date, datetime
from typing import List, Dict, Optional, Tuple, Any
import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from src.models.place_models import Place, PlaceKind, PriceTier, Coordinates, RestaurantPool, DEFAULT_VISIT_MINUTES
from src.models.response_models import RestaurantDetailsResponse
from src.utils.config import get_settings
from src.services import places_cache

PLACES_API_URL = "https://places.googleapis.com/v1/places"

SEARCH_FIELD_MASK = (
    "places.id,places.displayName,places.formattedAddress,"
    "places.location,places.rating,places.userRatingCount,"
    "places.priceLevel,places.types,places.regularOpeningHours,"
    "places.googleMapsUri"
)

LANDMARK_TYPES = [
    "tourist_attraction", "museum", "park",
    "church", "synagogue", "mosque",
]

QUICK_SERVICE_TYPES = {
    "bakery", "cafe", "coffee_shop", "fast_food", "fast_food_restaurant",
    "dessert", "dessert_shop",
}

# Cap on Place searches for landmarks, to bound provider cost
MAX_LANDMARK_CANDIDATES = 15

DETAILS_FIELD_MASK = (
    "id,displayName,formattedAddress,location,rating,userRatingCount,"
    "priceLevel,types,regularOpeningHours,googleMapsUri,"
    "websiteUri,nationalPhoneNumber"
)


def estimate_visit_minutes(kind: PlaceKind, types: List[str], price_tier: Optional[PriceTier],
                           user_ratings_total: int = 0) -> int:
    """Estimate how long a stop takes.

    Quick service (cafe, bakery, fast food, dessert): 30 min.
    Casual dining ($$): 75 min. Fine dining ($$$): 100 min.
    Very popular places (> 2000 reviews) get 15 extra minutes for the wait.
    """
    if kind == PlaceKind.LANDMARK:
        return DEFAULT_VISIT_MINUTES["landmark"]

    minutes = DEFAULT_VISIT_MINUTES["restaurant"]
    if QUICK_SERVICE_TYPES.intersection(types or []):
        minutes = 30
    elif price_tier == PriceTier.EXPENSIVE:
        minutes = 100
    elif price_tier == PriceTier.MODERATE:
        minutes = 75

    if (user_ratings_total or 0) > 2000:
        minutes += 15
    return minutes


def _minutes_of(point: Dict[str, Any]) -> int:
    return int(point.get('hour', 0)) * 60 + int(point.get('minute', 0))


def google_weekday(visit_date: date) -> int:
    """Places API day numbering: 0 is Sunday."""
    return (visit_date.weekday() + 1) % 7


def is_open_during_window(opening_hours: Optional[Dict[str, Any]], weekday: int,
                          start_minutes: int, end_minutes: int) -> str:
    """Return "open", "closed" or "unknown" for a visit window on ``weekday``.

    ``opening_hours`` is a Places API v1 ``regularOpeningHours`` object.
    A window that overlaps any opening period of the day counts as open.
    """
    periods = (opening_hours or {}).get('periods')
    if not periods:
        return "unknown"

    # A single period without a close time means open around the clock
    if len(periods) == 1 and not periods[0].get('close'):
        return "open"

    todays = [p for p in periods if (p.get('open') or {}).get('day') == weekday]
    if not todays:
        return "unknown"

    for period in todays:
        open_at = _minutes_of(period['open'])
        close = period.get('close')
        close_at = _minutes_of(close) if close else 1440
        if close and close.get('day') != weekday and close_at <= open_at:
            # Overnight period
            if end_minutes > open_at or start_minutes < close_at:
                return "open"
        elif start_minutes < close_at and end_minutes > open_at:
            return "open"
    return "closed"


def filter_restaurants(places: List[Place], tier: PriceTier, min_rating: float) -> List[Place]:
    """Keep restaurants of exactly ``tier`` rated at least ``min_rating``."""
    return [
        p for p in places
        if p.price_tier == tier and p.rating is not None and p.rating >= min_rating
    ]


class PlaceCatalogService:
    """Candidate restaurants and landmarks for a city from Google Places API v1."""

    def __init__(self, api_key: str):
        self.client = googlemaps.Client(key=api_key)
        self.logger = logging.getLogger(__name__)
        self.api_key = api_key
        self.api_calls_made = 0
        settings = get_settings()
        self.http_client = httpx.AsyncClient(
            timeout=float(settings.REQUEST_TIMEOUT_SECONDS),
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=50)
        )
        self.use_enhanced_durations = settings.USE_ENHANCED_DURATIONS
        self._rate_limiter = asyncio.Semaphore(settings.MAX_CONCURRENT_PROVIDER_CALLS)

    async def close(self):
        """Close HTTP client connections."""
        await self.http_client.aclose()

    # --- Geocoding ---

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((googlemaps.exceptions.TransportError, googlemaps.exceptions.Timeout)),
        reraise=True
    )
    async def _geocode_with_retry(self, city: str) -> List[Dict]:
        loop = asyncio.get_event_loop()
        result = await loop.run_in_executor(None, self.client.geocode, city)
        self.api_calls_made += 1
        return result

    async def geocode_city(self, city: str) -> Optional[Coordinates]:
        """Coordinates of the city centre (cached for 24 hours), or None."""
        cached = places_cache.get_cached("geocode", city=city)
        if cached:
            return Coordinates(**cached)

        try:
            result = await self._geocode_with_retry(city)
        except Exception as e:
            self.logger.error(f"Error geocoding city {city}: {str(e)}")
            return None

        if not result:
            self.logger.warning(f"City not found: {city}")
            return None

        location = result[0]['geometry']['location']
        center = Coordinates(lat=location['lat'], lng=location['lng'])
        places_cache.set_cached("geocode", center.model_dump(), ttl_seconds=86400, city=city)
        return center

    # --- Places API v1 ---

    async def _post_places(self, endpoint: str, body: Dict[str, Any], operation: str) -> List[Dict]:
        """POST to a Places v1 endpoint with caching and rate limiting. Returns raw places."""
        cached = places_cache.get_cached(operation, **body)
        if cached is not None:
            return cached

        try:
            async with self._rate_limiter:
                resp = await self.http_client.post(
                    f"{PLACES_API_URL}:{endpoint}",
                    headers={"X-Goog-Api-Key": self.api_key, "X-Goog-FieldMask": SEARCH_FIELD_MASK},
                    json=body
                )
                self.api_calls_made += 1

            if resp.status_code != 200:
                self.logger.error(f"Places v1 {endpoint} error: {resp.status_code} {resp.text}")
                return []

            raw_places = resp.json().get("places", [])
            places_cache.set_cached(operation, raw_places, ttl_seconds=3600, **body)
            return raw_places

        except Exception as e:
            self.logger.error(f"Places v1 {endpoint} exception: {str(e)}")
            return []

    async def search_text(self, text_query: str, center: Optional[Coordinates] = None,
                          radius: Optional[int] = None, page_size: int = 20,
                          price_levels: Optional[List[str]] = None) -> List[Dict]:
        body: Dict[str, Any] = {"textQuery": text_query, "pageSize": page_size}
        if center and radius:
            body["locationBias"] = {
                "circle": {
                    "center": {"latitude": center.lat, "longitude": center.lng},
                    "radius": radius
                }
            }
        if price_levels:
            body["priceLevels"] = price_levels
        return await self._post_places("searchText", body, "places_search_text")

    async def search_nearby(self, center: Coordinates, radius: int, included_types: List[str],
                            max_results: int = 20) -> List[Dict]:
        body = {
            "includedTypes": included_types,
            "maxResultCount": max_results,
            "rankPreference": "POPULARITY",
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": center.lat, "longitude": center.lng},
                    "radius": radius
                }
            }
        }
        return await self._post_places("searchNearby", body, "places_search_nearby")

    def _transform_place_v1(self, place: Dict[str, Any], kind: PlaceKind) -> Optional[Place]:
        """Transform a Places API v1 place into a Place."""
        try:
            location = place.get('location') or {}
            coordinates = None
            if location.get('latitude') is not None and location.get('longitude') is not None:
                coordinates = Coordinates(lat=location['latitude'], lng=location['longitude'])

            price_tier = None
            if kind == PlaceKind.RESTAURANT:
                price_tier = PriceTier.from_google_price_level(place.get('priceLevel'))

            types = place.get('types', [])
            reviews = place.get('userRatingCount', 0) or 0
            visit_minutes = (
                estimate_visit_minutes(kind, types, price_tier, reviews)
                if self.use_enhanced_durations else DEFAULT_VISIT_MINUTES[kind.value]
            )
            return Place(
                place_id=place['id'],
                kind=kind,
                name=(place.get('displayName') or {}).get('text') or place['id'],
                address=place.get('formattedAddress') or "",
                coordinates=coordinates,
                estimated_visit_minutes=visit_minutes,
                price_tier=price_tier,
                rating=place.get('rating'),
                user_ratings_total=reviews,
                types=types,
                opening_hours=place.get('regularOpeningHours')
            )
        except Exception as e:
            self.logger.error(f"Transform place v1 error: {str(e)}")
            return None

    def _transform_all(self, raw_places: List[Dict], kind: PlaceKind) -> List[Place]:
        places = []
        for raw in raw_places:
            place = self._transform_place_v1(raw, kind)
            if place:
                places.append(place)
        return self._remove_duplicates(places)

    # --- Candidate pools ---

    async def fetch_restaurants(self, city: str, center: Optional[Coordinates], tier: PriceTier,
                                min_rating: float, radius: int = 3000) -> RestaurantPool:
        """Restaurants of ``tier`` rated at least ``min_rating``.

        When the price-restricted search leaves nothing, one more search runs
        without the price restriction and is filtered client-side. The
        cheapest tier never widens, so mislabelled expensive places do not
        show up in a cheap crawl.
        """
        places_cache.cleanup_expired()
        query = f"popular restaurants in {city}"
        raw = await self.search_text(query, center, radius, price_levels=tier.google_price_levels())
        places = filter_restaurants(self._transform_all(raw, PlaceKind.RESTAURANT), tier, min_rating)
        pool = RestaurantPool(places=places, search_attempts=1)

        if places or tier == PriceTier.cheapest():
            return pool

        self.logger.info(f"No {tier.value} restaurants in {city} rated {min_rating}+; retrying without price filter")
        raw = await self.search_text(query, center, radius)
        places = filter_restaurants(self._transform_all(raw, PlaceKind.RESTAURANT), tier, min_rating)
        if not places:
            self.logger.warning(f"No {tier.value} restaurants found in {city} after widening")
        return RestaurantPool(places=places, widened=True, search_attempts=2)

    async def fetch_landmarks(self, center: Coordinates, tier: PriceTier, radius: int = 5000) -> List[Place]:
        """Popular landmarks around ``center``; paid attractions above ``tier`` are skipped."""
        raw = await self.search_nearby(center, radius, LANDMARK_TYPES)
        affordable = []
        for place in raw[:MAX_LANDMARK_CANDIDATES]:
            level = PriceTier.from_google_price_level(place.get('priceLevel'))
            if level is not None and level.rank > tier.rank:
                continue
            affordable.append(place)
        return self._transform_all(affordable, PlaceKind.LANDMARK)

    async def search_restaurant(self, restaurant_name: str, city: str) -> Optional[Tuple[Place, Optional[str]]]:
        """Best match for a restaurant by name, with its Google Maps link."""
        raw = await self.search_text(f"{restaurant_name} restaurant in {city}", page_size=1)
        if not raw:
            return None
        place = self._transform_place_v1(raw[0], PlaceKind.RESTAURANT)
        if not place:
            return None
        return place, raw[0].get('googleMapsUri')

    async def get_place_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Raw Places v1 details for ``place_id`` (cached for 1 hour), or None."""
        place_id = place_id.removeprefix("places/")
        cached = places_cache.get_cached("place_details", place_id=place_id)
        if cached is not None:
            return cached

        try:
            async with self._rate_limiter:
                resp = await self.http_client.get(
                    f"{PLACES_API_URL}/{place_id}",
                    headers={"X-Goog-Api-Key": self.api_key, "X-Goog-FieldMask": DETAILS_FIELD_MASK}
                )
                self.api_calls_made += 1

            if resp.status_code == 404:
                self.logger.warning(f"Place not found: {place_id}")
                return None
            if resp.status_code != 200:
                self.logger.error(f"Places v1 details error: {resp.status_code} {resp.text}")
                return None

            details = resp.json()
            places_cache.set_cached("place_details", details, ttl_seconds=3600, place_id=place_id)
            return details

        except Exception as e:
            self.logger.error(f"Places v1 details exception for {place_id}: {str(e)}")
            return None

    async def get_restaurant_details(self, place_id: str) -> Optional[RestaurantDetailsResponse]:
        raw = await self.get_place_details(place_id)
        if not raw:
            return None
        place = self._transform_place_v1(raw, PlaceKind.RESTAURANT)
        if not place:
            return None
        return RestaurantDetailsResponse(
            place=place,
            website_uri=raw.get('websiteUri'),
            phone_number=raw.get('nationalPhoneNumber'),
            google_maps_uri=raw.get('googleMapsUri')
        )

    async def check_open_at(self, place_id: str, moment: datetime) -> Optional[Tuple[str, Optional[Dict[str, Any]]]]:
        """Opening status ("open", "closed", "unknown") at ``moment`` plus the raw hours; None if not found."""
        raw = await self.get_place_details(place_id)
        if not raw:
            return None
        opening_hours = raw.get('regularOpeningHours')
        minute = moment.hour * 60 + moment.minute
        status = is_open_during_window(opening_hours, google_weekday(moment.date()), minute, minute + 1)
        return status, opening_hours

    def _remove_duplicates(self, places: List[Place]) -> List[Place]:
        """Remove duplicate places based on place_id"""
        seen_ids = set()
        unique_places = []

        for place in places:
            if place.place_id not in seen_ids:
                seen_ids.add(place.place_id)
                unique_places.append(place)

        return unique_places
