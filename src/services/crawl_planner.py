import asyncio
import logging
from datetime import date, datetime
from typing import List, Sequence

from src.models.place_models import Place, PRICE_TIER_LABELS
from src.models.request_models import CrawlRequest
from src.models.response_models import CrawlResponse, ItineraryResponse, OptimizedRoute
from src.services.place_catalog import PlaceCatalogService, is_open_during_window, google_weekday
from src.services.travel_time_service import TravelTimeService
from src.services.travel_time_matrix import (
    TravelTimeMatrix, build_travel_time_matrix, build_distance_matrix, exclude_unlocated
)
from src.services.stop_selector import select_stops, MAX_STOPS
from src.services.route_optimizer import optimize_route
from src.services.itinerary_assembler import assemble_itinerary
from src.utils.config import get_settings
from src.utils.formatters import ResponseFormatter
from src.utils.validators import CrawlRequestValidator


class CityNotFoundError(LookupError):
    pass


class InvalidCrawlRequestError(ValueError):
    """Request failed CrawlRequestValidator checks; ``errors`` lists every problem."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


def plan_itinerary(restaurants: Sequence[Place], landmarks: Sequence[Place],
                   matrix: TravelTimeMatrix, budget_minutes: int,
                   max_stops: int = MAX_STOPS, optimize: bool = False) -> ItineraryResponse:
    """Select stops, optionally re-order them for less walking, and assemble the itinerary.

    ``matrix`` is indexed as ``[restaurants..., landmarks...]``.
    """
    if budget_minutes < 0:
        raise ValueError("Time budget cannot be negative")

    pool = list(restaurants) + list(landmarks)
    indices = select_stops(restaurants, landmarks, matrix, budget_minutes, max_stops)
    stops = [pool[i] for i in indices]
    stop_matrix = matrix.subset(indices)

    reordered = False
    if optimize and len(stops) > 1:
        result = optimize_route(stops, stop_matrix)
        if result.changed:
            stops = result.stops
            stop_matrix = stop_matrix.subset(result.order)
            reordered = True

    return assemble_itinerary(stops, stop_matrix, budget_minutes, route_optimized=reordered)


class CrawlPlannerService:
    def __init__(self, places_service: PlaceCatalogService, travel_service: TravelTimeService):
        self.places_service = places_service
        self.travel_service = travel_service
        self.logger = logging.getLogger(__name__)

    async def generate_crawl(self, request: CrawlRequest, crawl_id: str) -> CrawlResponse:
        """Build a food crawl for ``request``; an empty itinerary when nothing fits."""
        settings = get_settings()
        generated_at = datetime.utcnow()

        validation = CrawlRequestValidator.validate_request(request)
        if not validation['valid']:
            raise InvalidCrawlRequestError(validation['errors'])
        budget_minutes = validation['budget_minutes']

        self.logger.info(
            "[crawl] Start generation",
            extra={
                "crawl_id": crawl_id,
                "city": request.city,
                "price_tier": request.price_tier.value,
                "budget_minutes": budget_minutes
            }
        )

        # Step 1: Locate the city
        center = await self.places_service.geocode_city(request.city)
        if not center:
            raise CityNotFoundError(f"Could not find coordinates for {request.city}")

        # Step 2: Candidate pools, fetched concurrently
        min_rating = request.min_rating if request.min_rating is not None else settings.DEFAULT_MIN_RATING
        restaurant_pool, landmarks = await asyncio.gather(
            self.places_service.fetch_restaurants(
                request.city, center, request.price_tier, min_rating,
                radius=settings.RESTAURANT_SEARCH_RADIUS_METERS
            ),
            self.places_service.fetch_landmarks(
                center, request.price_tier, radius=settings.LANDMARK_SEARCH_RADIUS_METERS
            )
        )

        weekday = google_weekday(request.visit_date or date.today())
        window = (validation['start_minutes'], validation['end_minutes'])
        cap = settings.MAX_CANDIDATES_PER_CATEGORY
        restaurants = self._open_during(exclude_unlocated(restaurant_pool.places), weekday, *window)[:cap]
        # Famous restaurants also come back as tourist attractions; each place belongs to one pool
        restaurant_ids = {p.place_id for p in restaurants}
        landmarks = [p for p in exclude_unlocated(landmarks) if p.place_id not in restaurant_ids]
        landmarks = self._open_during(landmarks, weekday, *window)[:cap]

        notes: List[str] = []
        if restaurant_pool.widened:
            notes.append("Price filter was relaxed to find restaurants in the requested tier")
        if not restaurants:
            notes.append(f"No {request.price_tier.value} restaurants rated {min_rating}+ are open during the crawl")
        if not landmarks:
            notes.append("No open landmarks found nearby")

        # Step 3: Walking times
        matrix = await build_travel_time_matrix(restaurants + landmarks, self.travel_service)

        # Step 4: Selection, optional re-ordering, assembly
        # CPU-bound search; keep it off the event loop
        loop = asyncio.get_event_loop()
        itinerary = await loop.run_in_executor(
            None,
            lambda: plan_itinerary(
                restaurants, landmarks, matrix, budget_minutes,
                max_stops=min(request.max_stops, settings.MAX_STOPS),
                optimize=request.optimize_route
            )
        )
        if not itinerary.stops:
            self.logger.warning("[crawl] No stops fit the request", extra={"crawl_id": crawl_id})

        restaurant_stops = sum(1 for p in itinerary.places if p.is_restaurant)
        self.logger.info(
            "[crawl] Generation finished",
            extra={
                "crawl_id": crawl_id,
                "stops": len(itinerary.stops),
                "route_optimized": itinerary.route_optimized,
                "elapsed_seconds": (datetime.utcnow() - generated_at).total_seconds()
            }
        )

        return CrawlResponse(
            crawl_id=crawl_id,
            generated_at=generated_at,
            city=request.city,
            price_tier=request.price_tier,
            start_time=request.start_time,
            end_time=request.end_time,
            itinerary=itinerary,
            price_range=ResponseFormatter.format_crawl_price_range(request.price_tier, restaurant_stops),
            price_tier_label=PRICE_TIER_LABELS[request.price_tier],
            total_time_display=ResponseFormatter.format_duration(itinerary.total_minutes),
            restaurant_pool_widened=restaurant_pool.widened,
            candidate_counts={"restaurants": len(restaurants), "landmarks": len(landmarks)},
            notes=notes
        )

    async def optimize_stop_order(self, stops: List[Place]) -> OptimizedRoute:
        """Re-order caller-chosen stops by walking distance. Every stop needs coordinates."""
        meters = await build_distance_matrix(stops, self.travel_service)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, optimize_route, stops, meters)

    def _open_during(self, places: List[Place], weekday: int, start_minutes: int, end_minutes: int) -> List[Place]:
        """Drop places known to be closed for the whole window; unknown hours are kept."""
        kept = []
        for place in places:
            status = is_open_during_window(place.opening_hours, weekday, start_minutes, end_minutes)
            if status == "closed":
                self.logger.debug(f"Skipping {place.name}: closed during the crawl")
                continue
            kept.append(place)
        return kept
