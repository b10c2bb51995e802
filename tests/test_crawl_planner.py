import asyncio
import threading
from datetime import date
import pytest

from src.models.place_models import RestaurantPool, Coordinates
from src.models.request_models import CrawlRequest
from src.services import crawl_planner
from src.services.crawl_planner import (
    CrawlPlannerService, CityNotFoundError, InvalidCrawlRequestError, plan_itinerary
)
from src.services.travel_time_matrix import TravelTimeMatrix

CENTER = Coordinates(lat=37.7750, lng=-122.4190)
MONDAY = date(2026, 10, 19)


class FakePlaces:
    def __init__(self, restaurants, landmarks, center=CENTER, widened=False):
        self.restaurants = restaurants
        self.landmarks = landmarks
        self.center = center
        self.widened = widened
        self.restaurant_calls = []

    async def geocode_city(self, city):
        return self.center

    async def fetch_restaurants(self, city, center, tier, min_rating, radius=3000):
        self.restaurant_calls.append((city, tier, min_rating))
        return RestaurantPool(places=self.restaurants, widened=self.widened,
                              search_attempts=2 if self.widened else 1)

    async def fetch_landmarks(self, center, tier, radius=5000):
        return self.landmarks


@pytest.fixture
def candidates(restaurant, landmark):
    evening_only = {"periods": [{"open": {"day": 1, "hour": 18, "minute": 0},
                                 "close": {"day": 1, "hour": 23, "minute": 0}}]}
    restaurants = [
        restaurant("r0", lat=37.7750),
        restaurant("closed_at_noon", lat=37.7752, opening_hours=evening_only),
        restaurant("r1", lat=37.7760),
        restaurant("no_location", lat=None),
    ]
    landmarks = [landmark("l0", lat=37.7755), landmark("l1", lat=37.7770)]
    return restaurants, landmarks


def crawl_request(**overrides):
    fields = dict(city="San Francisco", price_tier="$$", start_time="12:00 PM", end_time="04:00 PM",
                  visit_date=MONDAY, optimize_route=False)
    fields.update(overrides)
    return CrawlRequest(**fields)


def test_generate_crawl_end_to_end(candidates, grid_provider):
    restaurants, landmarks = candidates
    planner = CrawlPlannerService(FakePlaces(restaurants, landmarks), grid_provider())

    response = asyncio.run(planner.generate_crawl(crawl_request(), "crawl-1"))

    itinerary = response.itinerary
    assert [p.place_id for p in itinerary.places] == ["r0", "l0", "r1", "l1"]
    assert itinerary.walking_minutes_between == [1, 1, 2]
    assert itinerary.total_minutes == 154
    assert itinerary.total_budget_minutes == 240
    assert itinerary.route == "Start at r0 → l0 → r1 → l1"
    assert response.candidate_counts == {"restaurants": 2, "landmarks": 2}
    assert response.price_range == "$20–$50"
    assert response.price_tier_label == "$10–$25"
    assert response.total_time_display == "2h 34m"
    assert response.crawl_id == "crawl-1"
    assert response.restaurant_pool_widened is False


def test_widened_pool_is_reported(candidates, grid_provider):
    restaurants, landmarks = candidates
    places = FakePlaces(restaurants, landmarks, widened=True)
    planner = CrawlPlannerService(places, grid_provider())

    response = asyncio.run(planner.generate_crawl(crawl_request(min_rating=4.5), "crawl-2"))

    assert response.restaurant_pool_widened is True
    assert any("relaxed" in note for note in response.notes)
    assert places.restaurant_calls[0][2] == 4.5


def test_unknown_city_raises(grid_provider):
    planner = CrawlPlannerService(FakePlaces([], [], center=None), grid_provider())
    with pytest.raises(CityNotFoundError):
        asyncio.run(planner.generate_crawl(crawl_request(city="Atlantis"), "crawl-3"))


def test_invalid_window_is_rejected_before_any_lookup(grid_provider):
    provider = grid_provider()
    planner = CrawlPlannerService(FakePlaces([], []), provider)

    with pytest.raises(InvalidCrawlRequestError) as excinfo:
        asyncio.run(planner.generate_crawl(crawl_request(end_time="11:00 AM"), "crawl-4"))

    assert excinfo.value.errors == ["End time must be after start time"]
    assert isinstance(excinfo.value, ValueError)
    assert provider.calls == 0


def test_travel_provider_failure_keeps_seed_only(candidates, static_provider):
    restaurants, landmarks = candidates
    planner = CrawlPlannerService(FakePlaces(restaurants, landmarks),
                                  static_provider(error=RuntimeError("quota")))

    response = asyncio.run(planner.generate_crawl(crawl_request(), "crawl-5"))

    assert [p.place_id for p in response.itinerary.places] == ["r0"]
    assert response.itinerary.walking_minutes_between == []


def test_no_candidates_gives_empty_itinerary(grid_provider):
    planner = CrawlPlannerService(FakePlaces([], []), grid_provider())

    response = asyncio.run(planner.generate_crawl(crawl_request(), "crawl-6"))

    assert response.itinerary.stops == []
    assert response.price_range == "Free"
    assert len(response.notes) == 2


def test_plan_itinerary_reorders_when_optimizing(restaurant, landmark):
    restaurants = [restaurant("r0"), restaurant("r1")]
    landmarks = [landmark("l0")]
    matrix = TravelTimeMatrix([
        [0, 1, 10],
        [1, 0, 10],
        [10, 10, 0],
    ])

    plain = plan_itinerary(restaurants, landmarks, matrix, budget_minutes=150)
    optimized = plan_itinerary(restaurants, landmarks, matrix, budget_minutes=150, optimize=True)

    assert [p.place_id for p in plain.places] == ["r0", "l0", "r1"]
    assert plain.total_walking_minutes == 20
    assert [p.place_id for p in optimized.places] == ["r0", "r1", "l0"]
    assert optimized.walking_minutes_between == [1, 10]
    assert optimized.route_optimized is True
    assert optimized.total_minutes <= 150


def test_plan_itinerary_rejects_negative_budget(restaurant):
    with pytest.raises(ValueError):
        plan_itinerary([restaurant("r0")], [], TravelTimeMatrix([[0]]), budget_minutes=-1)


def test_optimize_stop_order_uses_walking_distance(restaurant, grid_provider):
    stops = [restaurant("a", lat=37.770), restaurant("c", lat=37.790), restaurant("b", lat=37.780)]
    planner = CrawlPlannerService(FakePlaces([], []), grid_provider())

    result = asyncio.run(planner.optimize_stop_order(stops))

    assert [s.place_id for s in result.stops] == ["a", "b", "c"]
    assert result.changed is True


def test_place_in_both_pools_is_visited_once(restaurant, landmark, grid_provider):
    restaurants = [restaurant("ChIJfamous", lat=37.7750), restaurant("r1", lat=37.7760)]
    landmarks = [landmark("ChIJfamous", lat=37.7750), landmark("l0", lat=37.7755)]
    planner = CrawlPlannerService(FakePlaces(restaurants, landmarks), grid_provider())

    response = asyncio.run(planner.generate_crawl(crawl_request(), "crawl-7"))

    ids = [p.place_id for p in response.itinerary.places]
    assert ids == ["ChIJfamous", "l0", "r1"]
    assert len(ids) == len(set(ids))
    assert response.candidate_counts == {"restaurants": 2, "landmarks": 1}


def test_planning_runs_off_the_event_loop_thread(candidates, grid_provider, monkeypatch):
    restaurants, landmarks = candidates
    threads = []
    real_plan = crawl_planner.plan_itinerary

    def recording_plan(*args, **kwargs):
        threads.append(threading.current_thread())
        return real_plan(*args, **kwargs)

    monkeypatch.setattr(crawl_planner, "plan_itinerary", recording_plan)
    planner = CrawlPlannerService(FakePlaces(restaurants, landmarks), grid_provider())

    asyncio.run(planner.generate_crawl(crawl_request(optimize_route=True), "crawl-8"))

    assert len(threads) == 1
    assert threads[0] is not threading.main_thread()
