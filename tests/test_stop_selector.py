import random
import pytest

from src.services.stop_selector import select_stops
from src.services.travel_time_matrix import TravelTimeMatrix
from src.services.crawl_planner import plan_itinerary


def test_seed_walks_to_nearest_feasible_restaurant(restaurant):
    """Seed plus A (5 min), B (3 min), C (unreachable): only B fits next to the seed."""
    restaurants = [restaurant("seed"), restaurant("a"), restaurant("b"), restaurant("c")]
    matrix = TravelTimeMatrix([
        [0, 5, 3, None],
        [5, 0, 4, None],
        [3, 4, 0, None],
        [None, None, None, 0],
    ])

    itinerary = plan_itinerary(restaurants, [], matrix, budget_minutes=45 + 45 + 5)

    assert [p.place_id for p in itinerary.places] == ["seed", "b"]
    assert itinerary.walking_minutes_between == [3]
    assert itinerary.total_walking_minutes == 3
    assert itinerary.total_visit_minutes == 90


def test_two_restaurants_without_landmarks(restaurant):
    restaurants = [restaurant("first"), restaurant("second")]
    matrix = TravelTimeMatrix([[0, 10], [10, 0]])

    itinerary = plan_itinerary(restaurants, [], matrix, budget_minutes=240)

    assert [p.place_id for p in itinerary.places] == ["first", "second"]
    assert itinerary.walking_minutes_between == [10]


def test_seed_is_kept_when_budget_is_below_its_visit(restaurant, landmark):
    restaurants = [restaurant("seed"), restaurant("other")]
    landmarks = [landmark("park")]
    matrix = TravelTimeMatrix([
        [0, 1, 1],
        [1, 0, 1],
        [1, 1, 0],
    ])

    itinerary = plan_itinerary(restaurants, landmarks, matrix, budget_minutes=30)

    assert [p.place_id for p in itinerary.places] == ["seed"]
    assert itinerary.walking_minutes_between == []
    assert itinerary.total_walking_minutes == 0


def test_empty_pool_gives_empty_selection():
    assert select_stops([], [], TravelTimeMatrix([]), budget_minutes=240) == []


def test_landmarks_only_seed_with_first_landmark(landmark):
    landmarks = [landmark("museum"), landmark("park")]
    matrix = TravelTimeMatrix([[0, 4], [4, 0]])
    assert select_stops([], landmarks, matrix, budget_minutes=120) == [0, 1]


def test_categories_alternate_even_when_other_category_is_closer(restaurant, landmark):
    restaurants = [restaurant("r0"), restaurant("r1")]
    landmarks = [landmark("l0"), landmark("l1")]
    # r0 -> r1 is 1 minute, but a landmark must come next
    matrix = TravelTimeMatrix([
        [0, 1, 8, 9],
        [1, 0, 7, 6],
        [8, 7, 0, 5],
        [9, 6, 5, 0],
    ])

    indices = select_stops(restaurants, landmarks, matrix, budget_minutes=600)

    assert indices == [0, 2, 1, 3]


def test_empty_category_hands_turn_to_the_other(restaurant, landmark):
    restaurants = [restaurant("r0"), restaurant("r1"), restaurant("r2")]
    landmarks = [landmark("l0")]
    matrix = TravelTimeMatrix([
        [0, 2, 3, 4],
        [2, 0, 2, 3],
        [3, 2, 0, 1],
        [4, 3, 1, 0],
    ])

    indices = select_stops(restaurants, landmarks, matrix, budget_minutes=600)

    # l0 first, then restaurants only: nearest to l0 is r2, then r1
    assert indices == [0, 3, 2, 1]


def test_infeasible_wanted_category_ends_selection(restaurant, landmark):
    restaurants = [restaurant("r0"), restaurant("r1")]
    landmarks = [landmark("far")]
    matrix = TravelTimeMatrix([
        [0, 1, None],
        [1, 0, None],
        [None, None, 0],
    ])

    assert select_stops(restaurants, landmarks, matrix, budget_minutes=600) == [0]


def test_ties_go_to_first_candidate_in_input_order(restaurant, landmark):
    restaurants = [restaurant("r0")]
    landmarks = [landmark("l0"), landmark("l1")]
    matrix = TravelTimeMatrix([
        [0, 5, 5],
        [5, 0, 2],
        [5, 2, 0],
    ])

    assert select_stops(restaurants, landmarks, matrix, budget_minutes=600)[:2] == [0, 1]


def test_max_stops_caps_selection(restaurant):
    restaurants = [restaurant(f"r{i}") for i in range(5)]
    matrix = TravelTimeMatrix([[0 if i == j else 1 for j in range(5)] for i in range(5)])

    assert len(select_stops(restaurants, [], matrix, budget_minutes=10000, max_stops=3)) == 3


def test_matrix_size_mismatch_is_rejected(restaurant):
    with pytest.raises(ValueError):
        select_stops([restaurant("r0"), restaurant("r1")], [], TravelTimeMatrix([[0]]), budget_minutes=60)


def _random_case(seed, restaurant, landmark):
    rng = random.Random(seed)
    restaurants = [restaurant(f"r{i}", estimated_visit_minutes=rng.choice([30, 45, 75, 100]))
                   for i in range(rng.randint(0, 6))]
    landmarks = [landmark(f"l{i}") for i in range(rng.randint(0, 6))]
    n = len(restaurants) + len(landmarks)
    rows = [
        [0 if i == j else (None if rng.random() < 0.15 else rng.randint(1, 30)) for j in range(n)]
        for i in range(n)
    ]
    budget = rng.randint(0, 480)
    return restaurants, landmarks, TravelTimeMatrix(rows), budget


@pytest.mark.parametrize("seed", range(25))
def test_selection_respects_budget_without_duplicates(seed, restaurant, landmark):
    restaurants, landmarks, matrix, budget = _random_case(seed, restaurant, landmark)

    itinerary = plan_itinerary(restaurants, landmarks, matrix, budget)
    ids = [p.place_id for p in itinerary.places]

    assert len(ids) == len(set(ids))
    assert len(ids) <= 10
    if len(ids) >= 2:
        assert None not in itinerary.walking_minutes_between
        assert itinerary.total_walking_minutes + itinerary.total_visit_minutes <= budget
    if restaurants or landmarks:
        assert ids[0] == (restaurants or landmarks)[0].place_id


@pytest.mark.parametrize("seed", range(5))
def test_selection_is_deterministic(seed, restaurant, landmark):
    restaurants, landmarks, matrix, budget = _random_case(seed, restaurant, landmark)
    first = select_stops(restaurants, landmarks, matrix, budget)
    second = select_stops(restaurants, landmarks, matrix, budget)
    assert first == second
