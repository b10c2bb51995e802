import pytest

from src.models.place_models import PriceTier
from src.utils.formatters import ResponseFormatter
from src.utils.validators import CrawlRequestValidator


@pytest.mark.parametrize("value,expected", [
    ("09:30 AM", 570),
    ("12:00 AM", 0),
    ("12:15 PM", 735),
    ("11:59pm", 1439),
    ("21:30", 1290),
    ("0:00", 0),
    ("13:00 PM", None),
    ("24:00", None),
    ("noon", None),
    ("", None),
])
def test_parse_clock_time(value, expected):
    assert ResponseFormatter.parse_clock_time(value) == expected


@pytest.mark.parametrize("city,valid", [
    ("Paris, France", True),
    ("St. John's", True),
    ("São Paulo", True),
    ("Queens (NY)", True),
    ("1st Avenue", False),
    ("", False),
    ("X", False),
])
def test_validate_city(city, valid):
    assert CrawlRequestValidator.validate_city(city) is valid


def test_time_window_budget():
    window = CrawlRequestValidator.validate_time_window("11:00 AM", "15:30")
    assert window["valid"]
    assert window["budget_minutes"] == 270
    assert (window["start_minutes"], window["end_minutes"]) == (660, 930)


def test_time_window_errors():
    window = CrawlRequestValidator.validate_time_window("soon", "later")
    assert window["errors"] == ["Invalid start time: soon", "Invalid end time: later"]
    assert window["budget_minutes"] == 0


def test_format_duration():
    assert ResponseFormatter.format_duration(0) == "0h 0m"
    assert ResponseFormatter.format_duration(154) == "2h 34m"


@pytest.mark.parametrize("tier,count,expected", [
    (PriceTier.INEXPENSIVE, 3, "Up to $30"),
    (PriceTier.MODERATE, 2, "$20–$50"),
    (PriceTier.EXPENSIVE, 1, "$25–$45"),
    (PriceTier.EXPENSIVE, 0, "Free"),
])
def test_format_crawl_price_range(tier, count, expected):
    assert ResponseFormatter.format_crawl_price_range(tier, count) == expected
