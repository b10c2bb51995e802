import re
from typing import List, Dict, Any

from src.models.request_models import CrawlRequest
from src.utils.formatters import ResponseFormatter

class CrawlRequestValidator:
    """Validator for food crawl requests"""

    @staticmethod
    def validate_city(city: str) -> bool:
        """Validate city string (allow common punctuation like commas)."""
        if not city or len(city.strip()) < 2:
            return False
        # e.g., "Paris, France", "St. John's", "Queens (NY)"
        pattern = r"^[^\W\d_][\w\s\-\'\.,&()/]*$"
        return re.match(pattern, city.strip()) is not None

    @staticmethod
    def validate_time_window(start_time: str, end_time: str) -> Dict[str, Any]:
        """Validate the crawl's time window and derive the time budget"""
        errors = []
        start = ResponseFormatter.parse_clock_time(start_time)
        end = ResponseFormatter.parse_clock_time(end_time)

        if start is None:
            errors.append(f"Invalid start time: {start_time}")
        if end is None:
            errors.append(f"Invalid end time: {end_time}")

        budget_minutes = 0
        if start is not None and end is not None:
            if end <= start:
                errors.append("End time must be after start time")
            else:
                budget_minutes = end - start

        return {
            'valid': len(errors) == 0,
            'errors': errors,
            'start_minutes': start,
            'end_minutes': end,
            'budget_minutes': budget_minutes
        }

    @classmethod
    def validate_request(cls, request: CrawlRequest) -> Dict[str, Any]:
        """Run all checks on a crawl request"""
        errors: List[str] = []
        warnings: List[str] = []

        if not cls.validate_city(request.city):
            errors.append("Invalid city name")

        window = cls.validate_time_window(request.start_time, request.end_time)
        errors.extend(window['errors'])

        if window['valid'] and window['budget_minutes'] < 60:
            warnings.append("Time window under an hour; the crawl may only have one stop")

        return {
            'valid': len(errors) == 0,
            'errors': errors,
            'warnings': warnings,
            'budget_minutes': window['budget_minutes'],
            'start_minutes': window['start_minutes'],
            'end_minutes': window['end_minutes']
        }
