#!/usr/bin/env python3
"""
Startup script for the Food Crawl Planner API
"""

import argparse
import logging
import uvicorn
from src.utils.config import get_settings, validate_settings

def parse_args(settings):
    parser = argparse.ArgumentParser(description="Run the Food Crawl Planner API")
    parser.add_argument("--host", default=settings.API_HOST)
    parser.add_argument("--port", type=int, default=settings.API_PORT)
    parser.add_argument("--reload", action="store_true", default=settings.DEBUG_MODE,
                        help="Restart on code changes (defaults to DEBUG_MODE)")
    return parser.parse_args()

def main():
    """Validate configuration, then serve src.api.main:app"""
    settings = get_settings()
    args = parse_args(settings)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT
    )
    logger = logging.getLogger("food_crawl")

    if not validate_settings():
        logger.error("GOOGLE_MAPS_API_KEY is not configured; set it in .env or the environment")
        return 1

    logger.info(f"Food Crawl Planner {settings.API_VERSION} on {args.host}:{args.port}")
    logger.info(
        "Planning limits",
        extra={
            "max_stops": settings.MAX_STOPS,
            "candidates_per_category": settings.MAX_CANDIDATES_PER_CATEGORY,
            "default_min_rating": settings.DEFAULT_MIN_RATING,
            "enhanced_durations": settings.USE_ENHANCED_DURATIONS
        }
    )

    try:
        uvicorn.run(
            "src.api.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=settings.LOG_LEVEL.lower(),
            access_log=True
        )
    except KeyboardInterrupt:
        logger.info("Shutting down")
    except Exception as e:
        logger.error(f"Server stopped with an error: {str(e)}")
        return 1
    return 0

if __name__ == "__main__":
    exit(main())
