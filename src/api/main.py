from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
import logging
import uuid
from datetime import datetime

from src.models.request_models import (
    CrawlRequest, OptimizeOrderRequest, RestaurantSearchRequest, TravelTimeRequest, IsOpenRequest
)
from src.models.response_models import (
    CrawlResponse, OptimizedRoute, RestaurantSearchResponse, TravelTimeResponse,
    IsOpenResponse, RestaurantDetailsResponse
)
from src.services.place_catalog import PlaceCatalogService
from src.services.travel_time_service import TravelTimeService
from src.services.crawl_planner import CrawlPlannerService, CityNotFoundError, InvalidCrawlRequestError
from src.utils.config import get_settings, validate_settings
from src.utils.validators import CrawlRequestValidator

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Food Crawl Planner API",
    description="Plan walking food crawls from Google Places and Distance Matrix data",
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global services (initialized on startup)
places_service: PlaceCatalogService = None
travel_service: TravelTimeService = None
crawl_planner: CrawlPlannerService = None

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    global places_service, travel_service, crawl_planner

    try:
        if not validate_settings():
            logger.error("Invalid settings configuration")
            raise Exception("Invalid settings configuration")

        logger.info("Initializing services...")
        places_service = PlaceCatalogService(api_key=settings.GOOGLE_MAPS_API_KEY)
        travel_service = TravelTimeService(
            api_key=settings.GOOGLE_MAPS_API_KEY,
            max_concurrent_calls=settings.MAX_CONCURRENT_PROVIDER_CALLS
        )
        crawl_planner = CrawlPlannerService(places_service, travel_service)
        logger.info("All services initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize services: {str(e)}")
        raise

@app.on_event("shutdown")
async def shutdown_event():
    """Clean up resources on shutdown"""
    if places_service:
        await places_service.close()

# Dependencies to get services
def get_crawl_planner() -> CrawlPlannerService:
    if crawl_planner is None:
        raise HTTPException(status_code=503, detail="Crawl planner not available")
    return crawl_planner

def get_places_service() -> PlaceCatalogService:
    if places_service is None:
        raise HTTPException(status_code=503, detail="Places service not available")
    return places_service

def get_travel_service() -> TravelTimeService:
    if travel_service is None:
        raise HTTPException(status_code=503, detail="Travel time service not available")
    return travel_service

@app.post("/api/v1/generate-crawl", response_model=CrawlResponse)
async def generate_crawl(
    request: CrawlRequest,
    planner: CrawlPlannerService = Depends(get_crawl_planner)
):
    """Generate a walking food crawl for a city, time window and price tier"""
    crawl_id = str(uuid.uuid4())
    try:
        return await planner.generate_crawl(request, crawl_id)
    except InvalidCrawlRequestError as e:
        raise HTTPException(status_code=400, detail={
            "message": "Invalid crawl request",
            "errors": e.errors
        })
    except CityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error generating crawl {crawl_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error generating crawl: {str(e)}")

@app.post("/api/v1/optimize-order", response_model=OptimizedRoute)
async def optimize_order(
    request: OptimizeOrderRequest,
    planner: CrawlPlannerService = Depends(get_crawl_planner)
):
    """Re-order already chosen stops to minimize total walking distance"""
    missing = [stop.name for stop in request.stops if stop.coordinates is None]
    if missing:
        raise HTTPException(status_code=400, detail=f"Stops without coordinates: {', '.join(missing)}")

    try:
        return await planner.optimize_stop_order(request.stops)
    except Exception as e:
        logger.error(f"Error optimizing stop order: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/v1/validate-request")
async def validate_crawl_request(request: CrawlRequest):
    """Validate a crawl request without planning it"""
    try:
        validation = CrawlRequestValidator.validate_request(request)
        return {
            "valid": validation['valid'],
            "errors": validation['errors'],
            "warnings": validation['warnings'],
            "budget_minutes": validation['budget_minutes']
        }
    except Exception as e:
        logger.error(f"Error validating request: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/v1/restaurants/search", response_model=RestaurantSearchResponse)
async def search_restaurant(
    request: RestaurantSearchRequest,
    places: PlaceCatalogService = Depends(get_places_service)
):
    """Search for a restaurant by name and city"""
    try:
        found = await places.search_restaurant(request.restaurant_name, request.city)
        if not found:
            raise HTTPException(status_code=404, detail="Restaurant not found")
        place, maps_uri = found
        return RestaurantSearchResponse(place=place, google_maps_uri=maps_uri)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error searching restaurant: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/v1/restaurants/is-open", response_model=IsOpenResponse)
async def restaurant_is_open(
    request: IsOpenRequest,
    places: PlaceCatalogService = Depends(get_places_service)
):
    """Whether a restaurant is open at a given local date and time"""
    try:
        result = await places.check_open_at(request.place_id, request.date_time)
        if result is None:
            raise HTTPException(status_code=404, detail="Restaurant not found")
        status, opening_hours = result
        return IsOpenResponse(
            place_id=request.place_id,
            status=status,
            is_open=None if status == "unknown" else status == "open",
            opening_hours=opening_hours
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error checking opening hours: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.get("/api/v1/restaurants/details/{place_id:path}", response_model=RestaurantDetailsResponse)
async def restaurant_details(
    place_id: str,
    places: PlaceCatalogService = Depends(get_places_service)
):
    """Restaurant details including opening hours"""
    try:
        details = await places.get_restaurant_details(place_id)
        if not details:
            raise HTTPException(status_code=404, detail="Restaurant not found")
        return details
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting restaurant details: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.post("/api/v1/travel-time", response_model=TravelTimeResponse)
async def get_travel_time(
    request: TravelTimeRequest,
    travel: TravelTimeService = Depends(get_travel_service)
):
    """Travel time and distance between two coordinates"""
    try:
        info = await travel.get_travel_time(
            request.origin.as_tuple(),
            request.destination.as_tuple(),
            mode=request.mode.value
        )
        if not info:
            raise HTTPException(status_code=404, detail="No route found")
        return TravelTimeResponse(**info)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting travel time: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy" if crawl_planner is not None else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "version": settings.API_VERSION,
        "services": {
            "places": places_service is not None,
            "travel_time": travel_service is not None,
            "crawl_planner": crawl_planner is not None
        }
    }

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Food Crawl Planner API",
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health"
    }
