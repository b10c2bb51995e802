from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Google Maps Platform
    GOOGLE_MAPS_API_KEY: str = "your-google-maps-key"

    # API Configuration
    API_VERSION: str = "1.0.0"
    DEBUG_MODE: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Caching
    CACHE_TTL_SECONDS: int = 3600
    CACHE_MAX_ENTRIES: int = 1024

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Crawl Planning Limits
    MAX_STOPS: int = 10
    MAX_CANDIDATES_PER_CATEGORY: int = 10
    DEFAULT_MIN_RATING: float = 4.0
    USE_ENHANCED_DURATIONS: bool = True

    # Provider Settings
    RESTAURANT_SEARCH_RADIUS_METERS: int = 3000
    LANDMARK_SEARCH_RADIUS_METERS: int = 5000
    MAX_CONCURRENT_PROVIDER_CALLS: int = 10
    REQUEST_TIMEOUT_SECONDS: int = 20

    model_config = {"env_file": ".env", "case_sensitive": True}

# Global settings instance
settings = Settings()

def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings

def validate_settings() -> bool:
    """Validate that all required settings are configured"""
    if not settings.GOOGLE_MAPS_API_KEY or settings.GOOGLE_MAPS_API_KEY == "your-google-maps-key":
        print("Missing or invalid settings: GOOGLE_MAPS_API_KEY")
        print("Please configure it in your .env file or environment variables")
        return False

    return True
