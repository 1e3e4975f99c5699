"""Application settings and configuration helpers."""

import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Runtime configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize settings from environment variables."""
        self.app_name = os.getenv("APP_NAME", "Wedding Marketplace API")
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        # db
        self.database_url = os.getenv(
            "DATABASE_URL", "sqlite:///./data/marketplace.db"
        )

        # fe
        self.cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")

        # Rate Limiting, quick search fires on (debounced) keystrokes
        self.search_rate_limit = os.getenv("SEARCH_RATE_LIMIT", "30/minute")

        # Listing
        self.products_page_size = int(os.getenv("PRODUCTS_PAGE_SIZE", "12"))
        self.search_max_results = int(os.getenv("SEARCH_MAX_RESULTS", "5"))

        # small delay so view tracking never competes with page rendering
        self.view_track_delay_ms = int(os.getenv("VIEW_TRACK_DELAY_MS", "500"))

        # Celery + Redis
        self.celery_broker_url = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
        self.celery_result_backend = os.getenv(
            "CELERY_RESULT_BACKEND", "redis://redis:6379/1"
        )

    @property
    def view_track_delay_s(self) -> float:
        """Return the view tracking delay in seconds."""
        return self.view_track_delay_ms / 1000

    @property
    def cors_origins_list(self) -> list[str]:
        """Return CORS origins as a list of stripped entries."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# module-level cache + singleton, first caller from any importer init it and later call reuse
_settings = None


def get_settings():
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
