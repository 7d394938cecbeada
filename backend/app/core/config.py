"""Application configuration"""
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import List, Optional

from app.core.errors import ConfigurationError

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "products.json"


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./pricewatch.db"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:8081", "http://127.0.0.1:8081"]

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    # Shared secret expected on inbound webhooks (scheduler, scrape vendor)
    WEBHOOK_TOKEN: Optional[str] = None

    # Static catalog used for seeding and as the lookup fallback
    CATALOG_PATH: Path = DEFAULT_CATALOG_PATH
    SEED_ON_STARTUP: bool = True

    # Price simulation
    SIMULATION_BATCH_SIZE: int = 100
    SIMULATION_MAX_CHANGE_PERCENT: float = 15.0
    SIMULATION_INTERVAL_MINUTES: int = 0  # 0 = in-process scheduler disabled

    # Fan-out limits and per-unit-of-work timeout (seconds)
    UPDATER_CONCURRENCY: int = 5
    CHECK_CONCURRENCY: int = 5
    STORE_TIMEOUT_SECONDS: float = 10.0

    # Search linking
    LINK_MATCH_LIMIT: int = 50
    LINK_MIN_TERM_LENGTH: int = 2

    class Config:
        env_file = ".env"

    def require_webhook_token(self) -> Optional[str]:
        """
        Return the webhook token, or None when webhooks are unauthenticated.

        Production deployments must configure one.
        """
        if not self.WEBHOOK_TOKEN and self.ENVIRONMENT == "production":
            raise ConfigurationError("WEBHOOK_TOKEN is not configured")
        return self.WEBHOOK_TOKEN


settings = Settings()
