"""
Configuration settings for HireIt.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / '.env')


class Settings:
    """Application settings loaded from environment."""

    # Database
    MONGODB_URL: str = os.environ.get("MONGODB_URI", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.environ.get("DB_NAME", "hireit")
    MAX_POOL_SIZE: int = 100
    SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Store deadlines (seconds)
    STORE_READ_TIMEOUT: float = float(os.environ.get("STORE_READ_TIMEOUT", 5))
    STORE_WRITE_TIMEOUT: float = float(os.environ.get("STORE_WRITE_TIMEOUT", 10))

    # Server
    PORT: int = int(os.environ.get("PORT", 8080))
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    DEBUG: bool = os.environ.get("DEBUG", "False").lower() == "true"
    CORS_ORIGINS: list = os.environ.get(
        "CORS_ORIGINS", "http://localhost:3000"
    ).split(",")

    # Listing
    DEFAULT_PAGE_LIMIT: int = 50
    MAX_PAGE_LIMIT: int = 100

    # Cache
    ASSESSMENTS_CACHE_TTL_SECONDS: int = int(os.environ.get("ASSESSMENTS_CACHE_TTL_SECONDS", 300))

    # Phase chains
    MAX_CHAIN_LENGTH: int = int(os.environ.get("MAX_CHAIN_LENGTH", 100))

    # Logging
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    def validate(self):
        """Validate critical settings."""
        if not self.MONGODB_URL:
            raise ValueError("MONGODB_URI environment variable not set")
        if self.STORE_READ_TIMEOUT <= 0 or self.STORE_WRITE_TIMEOUT <= 0:
            raise ValueError("Store timeouts must be positive")
        if self.MAX_CHAIN_LENGTH < 1:
            raise ValueError("MAX_CHAIN_LENGTH must be at least 1")
        return True


# Default settings instance; the app factory accepts an override
settings = Settings()
