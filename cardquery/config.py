"""
Configuration module for the Card Query backend.

Loads environment variables and validates required settings.
"""
import logging
import os
from typing import List

from dotenv import load_dotenv

# Load .env file
load_dotenv()

logger = logging.getLogger(__name__)

VALID_QUERY_STRATEGIES = ("selection", "criteria")


class Settings:
    """Application settings loaded from environment variables."""

    # Google Gemini API (GOOGLE_GENAI_API_KEY kept for older .env files)
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_GENAI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Query pipeline
    QUERY_STRATEGY: str = os.getenv("QUERY_STRATEGY", "selection").lower()
    CARD_DATASET_PATH: str = os.getenv("CARD_DATASET_PATH", "")
    # Max dataset records embedded in the selection prompt (0 = no limit)
    PROMPT_CARD_LIMIT: int = int(os.getenv("PROMPT_CARD_LIMIT", "200"))

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS Settings (only read in production)
    CORS_ALLOWED_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required settings are configured.

        Raises:
            ValueError: If any required setting is missing or invalid.
        """
        required_settings = {
            "GOOGLE_API_KEY": cls.GOOGLE_API_KEY,
        }

        missing = [key for key, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )

        if cls.QUERY_STRATEGY not in VALID_QUERY_STRATEGIES:
            raise ValueError(
                f"QUERY_STRATEGY must be one of {', '.join(VALID_QUERY_STRATEGIES)}, "
                f"got '{cls.QUERY_STRATEGY}'"
            )

        if cls.PROMPT_CARD_LIMIT < 0:
            raise ValueError("PROMPT_CARD_LIMIT must be zero or a positive integer")

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"


# Create a singleton instance
settings = Settings()

# Validate settings on module import (will fail fast if misconfigured)
# Skip validation during tests or when importing for introspection
if os.getenv("VALIDATE_CONFIG", "true").lower() == "true":
    try:
        settings.validate()
    except ValueError as e:
        # In development, warn but don't crash
        if settings.is_development():
            logger.warning(f"{e} The app may not work correctly until you configure your .env file.")
        else:
            # In production or staging, fail immediately
            raise
