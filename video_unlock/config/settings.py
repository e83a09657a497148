"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Stripe Configuration
    stripe_secret_key: str = Field(..., description="Stripe secret API key (sk_test_...)")
    stripe_api_version: str = Field(default="2023-10-16", description="Stripe API version")

    # Cloudinary Configuration
    cloudinary_cloud_name: str = Field(..., min_length=1, description="Cloudinary cloud name")
    cloudinary_api_key: str = Field(..., min_length=1, description="Cloudinary API key")
    cloudinary_api_secret: str = Field(..., min_length=1, description="Cloudinary API secret")
    cloudinary_api_base_url: str = Field(
        default="https://api.cloudinary.com/v1_1", description="Cloudinary Admin/Search API base URL"
    )
    cloudinary_delivery_base_url: str = Field(
        default="https://res.cloudinary.com", description="Cloudinary delivery (CDN) base URL"
    )
    video_search_max_results: int = Field(
        default=50, ge=1, le=500, description="Max videos returned by the catalog search"
    )

    # Gateway calls
    gateway_timeout_seconds: float = Field(
        default=15.0, gt=0, description="Upper bound on any single provider call (seconds)"
    )

    # Product and pricing
    product_name: str = Field(default="Kid Tok Premium", description="Product name sent to Stripe")
    unlock_price_cents: int = Field(default=999, gt=0, description="Unlock price in minor units")
    unlock_currency: str = Field(default="usd", min_length=3, max_length=3, description="ISO currency")
    missing_record_policy: Literal["skip", "error"] = Field(
        default="skip",
        description="What a succeeded confirmation does when the ledger has no matching record",
    )

    # Application Configuration
    app_name: str = Field(default="video-unlock-backend", description="Application name")
    app_env: str = Field(default="production", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3001, description="API port")
    allowed_origins: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("stripe_secret_key")
    @classmethod
    def validate_stripe_key(cls, v: str) -> str:
        """Validate that the Stripe secret key looks like a test or live key."""
        if not v.startswith("sk_test_") and not v.startswith("sk_live_"):
            raise ValueError(
                "Invalid Stripe secret key format. Must start with 'sk_test_' or 'sk_live_'"
            )
        return v

    @field_validator("unlock_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Detailed error bodies are only returned in development."""
        return self.app_env.lower() == "development"

    @property
    def is_test_mode(self) -> bool:
        """Check if using Stripe test mode."""
        return self.stripe_secret_key.startswith("sk_test_")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Raises pydantic.ValidationError when required credentials are missing,
    which stops the service at boot.
    """
    return Settings()
