"""
Configuration management for the storefront API.

Settings come from the environment (optionally a .env file) and are exposed
as a typed dataclass. Values that are part of the API contract (featured cap,
order statuses, session token format) live next to the code that uses them
and are not configurable here.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


DEFAULT_ALLOWED_ORIGINS = "https://reverb256.github.io,http://localhost:5173"


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class StorefrontConfig:
    """Configuration for the storefront service."""

    database_url: str = ""
    allowed_origins: List[str] = field(default_factory=lambda: _split_csv(DEFAULT_ALLOWED_ORIGINS))

    # Payment processor
    stripe_secret_key: Optional[str] = None
    stripe_publishable_key: Optional[str] = None

    currency: str = "CAD"

    # Runtime
    env: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "StorefrontConfig":
        """Build configuration from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL") or "",
            allowed_origins=_split_csv(os.getenv("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            stripe_publishable_key=os.getenv("STRIPE_PUBLISHABLE_KEY") or None,
            currency=os.getenv("STORE_CURRENCY", "CAD").upper(),
            env=os.getenv("ENV", "development").lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.stripe_secret_key)

    def validate(self) -> List[str]:
        """
        Return a list of configuration problems.

        Problems are reported, never raised: the service still starts so that
        /health can explain what is missing.
        """
        errors = []
        if self.stripe_enabled and not self.stripe_publishable_key:
            errors.append("STRIPE_PUBLISHABLE_KEY is required when STRIPE_SECRET_KEY is set")
        if self.is_production and not self.database_url:
            errors.append("DATABASE_URL must be set in production")
        if "*" in self.allowed_origins:
            errors.append("ALLOWED_ORIGINS must list explicit origins when credentials are allowed")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"LOG_LEVEL '{self.log_level}' is not a valid level")
        return errors


# Global config instance
_config: Optional[StorefrontConfig] = None


def get_config() -> StorefrontConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StorefrontConfig.from_env()
    return _config


def set_config(config: StorefrontConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def validate_config() -> List[str]:
    """Validate the active configuration."""
    return get_config().validate()
