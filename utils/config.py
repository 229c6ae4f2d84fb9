"""
Configuration management.
"""

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", "false"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    allowed_origins: list = field(
        default_factory=lambda: [
            o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()
        ]
    )

    # Collaborators
    google_maps_api_key: str = field(default_factory=lambda: os.getenv("GOOGLE_MAPS_API_KEY", ""))
    listing_feed_url: str = field(default_factory=lambda: os.getenv("LISTING_FEED_URL", ""))
    request_timeout: int = field(default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "10")))

    # Comparable selection
    stage_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("STAGE_TIMEOUT_SECONDS", "3.0"))
    )
    min_comparables: int = field(default_factory=lambda: int(os.getenv("MIN_COMPARABLES", "5")))
    max_comparables: int = field(default_factory=lambda: int(os.getenv("MAX_COMPARABLES", "10")))
    nearby_radius_km: float = field(
        default_factory=lambda: float(os.getenv("NEARBY_RADIUS_KM", "10.0"))
    )
    allow_placeholder_comparable: bool = field(
        default_factory=lambda: _env_bool("ALLOW_PLACEHOLDER_COMPARABLE", "true")
    )

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    seed_on_start: bool = field(default_factory=lambda: _env_bool("SEED_ON_START", "true"))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary. The API key is never included."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "allowed_origins": self.allowed_origins,
            "geocoder": "google" if self.google_maps_api_key else "static",
            "listing_feed_url": self.listing_feed_url,
            "request_timeout": self.request_timeout,
            "stage_timeout_seconds": self.stage_timeout_seconds,
            "min_comparables": self.min_comparables,
            "max_comparables": self.max_comparables,
            "nearby_radius_km": self.nearby_radius_km,
            "allow_placeholder_comparable": self.allow_placeholder_comparable,
            "data_dir": self.data_dir,
            "seed_on_start": self.seed_on_start,
        }
