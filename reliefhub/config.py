"""
Configuration management for ReliefHub.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _parse_location(value: str) -> Optional[Tuple[float, float]]:
    """Parse 'lat,lng' string into tuple, or None if empty/invalid."""
    if not value:
        return None
    try:
        lat, lng = value.split(',')
        return (float(lat.strip()), float(lng.strip()))
    except (ValueError, AttributeError):
        return None


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///reliefhub.db')
    # Upper bound for a single datastore call
    query_timeout_seconds: float = float(os.getenv('DB_QUERY_TIMEOUT_SECONDS', '10'))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class CacheConfig:
    """Cache TTLs and maintenance schedule."""
    resource_ttl_seconds: int = int(os.getenv('RESOURCE_CACHE_TTL_SECONDS', '1800'))
    feed_ttl_seconds: int = int(os.getenv('FEED_CACHE_TTL_SECONDS', '3600'))
    geocoding_ttl_seconds: int = int(os.getenv('GEOCODING_CACHE_TTL_SECONDS', '86400'))
    # Texts with no recognizable location are retried sooner
    geocoding_empty_ttl_seconds: int = 3600
    sweep_interval_seconds: int = int(os.getenv('CACHE_SWEEP_INTERVAL_SECONDS', '3600'))


@dataclass(frozen=True)
class SearchConfig:
    """Resource proximity search settings."""
    default_radius_m: float = float(os.getenv('DEFAULT_SEARCH_RADIUS_M', '10000'))
    # Half-width of the random box synthesized resources are scattered in
    jitter_degrees: float = 0.05


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    cache: CacheConfig
    search: SearchConfig

    # Anchor for synthesized resources when a search has no center
    fallback_location: Tuple[float, float]

    # Allowed origins for REST CORS and Socket.IO
    cors_origins: str

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        database=DatabaseConfig(),
        cache=CacheConfig(),
        search=SearchConfig(),
        fallback_location=(
            _parse_location(os.getenv('FALLBACK_LOCATION', ''))
            or (40.7128, -74.0060)
        ),
        cors_origins=os.getenv('CORS_ORIGINS', '*'),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
