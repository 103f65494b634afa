"""
Database models for ReliefHub.

Schema designed for:
1. Disaster-scoped resource lookups
2. Bounding-box prefilters on plain latitude/longitude columns
3. A shared TTL cache table swept by expiry
"""

from reliefhub.models.base import (
    Base,
    engine,
    SessionLocal,
    build_engine,
    make_session_factory,
    init_db,
    utcnow,
)
from reliefhub.models.disaster import Disaster
from reliefhub.models.resource import Resource, ResourceType
from reliefhub.models.cache_entry import CacheEntry

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'build_engine',
    'make_session_factory',
    'init_db',
    'utcnow',
    'Disaster',
    'Resource',
    'ResourceType',
    'CacheEntry',
]
