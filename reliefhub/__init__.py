"""
ReliefHub Backend Package.

Disaster-response REST + WebSocket service built with Flask, Flask-SocketIO,
SQLAlchemy, and NumPy.

Modules:
    api/         REST endpoints for resources, disasters, feeds, auth, and status
    models/      SQLAlchemy ORM models (Disaster, Resource, CacheEntry)
    services/    Resource locator, domain services, pluggable content and geocoding sources
    cache.py     Database-backed TTL cache with a background expiry sweeper
    notifier.py  Change notifier that broadcasts mutations to subscriber groups
    realtime.py  Socket.IO event handlers (join/leave disaster groups)
    auth.py      Token-to-identity lookup and the require_auth decorator
    geo.py       Haversine distance and bounding-box helpers
    errors.py    API error taxonomy and JSON error handlers
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
