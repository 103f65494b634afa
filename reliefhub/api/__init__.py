"""
API module for ReliefHub.

Provides REST endpoints for:
- Resource proximity search and submission
- Disaster CRUD
- Social media and official update feeds
- Location extraction and geocoding
- Demo authentication
- System status
"""

from reliefhub.api.auth import auth_bp
from reliefhub.api.disasters import disasters_bp
from reliefhub.api.feeds import social_media_bp, updates_bp
from reliefhub.api.geocoding import geocoding_bp
from reliefhub.api.resources import resources_bp
from reliefhub.api.system import system_bp

__all__ = [
    'auth_bp',
    'disasters_bp',
    'resources_bp',
    'social_media_bp',
    'updates_bp',
    'geocoding_bp',
    'system_bp',
]
