"""
Domain services.

Each service takes its collaborators (session factory, cache, notifier,
content source) as constructor arguments; the app factory wires them.
"""

from reliefhub.services.content import ContentSource, MockContentSource
from reliefhub.services.disasters import DisasterService
from reliefhub.services.feeds import FeedService
from reliefhub.services.geocoding import (
    Geocoder,
    GeocodingService,
    LocationExtractor,
    MockGeocoder,
    RegexLocationExtractor,
)
from reliefhub.services.locator import ResourceLocator, ResourceSearchResult
from reliefhub.services.resources import ResourceService

__all__ = [
    'ContentSource',
    'MockContentSource',
    'DisasterService',
    'FeedService',
    'Geocoder',
    'GeocodingService',
    'LocationExtractor',
    'MockGeocoder',
    'RegexLocationExtractor',
    'ResourceLocator',
    'ResourceSearchResult',
    'ResourceService',
]
