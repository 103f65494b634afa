"""
Geocoding - location names pulled out of free text and resolved to points.

Two pluggable seams:
- LocationExtractor: text -> location names. RegexLocationExtractor matches
  "City, ST", "<Name> County" and "downtown <Name>" style phrases.
- Geocoder: location name -> point. MockGeocoder scatters results around
  the fallback location and labels them low confidence.

GeocodingService caches both lookups. Cache keys carry a SHA-256 digest of
the input so arbitrarily long texts fit the cache key column.
"""

import hashlib
import logging
import random
import re
from typing import Callable, List, Optional, Tuple

from reliefhub.cache import CacheStore
from reliefhub.config import config
from reliefhub.errors import BadRequest, InternalError
from reliefhub.models import utcnow

logger = logging.getLogger(__name__)

_PLACE = r'[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*'

# Order matters: county names are claimed before the generic "Name, Region"
LOCATION_PATTERNS = (
    # Harris County, Orleans Parish
    re.compile(rf'\b({_PLACE}\s+(?:County|Parish|District))\b'),
    # Austin, TX / Lyon, France
    re.compile(rf'\b({_PLACE}),?\s+(?!(?:County|Parish|District)\b)([A-Z]{{2}}|[A-Z][a-z]+)\b'),
    # downtown Houston
    re.compile(rf'\b(?i:downtown|uptown|central|north|south|east|west)\s+({_PLACE})'),
)


class LocationExtractor:
    """Interface for pulling location names out of text."""

    def extract(self, text: str) -> List[str]:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return type(self).__name__


class RegexLocationExtractor(LocationExtractor):
    """Pattern-based extraction; results are unique, in first-seen order."""

    name = 'regex'

    def extract(self, text: str) -> List[str]:
        locations = []
        for pattern in LOCATION_PATTERNS:
            for match in pattern.finditer(text):
                groups = [g for g in match.groups() if g]
                location = ', '.join(groups)
                if location not in locations:
                    locations.append(location)
        return locations


class Geocoder:
    """Interface for resolving a location name to coordinates."""

    def geocode(self, location_name: str) -> dict:
        """
        Return {location_name, lat, lng, confidence, source}.

        Raises an exception when the name cannot be resolved.
        """
        raise NotImplementedError


class MockGeocoder(Geocoder):
    """Random point near the anchor, for demos without a geocoding provider."""

    def __init__(
        self,
        anchor: Optional[Tuple[float, float]] = None,
        jitter_degrees: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.anchor = anchor or config.fallback_location
        self.jitter_degrees = (
            jitter_degrees if jitter_degrees is not None else config.search.jitter_degrees
        )
        self._rng = rng or random.Random()

    def geocode(self, location_name: str) -> dict:
        return {
            'location_name': location_name,
            'lat': self.anchor[0] + self._rng.uniform(-self.jitter_degrees, self.jitter_degrees),
            'lng': self.anchor[1] + self._rng.uniform(-self.jitter_degrees, self.jitter_degrees),
            'confidence': 'low',
            'source': 'mock',
            'note': 'Mock coordinates for demonstration',
        }


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


class GeocodingService:
    """Cached location extraction and geocoding."""

    def __init__(
        self,
        extractor: LocationExtractor,
        geocoder: Geocoder,
        cache: CacheStore,
        ttl_seconds: Optional[int] = None,
        empty_ttl_seconds: Optional[int] = None,
        clock: Optional[Callable] = None,
    ):
        self.extractor = extractor
        self.geocoder = geocoder
        self.cache = cache
        self.ttl_seconds = ttl_seconds or config.cache.geocoding_ttl_seconds
        self.empty_ttl_seconds = empty_ttl_seconds or config.cache.geocoding_empty_ttl_seconds
        self._clock = clock or utcnow

    def extract_and_geocode(self, text: str) -> dict:
        """
        Extract every location in text and geocode each one.

        Locations the geocoder cannot resolve are logged and left out of
        geocoded_locations; they still appear in extracted_locations.
        """
        if not isinstance(text, str) or not text.strip():
            raise BadRequest('text or description is required')

        cache_key = f'geocoding_{_digest(text)}'
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info('Serving cached geocoding result')
            return cached

        extracted = self.extractor.extract(text)

        if not extracted:
            response = {
                'input_text': text,
                'extracted_locations': [],
                'geocoded_locations': [],
                'message': 'No locations found in the provided text',
                'processed_at': self._clock().isoformat(),
            }
            self.cache.set(cache_key, response, self.empty_ttl_seconds)
            return response

        geocoded = []
        for location in extracted:
            try:
                geocoded.append(self.geocoder.geocode(location))
            except Exception as e:
                logger.error(f'Failed to geocode location "{location}": {e}')

        response = {
            'input_text': text,
            'extracted_locations': extracted,
            'geocoded_locations': geocoded,
            'total_extracted': len(extracted),
            'total_geocoded': len(geocoded),
            'extractor': self.extractor.name,
            'processed_at': self._clock().isoformat(),
        }

        self.cache.set(cache_key, response, self.ttl_seconds)

        logger.info(
            f'Geocoding completed: {len(extracted)} locations extracted, '
            f'{len(geocoded)} geocoded'
        )
        return response

    def geocode_location(self, location_name: str) -> dict:
        """Geocode a single location name."""
        if not isinstance(location_name, str) or not location_name.strip():
            raise BadRequest('location_name is required')

        cache_key = f'single_geocoding_{_digest(location_name)}'
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info('Serving cached single geocoding result')
            return cached

        try:
            result = self.geocoder.geocode(location_name)
        except Exception as e:
            logger.error(f'Error geocoding location "{location_name}": {e}')
            raise InternalError('Geocoding failed') from e

        response = {
            'query': location_name,
            'result': result,
            'processed_at': self._clock().isoformat(),
        }

        self.cache.set(cache_key, response, self.ttl_seconds)

        logger.info(f'Single location geocoded: {location_name}')
        return response
