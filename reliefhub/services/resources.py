"""
Resource service - cached proximity search and resource submission.

search() flow:
    cache lookup -> (miss) locator -> cache write (TTL) -> response

create() flow:
    validate -> persist -> invalidate cached searches -> broadcast

There is no coupling between the locator read, fallback synthesis, and the
cache write: two concurrent misses for one key both compute and the later
write wins.
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from reliefhub.auth import Identity
from reliefhub.cache import CacheStore
from reliefhub.config import config
from reliefhub.errors import BadRequest, InternalError
from reliefhub.geo import parse_point
from reliefhub.models import Resource, ResourceType, SessionLocal, utcnow
from reliefhub.notifier import ChangeNotifier
from reliefhub.services.disasters import require_disaster
from reliefhub.services.locator import ResourceLocator

logger = logging.getLogger(__name__)


def search_cache_key(
    disaster_id: str,
    center: Optional[Tuple[float, float]],
    radius_m: float,
    category: Optional[str],
) -> str:
    """Cache key for one search; every parameter participates."""
    lat, lng = center if center else (None, None)
    return f'resources_{disaster_id}_{lat}_{lng}_{float(radius_m)!r}_{category}'


def parse_capacity(value) -> int:
    """Capacity must be a non-negative integer (default 0)."""
    if value is None or value == '':
        return 0
    if isinstance(value, bool):
        raise BadRequest('capacity must be a non-negative integer')
    try:
        capacity = int(value)
        # Rejects fractions; infinity and oversized ints overflow
        whole = capacity == float(value)
    except (ValueError, TypeError, OverflowError):
        raise BadRequest('capacity must be a non-negative integer')
    if capacity < 0 or not whole:
        raise BadRequest('capacity must be a non-negative integer')
    return capacity


class ResourceService:
    """Cached search and creation of disaster resources."""

    def __init__(
        self,
        locator: ResourceLocator,
        cache: CacheStore,
        notifier: ChangeNotifier,
        session_factory: Optional[sessionmaker] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.locator = locator
        self.cache = cache
        self.notifier = notifier
        self._session_factory = session_factory or SessionLocal
        self.ttl_seconds = ttl_seconds or config.cache.resource_ttl_seconds

    def search(
        self,
        disaster_id: str,
        center: Optional[Tuple[float, float]] = None,
        radius_m: Optional[float] = None,
        category: Optional[str] = None,
    ) -> dict:
        """
        Search resources, serving from cache when possible.

        Returns the response payload (see ResourceSearchResult.to_dict).
        """
        if radius_m is None:
            radius_m = self.locator.default_radius_m

        cache_key = search_cache_key(disaster_id, center, radius_m, category)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(f'Serving cached resources data for disaster: {disaster_id}')
            return cached

        result = self.locator.find_resources(disaster_id, center, radius_m, category)
        payload = result.to_dict()

        self.cache.set(cache_key, payload, self.ttl_seconds)

        logger.info(
            f'Resources fetched for disaster: {result.disaster_title}, '
            f'count: {result.total}{" (synthesized)" if result.synthesized else ""}'
        )
        return payload

    def create(self, identity: Identity, data: dict) -> dict:
        """
        Validate and persist a resource, then broadcast it.

        Required: disaster_id, name, type. Optional: location_name,
        lat/lng (together), capacity, contact_info.
        """
        disaster_id = data.get('disaster_id')
        name = data.get('name')
        resource_type = data.get('type')
        if not disaster_id or not name or not resource_type:
            raise BadRequest('disaster_id, name, and type are required')

        if resource_type not in ResourceType.values():
            raise BadRequest(
                f'type must be one of: {", ".join(ResourceType.values())}'
            )

        try:
            point = parse_point(data.get('lat'), data.get('lng'))
        except ValueError as e:
            raise BadRequest(str(e))

        contact_info = data.get('contact_info') or {}
        if not isinstance(contact_info, dict):
            raise BadRequest('contact_info must be an object')

        resource = Resource(
            id=str(uuid.uuid4()),
            disaster_id=disaster_id,
            name=name,
            location_name=data.get('location_name'),
            type=resource_type,
            capacity=parse_capacity(data.get('capacity')),
            contact_info=contact_info,
            latitude=point[0] if point else None,
            longitude=point[1] if point else None,
            created_at=utcnow(),
        )

        try:
            with self._session_factory() as session:
                require_disaster(session, disaster_id)
                session.add(resource)
                session.commit()
                record = resource.to_dict()
        except SQLAlchemyError as e:
            logger.error(f'Error creating resource: {e}')
            raise InternalError('Failed to create resource') from e

        logger.info(f'Resource created: {record["name"]} by {identity.username}')

        # Cached searches for this disaster no longer reflect its resources
        self.cache.delete_prefix(f'resources_{disaster_id}_')

        self.notifier.publish(disaster_id, 'resources_updated', record)
        return record
