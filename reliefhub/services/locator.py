"""
Resource locator - proximity search over a disaster's resources.

Search stages:
1. Validate: the disaster must exist (NotFound otherwise)
2. Scope: resources of that disaster, optionally one category
3. Prefilter: bounding box around the center, evaluated in SQL
4. Filter: exact haversine distance <= radius, evaluated with NumPy
5. Fallback: when nothing matches, synthesize a fixed catalog of five
   resources scattered around the center (not persisted)

Every resource returned for a centered search carries distance_km.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from reliefhub.config import config
from reliefhub.errors import InternalError
from reliefhub.geo import BoundingBox, haversine_distances
from reliefhub.models import Resource, ResourceType, SessionLocal, utcnow
from reliefhub.services.disasters import require_disaster

logger = logging.getLogger(__name__)

# Representative resources synthesized when a search finds nothing
FALLBACK_CATALOG = (
    {
        'name': 'Community Emergency Shelter',
        'type': ResourceType.SHELTER,
        'capacity': 200,
        'contact_info': {'phone': '(555) 123-4567', 'email': 'shelter@community.org'},
    },
    {
        'name': 'City General Hospital',
        'type': ResourceType.MEDICAL,
        'capacity': 150,
        'contact_info': {'phone': '(555) 987-6543', 'emergency': '911'},
    },
    {
        'name': 'Food Distribution Center',
        'type': ResourceType.FOOD,
        'capacity': 500,
        'contact_info': {'phone': '(555) 456-7890', 'hours': '9AM-6PM'},
    },
    {
        'name': 'Emergency Supply Station',
        'type': ResourceType.SUPPLIES,
        'capacity': 300,
        'contact_info': {'phone': '(555) 234-5678', 'coordinator': 'Jane Smith'},
    },
    {
        'name': 'Temporary Housing Complex',
        'type': ResourceType.HOUSING,
        'capacity': 100,
        'contact_info': {'phone': '(555) 345-6789', 'manager': 'Bob Johnson'},
    },
)


@dataclass
class ResourceSearchResult:
    """Resources found for one search plus the echoed search parameters."""
    disaster_id: str
    disaster_title: str
    search_center: Optional[Tuple[float, float]]
    radius_m: float
    resources: List[dict]
    synthesized: bool = False
    last_updated: datetime = field(default_factory=utcnow)

    @property
    def total(self) -> int:
        return len(self.resources)

    def to_dict(self) -> dict:
        """Convert to the JSON response shape."""
        center = None
        if self.search_center is not None:
            center = {'lat': self.search_center[0], 'lng': self.search_center[1]}

        return {
            'disaster_id': self.disaster_id,
            'disaster_title': self.disaster_title,
            'search_center': center,
            'search_radius_km': self.radius_m / 1000,
            'total_resources': self.total,
            'resources': self.resources,
            'last_updated': self.last_updated.isoformat(),
        }


class ResourceLocator:
    """
    Finds resources near a point for a disaster.

    The random source is injectable so fallback positions can be made
    deterministic in tests.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        fallback_location: Optional[Tuple[float, float]] = None,
        jitter_degrees: Optional[float] = None,
        default_radius_m: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self._session_factory = session_factory or SessionLocal
        self.fallback_location = fallback_location or config.fallback_location
        self.jitter_degrees = (
            jitter_degrees if jitter_degrees is not None else config.search.jitter_degrees
        )
        self.default_radius_m = default_radius_m or config.search.default_radius_m
        self._rng = rng or random.Random()

    def find_resources(
        self,
        disaster_id: str,
        center: Optional[Tuple[float, float]] = None,
        radius_m: Optional[float] = None,
        category: Optional[str] = None,
    ) -> ResourceSearchResult:
        """
        Search a disaster's resources.

        Args:
            disaster_id: Disaster to search within
            center: (lat, lng) search center, or None for no distance filter
            radius_m: Search radius in meters (default 10 km)
            category: Optional ResourceType value to filter on

        Raises:
            NotFound: the disaster does not exist
            InternalError: the datastore failed or timed out
        """
        if radius_m is None:
            radius_m = self.default_radius_m

        try:
            with self._session_factory() as session:
                disaster = require_disaster(session, disaster_id)
                disaster_title = disaster.title
                matches = self._query_resources(
                    session, disaster_id, center, radius_m, category
                )
        except SQLAlchemyError as e:
            logger.error(f'Error fetching resources for disaster {disaster_id}: {e}')
            raise InternalError('Failed to fetch resources') from e

        synthesized = not matches
        if synthesized:
            matches = self._synthesize(disaster_id, center)
            logger.info(
                f'No resources found for disaster {disaster_id}, '
                f'synthesized {len(matches)} fallback entries'
            )

        resources = [resource.to_dict(distance_km=distance) for resource, distance in matches]

        return ResourceSearchResult(
            disaster_id=disaster_id,
            disaster_title=disaster_title,
            search_center=center,
            radius_m=radius_m,
            resources=resources,
            synthesized=synthesized,
        )

    def _query_resources(
        self,
        session: Session,
        disaster_id: str,
        center: Optional[Tuple[float, float]],
        radius_m: float,
        category: Optional[str],
    ) -> List[Tuple[Resource, Optional[float]]]:
        """Return (resource, distance_km) pairs; distance is None without a center."""
        stmt = select(Resource).where(Resource.disaster_id == disaster_id)

        if category:
            stmt = stmt.where(Resource.type == category)

        if center is None:
            return [(r, None) for r in session.scalars(stmt).all()]

        radius_km = radius_m / 1000
        bbox = BoundingBox.from_center_radius(center[0], center[1], radius_km)
        stmt = stmt.where(
            Resource.latitude.is_not(None),
            Resource.longitude.is_not(None),
            Resource.latitude.between(bbox.lat_min, bbox.lat_max),
        )
        if bbox.has_longitude_bounds:
            stmt = stmt.where(Resource.longitude.between(bbox.lng_min, bbox.lng_max))

        candidates = session.scalars(stmt).all()
        if not candidates:
            return []

        distances = haversine_distances(
            center[0], center[1],
            [r.latitude for r in candidates],
            [r.longitude for r in candidates],
        )

        return [
            (resource, float(distance))
            for resource, distance in zip(candidates, distances)
            if distance <= radius_km
        ]

    def _synthesize(
        self,
        disaster_id: str,
        center: Optional[Tuple[float, float]],
    ) -> List[Tuple[Resource, Optional[float]]]:
        """
        Build the fallback catalog around the center (or the fallback anchor).

        Each entry is jittered uniformly within +/- jitter_degrees per axis.
        The Resource objects are transient and never added to a session.
        """
        anchor_lat, anchor_lng = center or self.fallback_location
        now = utcnow()

        resources = []
        for template in FALLBACK_CATALOG:
            resources.append(Resource(
                id=str(uuid.uuid4()),
                disaster_id=disaster_id,
                name=template['name'],
                location_name=f'{template["name"]} Location',
                type=template['type'].value,
                capacity=template['capacity'],
                contact_info=dict(template['contact_info']),
                latitude=anchor_lat + self._rng.uniform(-self.jitter_degrees, self.jitter_degrees),
                longitude=anchor_lng + self._rng.uniform(-self.jitter_degrees, self.jitter_degrees),
                created_at=now,
            ))

        if center is None:
            return [(r, None) for r in resources]

        distances = haversine_distances(
            center[0], center[1],
            [r.latitude for r in resources],
            [r.longitude for r in resources],
        )
        return [(r, float(d)) for r, d in zip(resources, distances)]
