"""
Resource model - shelters, medical points, and supply sites for a disaster.

Resources are created by explicit submission and never updated afterwards.
Rows are scoped to a disaster and deleted with it.

Design notes:
- Indexed by disaster and by (latitude, longitude) for bounding-box prefilters
- Distance to a search center is not stored; the locator computes it per query
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, Float, Integer, DateTime, JSON, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from reliefhub.models.base import Base, utcnow


class ResourceType(str, Enum):
    """Resource categories accepted on submission and used as a search filter."""
    SHELTER = 'shelter'
    MEDICAL = 'medical'
    FOOD = 'food'
    SUPPLIES = 'supplies'
    HOUSING = 'housing'
    OTHER = 'other'

    @classmethod
    def values(cls) -> list:
        return [member.value for member in cls]


class Resource(Base):
    """
    A resource available to people affected by a disaster.

    Position is stored as plain WGS84 latitude/longitude so the same
    schema runs on SQLite and PostgreSQL.
    """

    __tablename__ = 'resources'

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment='Resource identifier (uuid4)'
    )

    disaster_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey('disasters.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
        comment='Owning disaster'
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment='Resource name'
    )

    location_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        comment='Human-readable location'
    )

    # Position (WGS84)
    latitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Latitude in decimal degrees'
    )

    longitude: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Longitude in decimal degrees'
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
        comment='Resource category (see ResourceType)'
    )

    capacity: Mapped[int] = mapped_column(
        Integer,
        default=0,
        comment='People or units the resource can serve'
    )

    contact_info: Mapped[dict] = mapped_column(
        JSON,
        default=dict,
        comment='Open key/value contact details'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        comment='Record creation timestamp'
    )

    __table_args__ = (
        # Bounding-box prefilter for proximity searches
        Index('ix_resources_location', 'latitude', 'longitude'),
        # Category-filtered searches within a disaster
        Index('ix_resources_disaster_type', 'disaster_id', 'type'),
    )

    def __repr__(self) -> str:
        return f'<Resource {self.id} {self.type} {self.name!r}>'

    def to_dict(self, distance_km: Optional[float] = None) -> dict:
        """
        Convert to JSON-serializable dict.

        distance_km is included only when the caller searched around a
        center point.
        """
        result = {
            'id': self.id,
            'disaster_id': self.disaster_id,
            'name': self.name,
            'location_name': self.location_name,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'type': self.type,
            'capacity': self.capacity if self.capacity is not None else 0,
            'contact_info': dict(self.contact_info or {}),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if distance_km is not None:
            result['distance_km'] = distance_km
        return result
