"""
Disaster model - the emergency event everything else is scoped to.

Resources, feeds, and real-time groups all reference a disaster by id.
Every create/update is appended to the record's audit trail.
"""

import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, Float, Text, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from reliefhub.models.base import Base, utcnow


class Disaster(Base):
    """
    An emergency event.

    Fields:
        id: uuid4 string
        title: Short headline (e.g., 'NYC Flood')
        location_name: Human-readable place (e.g., 'Manhattan, NYC')
        latitude/longitude: Optional WGS84 point
        tags: Type tags such as 'flood' or 'earthquake'
        owner_id: Identity that created the record
        audit_trail: List of {action, user_id, timestamp[, changes]}
    """

    __tablename__ = 'disasters'

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment='Disaster identifier (uuid4)'
    )

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment='Disaster title'
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

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment='Free-text description'
    )

    tags: Mapped[List[str]] = mapped_column(
        JSON,
        default=list,
        comment='Disaster type tags'
    )

    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment='Identity that created the record'
    )

    audit_trail: Mapped[List[dict]] = mapped_column(
        JSON,
        default=list,
        comment='Action history'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        index=True,
        comment='Record creation timestamp'
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        comment='Last update timestamp'
    )

    __table_args__ = (
        Index('ix_disasters_location', 'latitude', 'longitude'),
    )

    def __repr__(self) -> str:
        return f'<Disaster {self.id} {self.title!r}>'

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses and broadcasts."""
        return {
            'id': self.id,
            'title': self.title,
            'location_name': self.location_name,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'description': self.description,
            'tags': list(self.tags or []),
            'owner_id': self.owner_id,
            'audit_trail': list(self.audit_trail or []),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
