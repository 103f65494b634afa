"""
CacheEntry model - persisted key/value cache with per-entry expiry.

Lives in the same database as the domain tables so every process sees
the same cached responses.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from reliefhub.models.base import Base, utcnow


class CacheEntry(Base):
    """
    One cached value.

    An entry whose expires_at is not strictly in the future is treated as
    absent and removed on the next read or sweep.
    """

    __tablename__ = 'cache'

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        comment='Cache key'
    )

    value: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        comment='Cached JSON payload'
    )

    # Indexed for the periodic sweep
    expires_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        index=True,
        comment='Expiry timestamp (UTC)'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        comment='First write timestamp'
    )

    def __repr__(self) -> str:
        return f'<CacheEntry {self.key} expires {self.expires_at}>'

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
