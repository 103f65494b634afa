"""
Disaster service - CRUD for the records everything else is scoped to.

Only the owner of a disaster or an admin may update or delete it. Every
mutation is appended to the audit trail, invalidates the disaster's cached
responses, and is broadcast through the change notifier.
"""

import logging
import uuid
from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from reliefhub.auth import Identity
from reliefhub.cache import CacheStore
from reliefhub.errors import BadRequest, Forbidden, InternalError, NotFound
from reliefhub.geo import parse_point
from reliefhub.models import Disaster, SessionLocal, utcnow
from reliefhub.notifier import ChangeNotifier, GLOBAL_SCOPE

logger = logging.getLogger(__name__)

# Fields a caller may change on update
UPDATABLE_FIELDS = ('title', 'location_name', 'description', 'tags')


def require_disaster(session: Session, disaster_id: str) -> Disaster:
    """Load a disaster or raise NotFound."""
    disaster = session.get(Disaster, disaster_id)
    if disaster is None:
        raise NotFound('Disaster not found')
    return disaster


def cache_prefixes(disaster_id: str) -> List[str]:
    """Key prefixes of every cached response derived from one disaster."""
    return [
        f'resources_{disaster_id}_',
        f'social_media_{disaster_id}',
        f'official_updates_{disaster_id}_',
    ]


def _validate_tags(tags) -> List[str]:
    if tags is None:
        return []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise BadRequest('tags must be a list of strings')
    return [t.strip() for t in tags if t.strip()]


def _audit_entry(action: str, identity: Identity, changes: Optional[List[str]] = None) -> dict:
    entry = {
        'action': action,
        'user_id': identity.id,
        'timestamp': utcnow().isoformat(),
    }
    if changes is not None:
        entry['changes'] = changes
    return entry


class DisasterService:
    """Create, read, update, and delete disasters."""

    def __init__(
        self,
        notifier: ChangeNotifier,
        cache: Optional[CacheStore] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        self.notifier = notifier
        self.cache = cache
        self._session_factory = session_factory or SessionLocal

    def list(
        self,
        tag: Optional[str] = None,
        owner_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[dict]:
        """
        List disasters, newest first.

        Tag matching happens after the query because tags are a JSON
        column, so pagination is applied in Python when a tag is given.
        """
        stmt = select(Disaster).order_by(Disaster.created_at.desc())
        if owner_id:
            stmt = stmt.where(Disaster.owner_id == owner_id)
        if not tag:
            stmt = stmt.offset(offset).limit(limit)

        try:
            with self._session_factory() as session:
                disasters = session.scalars(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f'Error fetching disasters: {e}')
            raise InternalError('Failed to fetch disasters') from e

        if tag:
            disasters = [d for d in disasters if tag in (d.tags or [])]
            disasters = disasters[offset:offset + limit]

        logger.info(f'Fetched {len(disasters)} disasters')
        return [d.to_dict() for d in disasters]

    def get(self, disaster_id: str) -> dict:
        try:
            with self._session_factory() as session:
                return require_disaster(session, disaster_id).to_dict()
        except SQLAlchemyError as e:
            logger.error(f'Error fetching disaster {disaster_id}: {e}')
            raise InternalError('Failed to fetch disaster') from e

    def create(self, identity: Identity, data: dict) -> dict:
        title = data.get('title')
        description = data.get('description')
        if not title or not description:
            raise BadRequest('Title and description are required')

        try:
            point = parse_point(data.get('lat'), data.get('lng'))
        except ValueError as e:
            raise BadRequest(str(e))

        disaster = Disaster(
            id=str(uuid.uuid4()),
            title=title,
            location_name=data.get('location_name'),
            description=description,
            tags=_validate_tags(data.get('tags')),
            owner_id=identity.id,
            audit_trail=[_audit_entry('create', identity)],
            latitude=point[0] if point else None,
            longitude=point[1] if point else None,
        )

        try:
            with self._session_factory() as session:
                session.add(disaster)
                session.commit()
                record = disaster.to_dict()
        except SQLAlchemyError as e:
            logger.error(f'Error creating disaster: {e}')
            raise InternalError('Failed to create disaster') from e

        logger.info(f'Disaster created: {record["title"]} by {identity.username}')

        self.notifier.publish(GLOBAL_SCOPE, 'disaster_created', record)
        return record

    def update(self, identity: Identity, disaster_id: str, data: dict) -> dict:
        updates = {field: data[field] for field in UPDATABLE_FIELDS if field in data}
        if 'tags' in updates:
            updates['tags'] = _validate_tags(updates['tags'])
        if 'title' in updates and not updates['title']:
            raise BadRequest('Title cannot be empty')

        try:
            point = parse_point(data.get('lat'), data.get('lng'))
        except ValueError as e:
            raise BadRequest(str(e))

        try:
            with self._session_factory() as session:
                disaster = require_disaster(session, disaster_id)
                self._check_owner(identity, disaster, 'update')

                for field, value in updates.items():
                    setattr(disaster, field, value)
                changes = list(updates)
                if point:
                    disaster.latitude, disaster.longitude = point
                    changes.append('location')

                # Reassign so the JSON column is flagged dirty
                disaster.audit_trail = list(disaster.audit_trail or []) + [
                    _audit_entry('update', identity, changes)
                ]
                session.commit()
                record = disaster.to_dict()
        except SQLAlchemyError as e:
            logger.error(f'Error updating disaster {disaster_id}: {e}')
            raise InternalError('Failed to update disaster') from e

        logger.info(f'Disaster updated: {record["title"]} by {identity.username}')

        self._invalidate(disaster_id)
        self.notifier.publish(GLOBAL_SCOPE, 'disaster_updated', record)
        self.notifier.publish(disaster_id, 'disaster_updated', record)
        return record

    def delete(self, identity: Identity, disaster_id: str) -> None:
        try:
            with self._session_factory() as session:
                disaster = require_disaster(session, disaster_id)
                self._check_owner(identity, disaster, 'delete')
                title = disaster.title
                session.delete(disaster)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f'Error deleting disaster {disaster_id}: {e}')
            raise InternalError('Failed to delete disaster') from e

        logger.info(f'Disaster deleted: {title} by {identity.username}')

        self._invalidate(disaster_id)
        self.notifier.publish(GLOBAL_SCOPE, 'disaster_deleted', {'id': disaster_id})

    @staticmethod
    def _check_owner(identity: Identity, disaster: Disaster, action: str) -> None:
        if disaster.owner_id != identity.id and not identity.is_admin:
            raise Forbidden(f'Not authorized to {action} this disaster')

    def _invalidate(self, disaster_id: str) -> None:
        if self.cache is None:
            return
        for prefix in cache_prefixes(disaster_id):
            self.cache.delete_prefix(prefix)
