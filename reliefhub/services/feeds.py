"""
Feed service - social media and official updates for a disaster.

Both feeds are filtered by the disaster's tags and cached. A recomputed
social media feed is broadcast to the disaster's subscribers; a cache hit
is not, since nothing changed.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from reliefhub.cache import CacheStore
from reliefhub.config import config
from reliefhub.errors import InternalError
from reliefhub.models import SessionLocal, utcnow
from reliefhub.notifier import ChangeNotifier
from reliefhub.services.content import ContentSource, PRIORITY_ORDER, classify_priority
from reliefhub.services.disasters import require_disaster

logger = logging.getLogger(__name__)


class FeedService:
    """Builds, caches, and broadcasts disaster content feeds."""

    def __init__(
        self,
        content_source: ContentSource,
        cache: CacheStore,
        notifier: ChangeNotifier,
        session_factory: Optional[sessionmaker] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.content_source = content_source
        self.cache = cache
        self.notifier = notifier
        self._session_factory = session_factory or SessionLocal
        self.ttl_seconds = ttl_seconds or config.cache.feed_ttl_seconds

    def _disaster_context(self, disaster_id: str) -> tuple:
        """Return (title, tags) for a disaster."""
        try:
            with self._session_factory() as session:
                disaster = require_disaster(session, disaster_id)
                return disaster.title, list(disaster.tags or [])
        except SQLAlchemyError as e:
            logger.error(f'Error fetching disaster {disaster_id} for feed: {e}')
            raise InternalError('Failed to fetch disaster') from e

    def social_media(self, disaster_id: str) -> dict:
        """
        Social media posts for a disaster, highest priority first.

        Ties are broken newest first.
        """
        cache_key = f'social_media_{disaster_id}'
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(f'Serving cached social media data for disaster: {disaster_id}')
            return cached

        title, tags = self._disaster_context(disaster_id)

        posts = [
            dict(post, priority=classify_priority(post['post']))
            for post in self.content_source.social_posts(tags)
        ]
        posts.sort(
            key=lambda p: (PRIORITY_ORDER[p['priority']], datetime.fromisoformat(p['timestamp'])),
            reverse=True,
        )

        response = {
            'disaster_id': disaster_id,
            'disaster_title': title,
            'total_posts': len(posts),
            'high_priority_count': sum(1 for p in posts if p['priority'] == 'high'),
            'posts': posts,
            'last_updated': utcnow().isoformat(),
        }

        self.cache.set(cache_key, response, self.ttl_seconds)

        logger.info(f'Social media data processed for disaster: {title}')

        self.notifier.publish(disaster_id, 'social_media_updated', response)
        return response

    def official_updates(
        self,
        disaster_id: str,
        source_type: Optional[str] = None,
        urgency: Optional[str] = None,
    ) -> dict:
        """Official updates for a disaster, newest first."""
        cache_key = f'official_updates_{disaster_id}_{source_type}_{urgency}'
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(f'Serving cached official updates for disaster: {disaster_id}')
            return cached

        title, tags = self._disaster_context(disaster_id)

        updates = self.content_source.official_updates(tags)
        if source_type:
            updates = [u for u in updates if u['source_type'] == source_type]
        if urgency:
            updates = [u for u in updates if u['urgency'] == urgency]
        updates.sort(key=lambda u: datetime.fromisoformat(u['published_at']), reverse=True)

        response = {
            'disaster_id': disaster_id,
            'disaster_title': title,
            'total_updates': len(updates),
            'filters': {
                'source_type': source_type or 'all',
                'urgency': urgency or 'all',
            },
            'sources_checked': self.content_source.source_names(),
            'updates': updates,
            'last_scraped': utcnow().isoformat(),
        }

        self.cache.set(cache_key, response, self.ttl_seconds)

        logger.info(f'Official updates processed for disaster: {title}, count: {len(updates)}')
        return response
