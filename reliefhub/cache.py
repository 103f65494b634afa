"""
Database-backed cache for API responses.

Provides a time-aware key/value store, enabling:
- Reuse of expensive search and feed responses across requests and processes
- Per-entry expiry with lazy eviction on read
- A background sweep that physically removes expired rows

Failure policy:
The cache is never allowed to break the request path. Every storage error
is logged and reported to the caller as a miss (reads) or a no-op (writes),
so a broken cache degrades to "always recompute".
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import sessionmaker

from reliefhub.config import config
from reliefhub.models import CacheEntry, SessionLocal, utcnow

logger = logging.getLogger(__name__)


_INSERTS = {
    'sqlite': sqlite_insert,
    'postgresql': postgresql_insert,
}


def _upsert_statement(dialect_name: str, **values):
    """INSERT ... ON CONFLICT (key) DO UPDATE for the bound dialect."""
    insert = _INSERTS.get(dialect_name)
    if insert is None:
        raise ValueError(f'Cache upsert not supported on {dialect_name}')

    stmt = insert(CacheEntry).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=['key'],
        set_={
            'value': stmt.excluded.value,
            'expires_at': stmt.excluded.expires_at,
        }
    )


class CacheStore:
    """
    TTL key/value store persisted in the `cache` table.

    An entry is served only while expires_at > now. Concurrent writers to
    the same key race with last-write-wins semantics.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory or SessionLocal
        self._clock = clock or utcnow

        # Statistics
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._errors = 0
        self._last_sweep: Optional[datetime] = None
        self._last_sweep_deleted = 0

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value by key.

        Returns None if not cached, expired, or unreadable. An expired
        entry is deleted as a side effect.
        """
        now = self._clock()
        try:
            with self._session_factory() as session:
                entry = session.get(CacheEntry, key)
                if entry is not None and not entry.is_expired(now):
                    self._count('hits')
                    return entry.value

                if entry is not None:
                    # Only delete if nobody refreshed it in the meantime
                    session.execute(
                        delete(CacheEntry).where(
                            CacheEntry.key == key,
                            CacheEntry.expires_at <= now,
                        )
                    )
                    session.commit()
                    logger.debug(f'Evicted expired cache entry {key}')
        except Exception as e:
            self._count('errors')
            logger.error(f'Cache read failed for {key}: {e}')

        self._count('misses')
        return None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """
        Upsert an entry expiring ttl_seconds from now.

        A single INSERT ... ON CONFLICT DO UPDATE, so concurrent writers to
        one key never collide and the last write wins. A non-positive TTL
        stores an entry that is already expired.
        """
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        try:
            with self._session_factory() as session:
                session.execute(_upsert_statement(
                    session.get_bind().dialect.name,
                    key=key,
                    value=value,
                    expires_at=expires_at,
                    created_at=now,
                ))
                session.commit()
        except Exception as e:
            self._count('errors')
            logger.error(f'Cache write failed for {key}: {e}')

    def delete(self, key: str) -> None:
        """Remove specific entry from cache."""
        try:
            with self._session_factory() as session:
                session.execute(delete(CacheEntry).where(CacheEntry.key == key))
                session.commit()
        except Exception as e:
            self._count('errors')
            logger.error(f'Cache delete failed for {key}: {e}')

    def delete_prefix(self, prefix: str) -> int:
        """
        Remove every entry whose key starts with prefix.

        Returns count of entries removed (0 on error).
        """
        try:
            with self._session_factory() as session:
                result = session.execute(
                    delete(CacheEntry).where(
                        CacheEntry.key.startswith(prefix, autoescape=True)
                    )
                )
                session.commit()
                removed = result.rowcount or 0
        except Exception as e:
            self._count('errors')
            logger.error(f'Cache invalidation failed for prefix {prefix}: {e}')
            return 0

        if removed:
            logger.debug(f'Invalidated {removed} cache entries with prefix {prefix}')
        return removed

    def sweep(self) -> int:
        """
        Delete all entries with expires_at <= now.

        Returns count of entries removed (0 on error).
        """
        now = self._clock()
        try:
            with self._session_factory() as session:
                result = session.execute(
                    delete(CacheEntry).where(CacheEntry.expires_at <= now)
                )
                session.commit()
                removed = result.rowcount or 0
        except Exception as e:
            self._count('errors')
            logger.error(f'Cache sweep failed: {e}')
            return 0

        with self._stats_lock:
            self._last_sweep = now
            self._last_sweep_deleted = removed

        logger.info(f'Cache sweep: removed {removed} expired entries')
        return removed

    def _count(self, counter: str) -> None:
        with self._stats_lock:
            setattr(self, f'_{counter}', getattr(self, f'_{counter}') + 1)

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._stats_lock:
            lookups = self._hits + self._misses
            return {
                'hits': self._hits,
                'misses': self._misses,
                'errors': self._errors,
                'hit_rate': self._hits / lookups if lookups > 0 else 0,
                'last_sweep': self._last_sweep.isoformat() if self._last_sweep else None,
                'last_sweep_deleted': self._last_sweep_deleted,
            }


class CacheSweeper:
    """
    Runs CacheStore.sweep() on a fixed interval in a daemon thread.

    Independent of request traffic; a failed sweep is logged and the loop
    carries on with the next interval.
    """

    def __init__(
        self,
        store: CacheStore,
        interval_seconds: Optional[float] = None,
    ):
        self.store = store
        self.interval_seconds = interval_seconds or config.cache.sweep_interval_seconds

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._sweep_count = 0

    def run_continuous(self) -> None:
        """
        Sweep every interval until stopped.

        This method blocks - use start_background() for non-blocking.
        """
        logger.info(f'Starting cache sweeper (interval={self.interval_seconds}s)')

        while not self._stop_event.wait(self.interval_seconds):
            self.store.sweep()
            self._sweep_count += 1

        logger.info('Cache sweeper stopped')

    def start_background(self) -> None:
        """Start sweeping in background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning('Cache sweeper already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run_continuous,
            name='cache-sweeper',
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop background sweeping."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    @property
    def stats(self) -> dict:
        """Get sweeper statistics."""
        return {
            'running': self.is_running,
            'interval_seconds': self.interval_seconds,
            'sweep_count': self._sweep_count,
        }
