"""Tests for the TTL cache store and background sweeper."""

import threading
import time

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from reliefhub.cache import CacheStore, CacheSweeper
from reliefhub.models import CacheEntry, build_engine, init_db, make_session_factory


def _row_count(session_factory) -> int:
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(CacheEntry))


def _broken_factory():
    raise OperationalError('SELECT 1', {}, Exception('database is down'))


class TestCacheStore:
    def test_set_then_get(self, cache):
        cache.set('resources_1', {'total_resources': 3}, 60)
        assert cache.get('resources_1') == {'total_resources': 3}

    def test_missing_key(self, cache):
        assert cache.get('nope') is None

    def test_overwrite_refreshes_value(self, cache, clock):
        cache.set('k', [1], 10)
        clock.advance(5)
        cache.set('k', [2], 10)
        clock.advance(8)

        assert cache.get('k') == [2]

    def test_entry_expires(self, cache, clock, session_factory):
        cache.set('k', 'v', 30)
        clock.advance(29)
        assert cache.get('k') == 'v'

        clock.advance(1)
        assert cache.get('k') is None
        # Expired entry is evicted on read
        assert _row_count(session_factory) == 0

    def test_non_positive_ttl_is_never_served(self, cache, session_factory):
        cache.set('zero', 'v', 0)
        cache.set('negative', 'v', -5)

        assert cache.get('zero') is None
        assert cache.get('negative') is None
        assert _row_count(session_factory) == 0

    def test_delete(self, cache):
        cache.set('k', 'v', 60)
        cache.delete('k')
        assert cache.get('k') is None

    def test_delete_prefix(self, cache):
        cache.set('resources_abc_1', 1, 60)
        cache.set('resources_abc_2', 2, 60)
        cache.set('resources_xyz_1', 3, 60)

        assert cache.delete_prefix('resources_abc_') == 2
        assert cache.get('resources_abc_1') is None
        assert cache.get('resources_xyz_1') == 3

    def test_delete_prefix_treats_underscore_literally(self, cache):
        cache.set('resources_a_1', 1, 60)
        cache.set('resourcesXaX1', 2, 60)

        assert cache.delete_prefix('resources_a_') == 1
        assert cache.get('resourcesXaX1') == 2

    def test_sweep_removes_only_expired(self, cache, clock, session_factory):
        cache.set('short', 1, 10)
        cache.set('long', 2, 1000)
        clock.advance(60)

        assert cache.sweep() == 1
        assert _row_count(session_factory) == 1
        assert cache.get('long') == 2
        assert cache.stats['last_sweep_deleted'] == 1

    def test_stats_track_hits_and_misses(self, cache):
        cache.set('k', 'v', 60)
        cache.get('k')
        cache.get('missing')

        stats = cache.stats
        assert stats['hits'] == 1
        assert stats['misses'] == 1
        assert stats['hit_rate'] == 0.5

    def test_storage_failure_reads_as_miss(self, clock):
        broken = CacheStore(session_factory=_broken_factory, clock=clock)

        broken.set('k', 'v', 60)
        assert broken.get('k') is None
        assert broken.delete_prefix('k') == 0
        assert broken.sweep() == 0
        assert broken.stats['errors'] == 4

    def test_last_write_wins_across_stores(self, session_factory, clock):
        first = CacheStore(session_factory=session_factory, clock=clock)
        second = CacheStore(session_factory=session_factory, clock=clock)

        first.set('k', 'first', 60)
        second.set('k', 'second', 60)

        assert first.get('k') == 'second'

    def test_concurrent_writers_never_collide(self, tmp_path, clock):
        engine = build_engine(f'sqlite:///{tmp_path / "cache.db"}', query_timeout_seconds=10)
        init_db(engine)
        factory = make_session_factory(engine)
        stores = [CacheStore(session_factory=factory, clock=clock) for _ in range(8)]
        barrier = threading.Barrier(len(stores))

        def write(index):
            barrier.wait()
            for _ in range(5):
                stores[index].set('shared', index, 60)

        threads = [threading.Thread(target=write, args=(i,)) for i in range(len(stores))]
        try:
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=30)

            assert sum(store.stats['errors'] for store in stores) == 0
            assert stores[0].get('shared') in range(len(stores))
            assert _row_count(factory) == 1
        finally:
            engine.dispose()


class TestCacheSweeper:
    def test_background_sweeps_and_stops(self, cache, clock, session_factory):
        cache.set('stale', 'v', 1)
        clock.advance(10)

        sweeper = CacheSweeper(cache, interval_seconds=0.01)
        sweeper.start_background()
        try:
            deadline = time.time() + 5
            while sweeper.stats['sweep_count'] == 0 and time.time() < deadline:
                time.sleep(0.01)
            assert sweeper.is_running
        finally:
            sweeper.stop()

        assert not sweeper.is_running
        assert sweeper.stats['sweep_count'] >= 1
        assert _row_count(session_factory) == 0

    def test_start_twice_keeps_one_thread(self, cache):
        sweeper = CacheSweeper(cache, interval_seconds=60)
        sweeper.start_background()
        first = sweeper._thread
        try:
            sweeper.start_background()
            assert sweeper._thread is first
        finally:
            sweeper.stop()
