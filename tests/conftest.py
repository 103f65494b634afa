"""Shared fixtures: in-memory database, fixed clock, local notifier, app."""

import math
import random
import uuid
from datetime import datetime, timedelta

import pytest

from reliefhub.app import create_app
from reliefhub.cache import CacheStore
from reliefhub.geo import EARTH_RADIUS_KM
from reliefhub.models import (
    Disaster,
    Resource,
    build_engine,
    init_db,
    make_session_factory,
)
from reliefhub.notifier import LocalNotifier

NYC = (40.7128, -74.0060)

OWNER = 'netrunnerX'


def auth_header(user_id: str = OWNER) -> dict:
    return {'Authorization': f'Bearer {user_id}'}


def max_longitude_point(center_lat, radius_km):
    """Point on a circle around (center_lat, 0) with the largest longitude."""
    angular = radius_km / EARTH_RADIUS_KM
    lat = math.asin(math.sin(math.radians(center_lat)) / math.cos(angular))
    lng = math.asin(math.sin(angular) / math.cos(math.radians(center_lat)))
    return math.degrees(lat), math.degrees(lng)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2025, 6, 20, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class EventRecorder:
    """Listener that records every (event, payload) it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, event):
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def engine():
    eng = build_engine('sqlite://', query_timeout_seconds=5)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(session_factory, clock):
    return CacheStore(session_factory=session_factory, clock=clock)


@pytest.fixture
def notifier():
    return LocalNotifier()


@pytest.fixture
def make_disaster(session_factory):
    def _make(title='NYC Flood', tags=None, owner_id=OWNER):
        disaster = Disaster(
            id=str(uuid.uuid4()),
            title=title,
            location_name='Manhattan, NYC',
            description='Heavy flooding in Manhattan',
            tags=list(tags or []),
            owner_id=owner_id,
            audit_trail=[],
            latitude=NYC[0],
            longitude=NYC[1],
        )
        with session_factory() as session:
            session.add(disaster)
            session.commit()
        return disaster.id
    return _make


@pytest.fixture
def disaster_id(make_disaster):
    return make_disaster()


@pytest.fixture
def make_resource(session_factory):
    def _make(disaster_id, name='Red Cross Shelter', type='shelter', lat=None, lng=None, capacity=50):
        resource = Resource(
            id=str(uuid.uuid4()),
            disaster_id=disaster_id,
            name=name,
            location_name=f'{name} Location',
            type=type,
            capacity=capacity,
            contact_info={'phone': '(555) 000-0000'},
            latitude=lat,
            longitude=lng,
        )
        with session_factory() as session:
            session.add(resource)
            session.commit()
        return resource.id
    return _make


@pytest.fixture
def app(engine, notifier, clock):
    return create_app(
        start_sweeper=False,
        db_engine=engine,
        notifier=notifier,
        clock=clock,
        rng=random.Random(42),
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def subscriber(notifier):
    """A connection listening to everything it is subscribed to."""
    recorder = EventRecorder()
    notifier.connect('test-connection', recorder)
    recorder.connection_id = 'test-connection'
    return recorder
