"""Tests for proximity search and fallback synthesis."""

import random

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from reliefhub.errors import InternalError, NotFound
from reliefhub.models import Resource
from reliefhub.services.locator import FALLBACK_CATALOG, ResourceLocator

from tests.conftest import NYC, max_longitude_point

TIMES_SQUARE = (40.7580, -73.9855)
PHILADELPHIA = (39.9526, -75.1652)


@pytest.fixture
def locator(session_factory):
    return ResourceLocator(
        session_factory=session_factory,
        fallback_location=NYC,
        jitter_degrees=0.05,
        default_radius_m=10000,
        rng=random.Random(7),
    )


def _resource_count(session_factory) -> int:
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(Resource))


def test_unknown_disaster(locator):
    with pytest.raises(NotFound):
        locator.find_resources('does-not-exist', center=NYC)


def test_radius_filter(locator, disaster_id, make_resource):
    make_resource(disaster_id, name='Downtown Shelter', lat=NYC[0], lng=NYC[1])
    make_resource(disaster_id, name='Midtown Clinic', type='medical', lat=TIMES_SQUARE[0], lng=TIMES_SQUARE[1])
    make_resource(disaster_id, name='Philly Depot', type='supplies', lat=PHILADELPHIA[0], lng=PHILADELPHIA[1])

    result = locator.find_resources(disaster_id, center=NYC, radius_m=10000)

    assert not result.synthesized
    names = {r['name'] for r in result.resources}
    assert names == {'Downtown Shelter', 'Midtown Clinic'}
    for resource in result.resources:
        assert resource['distance_km'] <= 10.0


def test_resource_at_center_has_zero_distance(locator, disaster_id, make_resource):
    make_resource(disaster_id, lat=NYC[0], lng=NYC[1])

    result = locator.find_resources(disaster_id, center=NYC)

    assert result.resources[0]['distance_km'] == 0.0


def test_wider_radius_includes_more(locator, disaster_id, make_resource):
    make_resource(disaster_id, name='Downtown Shelter', lat=NYC[0], lng=NYC[1])
    make_resource(disaster_id, name='Philly Depot', lat=PHILADELPHIA[0], lng=PHILADELPHIA[1])

    result = locator.find_resources(disaster_id, center=NYC, radius_m=200_000)

    assert result.total == 2


def test_category_filter(locator, disaster_id, make_resource):
    make_resource(disaster_id, name='Downtown Shelter', type='shelter', lat=NYC[0], lng=NYC[1])
    make_resource(disaster_id, name='Midtown Clinic', type='medical', lat=TIMES_SQUARE[0], lng=TIMES_SQUARE[1])

    result = locator.find_resources(disaster_id, center=NYC, category='medical')

    assert [r['name'] for r in result.resources] == ['Midtown Clinic']


def test_resources_of_other_disasters_are_ignored(locator, make_disaster, make_resource):
    first = make_disaster(title='Flood')
    second = make_disaster(title='Fire')
    make_resource(second, lat=NYC[0], lng=NYC[1])

    result = locator.find_resources(first, center=NYC)

    assert result.synthesized


def test_no_center_means_no_distance(locator, disaster_id, make_resource):
    make_resource(disaster_id, lat=PHILADELPHIA[0], lng=PHILADELPHIA[1])
    make_resource(disaster_id, name='Unplaced Depot')

    result = locator.find_resources(disaster_id)

    assert result.total == 2
    assert all('distance_km' not in r for r in result.resources)
    assert result.to_dict()['search_center'] is None


def test_unplaced_resources_excluded_from_centered_search(locator, disaster_id, make_resource):
    make_resource(disaster_id, name='Unplaced Depot')
    make_resource(disaster_id, name='Downtown Shelter', lat=NYC[0], lng=NYC[1])

    result = locator.find_resources(disaster_id, center=NYC)

    assert [r['name'] for r in result.resources] == ['Downtown Shelter']


def test_high_latitude_wide_radius_keeps_poleward_resource(locator, disaster_id, make_resource):
    # About 1820 km away, but 55 degrees of longitude east of a 70N center
    make_resource(disaster_id, name='Svalbard Depot', lat=80.0, lng=55.0)

    result = locator.find_resources(disaster_id, center=(70.0, 0.0), radius_m=2_000_000)

    assert not result.synthesized
    assert [r['name'] for r in result.resources] == ['Svalbard Depot']
    assert result.resources[0]['distance_km'] == pytest.approx(1819.8, abs=0.5)


def test_resource_on_radius_boundary_is_included(locator, disaster_id, make_resource):
    lat, lng = max_longitude_point(70.0, 2000.0)
    make_resource(disaster_id, name='Edge Camp', lat=lat, lng=lng)

    # One extra meter absorbs float rounding in the distance itself
    result = locator.find_resources(disaster_id, center=(70.0, 0.0), radius_m=2_000_001)

    assert [r['name'] for r in result.resources] == ['Edge Camp']


class TestFallback:
    def test_synthesizes_catalog_around_center(self, locator, disaster_id, session_factory):
        center = (34.0522, -118.2437)

        result = locator.find_resources(disaster_id, center=center)

        assert result.synthesized
        assert result.total == len(FALLBACK_CATALOG) == 5
        assert {r['type'] for r in result.resources} == {
            'shelter', 'medical', 'food', 'supplies', 'housing'
        }
        assert len({r['id'] for r in result.resources}) == 5
        for resource in result.resources:
            assert abs(resource['latitude'] - center[0]) <= 0.05
            assert abs(resource['longitude'] - center[1]) <= 0.05
            assert resource['distance_km'] >= 0
            assert resource['location_name'] == f'{resource["name"]} Location'

        # Synthesized entries are never persisted
        assert _resource_count(session_factory) == 0

    def test_without_center_uses_fallback_location(self, locator, disaster_id):
        result = locator.find_resources(disaster_id)

        assert result.synthesized
        for resource in result.resources:
            assert abs(resource['latitude'] - NYC[0]) <= 0.05
            assert 'distance_km' not in resource

    def test_empty_category_still_returns_full_catalog(self, locator, disaster_id):
        result = locator.find_resources(disaster_id, center=NYC, category='other')
        assert result.total == 5

    def test_positions_follow_random_source(self, session_factory, disaster_id):
        def run(seed):
            locator = ResourceLocator(session_factory=session_factory, rng=random.Random(seed))
            result = locator.find_resources(disaster_id, center=NYC)
            return [(r['latitude'], r['longitude']) for r in result.resources]

        assert run(3) == run(3)
        assert run(3) != run(4)


def test_response_shape(locator, disaster_id):
    payload = locator.find_resources(disaster_id, center=NYC, radius_m=5000).to_dict()

    assert payload['disaster_id'] == disaster_id
    assert payload['disaster_title'] == 'NYC Flood'
    assert payload['search_center'] == {'lat': NYC[0], 'lng': NYC[1]}
    assert payload['search_radius_km'] == 5.0
    assert payload['total_resources'] == len(payload['resources'])
    assert 'last_updated' in payload


def test_datastore_failure_is_internal_error():
    def broken_factory():
        raise OperationalError('SELECT 1', {}, Exception('timeout'))

    locator = ResourceLocator(session_factory=broken_factory)

    with pytest.raises(InternalError):
        locator.find_resources('any', center=NYC)
