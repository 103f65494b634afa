"""Tests for the social media and official update feeds."""

import pytest

from reliefhub.services.content import classify_priority, matches_tags


@pytest.mark.parametrize('text,expected', [
    ('SOS trapped on roof', 'high'),
    ('Need blankets at the school', 'medium'),
    ('Roads reopened this morning', 'low'),
])
def test_classify_priority(text, expected):
    assert classify_priority(text) == expected


def test_matches_tags():
    assert matches_tags('anything at all', [])
    assert matches_tags('#FloodRelief downtown', ['flood'])
    assert not matches_tags('Wildfire smoke', ['flood', 'earthquake'])


class TestSocialMedia:
    def test_sorted_by_priority_then_newest(self, client, disaster_id):
        response = client.get(f'/api/social-media/{disaster_id}')

        assert response.status_code == 200
        data = response.get_json()
        assert [p['id'] for p in data['posts']] == ['3', '1', '4', '5', '2']
        assert data['total_posts'] == 5
        assert data['high_priority_count'] == 3
        assert data['disaster_title'] == 'NYC Flood'

    def test_filtered_by_disaster_tags(self, client, make_disaster):
        disaster_id = make_disaster(tags=['flood'])

        data = client.get(f'/api/social-media/{disaster_id}').get_json()

        assert [p['id'] for p in data['posts']] == ['1']

    def test_broadcast_on_recompute_only(self, client, disaster_id, notifier, subscriber):
        notifier.subscribe(subscriber.connection_id, disaster_id)

        client.get(f'/api/social-media/{disaster_id}')
        client.get(f'/api/social-media/{disaster_id}')

        assert len(subscriber.named('social_media_updated')) == 1

    def test_unknown_disaster(self, client):
        assert client.get('/api/social-media/missing').status_code == 404


class TestOfficialUpdates:
    def test_only_checked_sources_newest_first(self, client, disaster_id):
        data = client.get(f'/api/updates/{disaster_id}').get_json()

        assert [u['id'] for u in data['updates']] == ['1', '2']
        assert data['sources_checked'] == ['FEMA', 'American Red Cross']
        assert data['filters'] == {'source_type': 'all', 'urgency': 'all'}
        assert data['updates'][0]['source_url'] == 'https://www.fema.gov'

    @pytest.mark.parametrize('params,expected', [
        ({'urgency': 'high'}, ['1']),
        ({'source_type': 'relief_org'}, ['2']),
        ({'source_type': 'government', 'urgency': 'medium'}, []),
    ])
    def test_filters(self, client, disaster_id, params, expected):
        data = client.get(f'/api/updates/{disaster_id}', query_string=params).get_json()
        assert [u['id'] for u in data['updates']] == expected

    def test_unknown_disaster(self, client):
        assert client.get('/api/updates/missing').status_code == 404
