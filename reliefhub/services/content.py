"""
Content sources - social media posts and official updates for disasters.

The service layer only depends on the ContentSource interface. The bundled
MockContentSource serves demo content with timestamps relative to "now";
a real ingestion backend would implement the same two methods.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

URGENT_KEYWORDS = ('urgent', 'emergency', 'sos', 'help', 'critical', 'immediate')
MEDIUM_KEYWORDS = ('need', 'looking for', 'available', 'shelter', 'food')

PRIORITY_ORDER = {'high': 3, 'medium': 2, 'low': 1}


def classify_priority(content: str) -> str:
    """Keyword-based priority: high, medium, or low."""
    content_lower = content.lower()
    if any(keyword in content_lower for keyword in URGENT_KEYWORDS):
        return 'high'
    if any(keyword in content_lower for keyword in MEDIUM_KEYWORDS):
        return 'medium'
    return 'low'


def matches_tags(text: str, tags: Sequence[str]) -> bool:
    """True when no tags are given or any tag occurs in text (case-insensitive)."""
    if not tags:
        return True
    text_lower = text.lower()
    return any(tag.lower() in text_lower for tag in tags)


class ContentSource:
    """Interface for disaster-related content providers."""

    def social_posts(self, tags: Sequence[str] = ()) -> List[dict]:
        raise NotImplementedError

    def official_updates(self, tags: Sequence[str] = ()) -> List[dict]:
        raise NotImplementedError

    def source_names(self) -> List[str]:
        raise NotImplementedError


# (id, text, user, minutes ago, likes, retweets, replies, verified)
_MOCK_POSTS = (
    ('1', '#floodrelief Need urgent help in downtown area. Water levels rising fast!',
     'citizen_alert', 60, 45, 23, 12, False),
    ('2', 'Shelter available at Community Center on Main St. Capacity for 200 people. #DisasterRelief',
     'local_responder', 120, 128, 89, 34, True),
    ('3', 'URGENT: Medical supplies needed at Emergency Center. Anyone with first aid supplies please help! #emergency',
     'medical_volunteer', 30, 67, 45, 23, False),
    ('4', 'Roads cleared on Highway 101. Safe passage restored for emergency vehicles. #infrastructure',
     'highway_dept', 90, 89, 56, 18, True),
    ('5', 'Food distribution starting at 3PM at Central Park. Please bring ID. #foodrelief',
     'food_bank_org', 15, 156, 98, 45, True),
)

# (id, title, content, source, source_type, url, minutes ago, urgency)
_MOCK_UPDATES = (
    ('1', 'Emergency Declaration Issued for Affected Areas',
     'Federal emergency declaration has been issued to provide immediate assistance to '
     'affected communities. Relief funds are being mobilized.',
     'FEMA', 'government', 'https://www.fema.gov/press-release/emergency-declaration', 60, 'high'),
    ('2', 'Red Cross Establishes Emergency Shelters',
     'The American Red Cross has opened multiple emergency shelters throughout the affected '
     'region. Trained volunteers are providing food, comfort, and emergency assistance.',
     'American Red Cross', 'relief_org',
     'https://www.redcross.org/about-us/news-and-events/news/shelter-update', 120, 'medium'),
    ('3', 'Transportation Infrastructure Assessment Update',
     'Department of Transportation teams are conducting comprehensive assessments of roads, '
     'bridges, and transit systems. Priority routes for emergency services have been identified.',
     'Department of Transportation', 'government',
     'https://www.transportation.gov/briefings/infrastructure-update', 90, 'low'),
    ('4', 'Medical Response Coordination Center Activated',
     'The National Disaster Medical System has activated coordination centers to manage '
     'medical resources and personnel deployment to affected areas.',
     'HHS ASPR', 'government',
     'https://www.phe.gov/emergency/news/healthalerts/2024/Pages/medical-response.aspx', 30, 'high'),
    ('5', 'Volunteer Coordination and Safety Guidelines',
     'Guidelines for volunteer organizations and spontaneous volunteers have been updated. '
     'Safety protocols and coordination procedures are now in effect.',
     'National Voluntary Organizations Active in Disaster', 'relief_org',
     'https://www.nvoad.org/volunteer-guidelines', 15, 'medium'),
)

# Official sources the mock "scraper" checks
OFFICIAL_SOURCES = (
    {'name': 'FEMA', 'url': 'https://www.fema.gov', 'type': 'government'},
    {'name': 'American Red Cross', 'url': 'https://www.redcross.org', 'type': 'relief_org'},
)


class MockContentSource(ContentSource):
    """Demo content. Only updates from OFFICIAL_SOURCES are returned."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def social_posts(self, tags: Sequence[str] = ()) -> List[dict]:
        now = self._clock()
        posts = []
        for post_id, text, user, minutes_ago, likes, retweets, replies, verified in _MOCK_POSTS:
            if not matches_tags(text, tags):
                continue
            posts.append({
                'id': post_id,
                'post': text,
                'user': user,
                'timestamp': (now - timedelta(minutes=minutes_ago)).isoformat(),
                'engagement': {'likes': likes, 'retweets': retweets, 'replies': replies},
                'verified': verified,
            })
        return posts

    def official_updates(self, tags: Sequence[str] = ()) -> List[dict]:
        now = self._clock()
        sources = {source['name']: source for source in OFFICIAL_SOURCES}
        updates = []
        for (update_id, title, content, source_name, source_type,
             url, minutes_ago, urgency) in _MOCK_UPDATES:
            source = sources.get(source_name)
            if source is None:
                continue
            if not matches_tags(f'{title} {content}', tags):
                continue
            updates.append({
                'id': update_id,
                'title': title,
                'content': content,
                'source': source_name,
                'source_type': source_type,
                'url': url,
                'published_at': (now - timedelta(minutes=minutes_ago)).isoformat(),
                'urgency': urgency,
                'scraped_at': now.isoformat(),
                'source_url': source['url'],
            })
        return updates

    def source_names(self) -> List[str]:
        return [source['name'] for source in OFFICIAL_SOURCES]
