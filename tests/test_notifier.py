"""Tests for group-scoped event delivery."""

from reliefhub.notifier import GLOBAL_SCOPE, LocalNotifier, NullNotifier, disaster_room

from tests.conftest import EventRecorder


def _connect(notifier, connection_id, *disaster_ids):
    recorder = EventRecorder()
    notifier.connect(connection_id, recorder)
    for disaster_id in disaster_ids:
        notifier.subscribe(connection_id, disaster_id)
    return recorder


def test_room_name():
    assert disaster_room('abc') == 'disaster_abc'


def test_group_event_reaches_members_only():
    notifier = LocalNotifier()
    member = _connect(notifier, 'a', 'd1')
    other = _connect(notifier, 'b', 'd2')

    notifier.publish('d1', 'resources_updated', {'id': 'r1'})

    assert member.events == [('resources_updated', {'id': 'r1'})]
    assert other.events == []


def test_global_event_reaches_everyone():
    notifier = LocalNotifier()
    joined = _connect(notifier, 'a', 'd1')
    idle = _connect(notifier, 'b')

    notifier.publish(GLOBAL_SCOPE, 'disaster_created', {'id': 'd9'})

    assert joined.events == [('disaster_created', {'id': 'd9'})]
    assert idle.events == [('disaster_created', {'id': 'd9'})]


def test_publish_to_empty_group_is_dropped():
    notifier = LocalNotifier()

    notifier.publish('nobody', 'resources_updated', {'id': 'r1'})

    # A later subscriber gets nothing from before it joined
    late = _connect(notifier, 'late', 'nobody')
    assert late.events == []
    assert notifier.stats['delivered'] == 0


def test_unsubscribe_stops_delivery():
    notifier = LocalNotifier()
    recorder = _connect(notifier, 'a', 'd1')

    notifier.unsubscribe('a', 'd1')
    notifier.publish('d1', 'resources_updated', {})

    assert recorder.events == []
    assert notifier.members('d1') == set()


def test_disconnect_releases_memberships():
    notifier = LocalNotifier()
    _connect(notifier, 'a', 'd1', 'd2')
    _connect(notifier, 'b', 'd1')

    notifier.disconnect('a')

    assert notifier.members('d1') == {'b'}
    assert notifier.members('d2') == set()
    assert notifier.stats['connections'] == 1
    assert notifier.stats['groups'] == 1


def test_failing_listener_does_not_block_others():
    notifier = LocalNotifier()

    def explode(event, payload):
        raise RuntimeError('socket closed')

    notifier.connect('broken', explode)
    notifier.subscribe('broken', 'd1')
    healthy = _connect(notifier, 'ok', 'd1')

    notifier.publish('d1', 'resources_updated', {'id': 'r1'})

    assert healthy.events == [('resources_updated', {'id': 'r1'})]


def test_null_notifier_accepts_everything():
    notifier = NullNotifier()
    notifier.subscribe('a', 'd1')
    notifier.publish('d1', 'resources_updated', {})
    notifier.unsubscribe('a', 'd1')
    notifier.disconnect('a')
