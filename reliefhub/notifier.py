"""
Change notifier - broadcasts mutation events to connected clients.

Events are published either globally (every connection) or to one
disaster's group. Publishing is fire-and-forget:
- no retry and no replay; a disconnected client re-fetches state
- an empty group silently drops the event
- delivery errors are logged, never raised into the request that mutated

Connection lifecycle: Connected -> (joined zero or more groups) -> Disconnected.
Group membership ends with the connection.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)

# Scope value for events delivered to every connection
GLOBAL_SCOPE = None

Listener = Callable[[str, Any], None]


def disaster_room(disaster_id: str) -> str:
    """Group name for subscribers of one disaster."""
    return f'disaster_{disaster_id}'


class ChangeNotifier:
    """
    Interface for publishing mutation events.

    scope is GLOBAL_SCOPE (None) for all connections, or a disaster id for
    that disaster's group.
    """

    def publish(self, scope: Optional[str], event: str, payload: Any) -> None:
        raise NotImplementedError

    def subscribe(self, connection_id: str, disaster_id: str) -> None:
        raise NotImplementedError

    def unsubscribe(self, connection_id: str, disaster_id: str) -> None:
        raise NotImplementedError

    def disconnect(self, connection_id: str) -> None:
        """Release everything held for a terminated connection."""
        pass


class NullNotifier(ChangeNotifier):
    """Drops every event. For scripts and tests that don't observe broadcasts."""

    def publish(self, scope: Optional[str], event: str, payload: Any) -> None:
        logger.debug(f'Dropped {event} event (scope={scope})')

    def subscribe(self, connection_id: str, disaster_id: str) -> None:
        pass

    def unsubscribe(self, connection_id: str, disaster_id: str) -> None:
        pass


class SocketIONotifier(ChangeNotifier):
    """
    Publishes through Flask-SocketIO rooms.

    Socket.IO itself tracks room membership and drops a connection's rooms
    when it disconnects, so disconnect() has nothing to release.
    """

    namespace = '/'

    def __init__(self, socketio):
        self.socketio = socketio

    def publish(self, scope: Optional[str], event: str, payload: Any) -> None:
        try:
            if scope is GLOBAL_SCOPE:
                self.socketio.emit(event, payload, namespace=self.namespace)
            else:
                self.socketio.emit(
                    event,
                    payload,
                    to=disaster_room(scope),
                    namespace=self.namespace,
                )
            logger.debug(f'Published {event} (scope={scope or "global"})')
        except Exception as e:
            logger.error(f'Failed to publish {event} (scope={scope}): {e}')

    def subscribe(self, connection_id: str, disaster_id: str) -> None:
        self.socketio.server.enter_room(
            connection_id, disaster_room(disaster_id), namespace=self.namespace
        )

    def unsubscribe(self, connection_id: str, disaster_id: str) -> None:
        self.socketio.server.leave_room(
            connection_id, disaster_room(disaster_id), namespace=self.namespace
        )


class LocalNotifier(ChangeNotifier):
    """
    In-process notifier with explicit listeners.

    Each connection registers a listener callback; publish() invokes the
    listeners of the targeted connections synchronously. Nothing is queued,
    so an event with no matching listener is gone.
    """

    def __init__(self):
        self._listeners: Dict[str, Listener] = {}
        self._groups: Dict[str, Set[str]] = defaultdict(set)
        self._lock = threading.RLock()
        self._published = 0
        self._delivered = 0

    def connect(self, connection_id: str, listener: Listener) -> None:
        with self._lock:
            self._listeners[connection_id] = listener

    def subscribe(self, connection_id: str, disaster_id: str) -> None:
        with self._lock:
            self._groups[disaster_room(disaster_id)].add(connection_id)

    def unsubscribe(self, connection_id: str, disaster_id: str) -> None:
        room = disaster_room(disaster_id)
        with self._lock:
            members = self._groups.get(room)
            if members is None:
                return
            members.discard(connection_id)
            if not members:
                del self._groups[room]

    def disconnect(self, connection_id: str) -> None:
        with self._lock:
            self._listeners.pop(connection_id, None)
            for room in list(self._groups):
                self._groups[room].discard(connection_id)
                if not self._groups[room]:
                    del self._groups[room]

    def members(self, disaster_id: str) -> Set[str]:
        with self._lock:
            return set(self._groups.get(disaster_room(disaster_id), ()))

    def publish(self, scope: Optional[str], event: str, payload: Any) -> None:
        with self._lock:
            self._published += 1
            if scope is GLOBAL_SCOPE:
                targets = list(self._listeners.items())
            else:
                members = self._groups.get(disaster_room(scope), ())
                targets = [
                    (cid, self._listeners[cid])
                    for cid in members
                    if cid in self._listeners
                ]

        for connection_id, listener in targets:
            try:
                listener(event, payload)
                self._delivered += 1
            except Exception as e:
                logger.error(f'Listener {connection_id} failed on {event}: {e}')

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                'connections': len(self._listeners),
                'groups': len(self._groups),
                'published': self._published,
                'delivered': self._delivered,
            }
