"""
Socket.IO event handlers.

Clients join a disaster's group to receive its events:

    client -> join_disaster   (disaster id, or {"disaster_id": ...})
    server -> joined_disaster {"disaster_id": ...}
    client -> leave_disaster  (same payload)
    server -> left_disaster   {"disaster_id": ...}

Global events (disaster_created/updated/deleted) reach every connection
without joining. There is no replay: a client that reconnects must
re-fetch state over REST.
"""

import logging
from typing import Any, Optional

from flask import request
from flask_socketio import SocketIO, emit

from reliefhub.notifier import ChangeNotifier

logger = logging.getLogger(__name__)


def _disaster_id(data: Any) -> Optional[str]:
    """Accept either a bare id or {"disaster_id": id}."""
    if isinstance(data, dict):
        data = data.get('disaster_id')
    if isinstance(data, (str, int)) and not isinstance(data, bool):
        return str(data).strip() or None
    return None


def register_socket_handlers(socketio: SocketIO, notifier: ChangeNotifier) -> None:
    """Attach connection and group-membership handlers to socketio."""

    @socketio.on('connect')
    def on_connect(*args):
        logger.info(f'Client connected: {request.sid}')

    @socketio.on('join_disaster')
    def on_join_disaster(data=None):
        disaster_id = _disaster_id(data)
        if disaster_id is None:
            emit('error', {'message': 'disaster_id required'})
            return

        notifier.subscribe(request.sid, disaster_id)
        logger.info(f'Client {request.sid} joined disaster room: {disaster_id}')
        emit('joined_disaster', {'disaster_id': disaster_id})

    @socketio.on('leave_disaster')
    def on_leave_disaster(data=None):
        disaster_id = _disaster_id(data)
        if disaster_id is None:
            emit('error', {'message': 'disaster_id required'})
            return

        notifier.unsubscribe(request.sid, disaster_id)
        logger.info(f'Client {request.sid} left disaster room: {disaster_id}')
        emit('left_disaster', {'disaster_id': disaster_id})

    @socketio.on('disconnect')
    def on_disconnect(*args):
        notifier.disconnect(request.sid)
        logger.info(f'Client disconnected: {request.sid}')
