"""
ReliefHub Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- Cache store and background expiry sweeper
- Change notifier (Socket.IO rooms by default)
- Domain services
- API routes and Socket.IO handlers

Usage:
    python -m reliefhub.app

Collaborators are injected into create_app(); anything left out is built
from configuration.
"""

import logging
import os
import random
from datetime import datetime
from typing import Callable, Optional

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from sqlalchemy.engine import Engine

from reliefhub.config import config
from reliefhub.models import init_db, make_session_factory, engine as default_engine
from reliefhub.api import (
    auth_bp,
    disasters_bp,
    resources_bp,
    social_media_bp,
    updates_bp,
    geocoding_bp,
    system_bp,
)
from reliefhub.auth import IdentityProvider, StaticIdentityProvider
from reliefhub.cache import CacheStore, CacheSweeper
from reliefhub.errors import register_error_handlers
from reliefhub.notifier import ChangeNotifier, SocketIONotifier
from reliefhub.realtime import register_socket_handlers
from reliefhub.services import (
    ContentSource,
    DisasterService,
    FeedService,
    MockContentSource,
    Geocoder,
    GeocodingService,
    LocationExtractor,
    MockGeocoder,
    RegexLocationExtractor,
    ResourceLocator,
    ResourceService,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def _parse_origins(value: str):
    """'*' or a comma-separated list of origins."""
    if value.strip() == '*':
        return '*'
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def create_app(
    start_sweeper: bool = True,
    db_engine: Optional[Engine] = None,
    notifier: Optional[ChangeNotifier] = None,
    identity_provider: Optional[IdentityProvider] = None,
    content_source: Optional[ContentSource] = None,
    location_extractor: Optional[LocationExtractor] = None,
    geocoder: Optional[Geocoder] = None,
    clock: Optional[Callable[[], datetime]] = None,
    rng: Optional[random.Random] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        start_sweeper: Whether to start the background cache sweeper.
                       Set to False for testing.
        db_engine: Engine to use instead of the configured one
        notifier: Change notifier; defaults to Socket.IO rooms. The
                  Socket.IO join/leave handlers record membership in
                  whichever notifier is given. With a non-Socket.IO
                  notifier (e.g. LocalNotifier) events reach only that
                  notifier's listeners; connected Socket.IO clients can
                  join groups but receive neither group nor global events.
        identity_provider: Token lookup; defaults to the demo user table
        content_source: Feed content; defaults to mock content
        location_extractor: Text-to-location names; defaults to regex patterns
        geocoder: Location name to point; defaults to mock coordinates
        clock: Time source for cache expiry
        rng: Random source for fallback resource and mock geocoder positions

    Returns:
        Configured Flask application instance. The Socket.IO server is
        available as app.extensions['socketio'].
    """
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = config.secret_key

    origins = _parse_origins(config.cors_origins)
    CORS(app, resources={r'/api/*': {'origins': origins}})

    # Initialize database
    bind = db_engine or default_engine
    logger.info('Initializing database...')
    init_db(bind)
    session_factory = make_session_factory(bind)

    # Real-time channel
    socketio = SocketIO()
    notifier = notifier or SocketIONotifier(socketio)
    register_socket_handlers(socketio, notifier)
    socketio.init_app(
        app,
        cors_allowed_origins=origins,
        async_mode='threading',
    )

    # Cache and services
    cache = CacheStore(session_factory=session_factory, clock=clock)
    locator = ResourceLocator(session_factory=session_factory, rng=rng)

    app.config['SESSION_FACTORY'] = session_factory
    app.config['NOTIFIER'] = notifier
    app.config['CACHE_STORE'] = cache
    app.config['IDENTITY_PROVIDER'] = identity_provider or StaticIdentityProvider()
    app.config['RESOURCE_SERVICE'] = ResourceService(
        locator, cache, notifier, session_factory=session_factory
    )
    app.config['DISASTER_SERVICE'] = DisasterService(
        notifier, cache=cache, session_factory=session_factory
    )
    app.config['FEED_SERVICE'] = FeedService(
        content_source or MockContentSource(),
        cache,
        notifier,
        session_factory=session_factory,
    )
    app.config['GEOCODING_SERVICE'] = GeocodingService(
        location_extractor or RegexLocationExtractor(),
        geocoder or MockGeocoder(rng=rng),
        cache,
        clock=clock,
    )

    # Register API blueprints
    app.register_blueprint(resources_bp)
    app.register_blueprint(disasters_bp)
    app.register_blueprint(social_media_bp)
    app.register_blueprint(updates_bp)
    app.register_blueprint(geocoding_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(system_bp)

    register_error_handlers(app)

    # Expired cache rows are removed hourly regardless of traffic
    if start_sweeper:
        sweeper = CacheSweeper(cache)
        sweeper.start_background()
        app.config['CACHE_SWEEPER'] = sweeper
        logger.info(f'Cache sweeper started (interval={sweeper.interval_seconds}s)')
    else:
        app.config['CACHE_SWEEPER'] = None

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()
    socketio = app.extensions['socketio']

    # Get port from environment or default
    port = int(os.environ.get('PORT', 3001))

    logger.info(f'Starting ReliefHub on http://localhost:{port}')

    socketio.run(
        app,
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Disable reloader to prevent duplicate sweeper threads
        allow_unsafe_werkzeug=True,
    )


if __name__ == '__main__':
    run_development_server()
