"""
System status API endpoints.

Provides endpoints for:
- GET /api/health - Liveness check
- GET /api/status - Database connectivity, cache statistics, sweeper state
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from reliefhub.config import config

logger = logging.getLogger(__name__)

system_bp = Blueprint('system', __name__, url_prefix='/api')

_started_at = time.time()


@system_bp.route('/health', methods=['GET'])
def health():
    """Simple health check endpoint."""
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'uptime_seconds': round(time.time() - _started_at, 1),
    })


@system_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - Database connectivity
    - Cache statistics
    - Cache sweeper state
    - Configuration info
    """
    start_time = time.perf_counter()

    # Check database connectivity
    db_ok = True
    try:
        with current_app.config['SESSION_FACTORY']() as session:
            session.execute(text('SELECT 1'))
    except Exception as e:
        db_ok = False
        logger.error(f'Database health check failed: {e}')

    sweeper = current_app.config.get('CACHE_SWEEPER')
    sweeper_stats = sweeper.stats if sweeper else {'running': False}

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'status': 'healthy' if db_ok else 'degraded',
        'database': {
            'connected': db_ok,
            'type': 'sqlite' if config.database.is_sqlite else 'postgresql',
        },
        'cache': current_app.config['CACHE_STORE'].stats,
        'sweeper': sweeper_stats,
        'config': {
            'resource_cache_ttl_seconds': config.cache.resource_ttl_seconds,
            'feed_cache_ttl_seconds': config.cache.feed_ttl_seconds,
            'default_search_radius_m': config.search.default_radius_m,
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })
