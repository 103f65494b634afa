"""
Content feed API endpoints.

Provides endpoints for:
- GET /api/social-media/<disaster_id> - Prioritized social media posts
- GET /api/updates/<disaster_id> - Official updates (source_type, urgency filters)
"""

from flask import Blueprint, current_app, jsonify, request

social_media_bp = Blueprint('social_media', __name__, url_prefix='/api/social-media')
updates_bp = Blueprint('updates', __name__, url_prefix='/api/updates')


@social_media_bp.route('/<disaster_id>', methods=['GET'])
def get_social_media(disaster_id: str):
    service = current_app.config['FEED_SERVICE']
    return jsonify(service.social_media(disaster_id))


@updates_bp.route('/<disaster_id>', methods=['GET'])
def get_official_updates(disaster_id: str):
    service = current_app.config['FEED_SERVICE']
    return jsonify(service.official_updates(
        disaster_id,
        source_type=request.args.get('source_type') or None,
        urgency=request.args.get('urgency') or None,
    ))
