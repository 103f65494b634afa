"""
Resource API endpoints.

Provides endpoints for:
- GET  /api/resources/<disaster_id> - Proximity search (cached)
- POST /api/resources - Submit a resource (authenticated, broadcast)
"""

import logging
import math

from flask import Blueprint, current_app, g, jsonify, request

from reliefhub.auth import require_auth
from reliefhub.errors import BadRequest
from reliefhub.geo import parse_point
from reliefhub.models import ResourceType

logger = logging.getLogger(__name__)

resources_bp = Blueprint('resources', __name__, url_prefix='/api/resources')


@resources_bp.route('/<disaster_id>', methods=['GET'])
def search_resources(disaster_id: str):
    """
    Find resources for a disaster, optionally around a point.

    Query parameters:
    - lat, lng: search center (both or neither)
    - radius: search radius in meters (default 10000)
    - type: resource category filter

    Without lat/lng there is no distance filter and no distance_km field.
    """
    try:
        center = parse_point(request.args.get('lat'), request.args.get('lng'))
    except ValueError as e:
        raise BadRequest(str(e))

    radius = request.args.get('radius')
    if radius is not None:
        try:
            radius = float(radius)
        except ValueError:
            raise BadRequest('radius must be a number of meters')
        if not math.isfinite(radius) or radius <= 0:
            raise BadRequest('radius must be a positive number of meters')

    category = request.args.get('type') or None
    if category is not None and category not in ResourceType.values():
        raise BadRequest(f'type must be one of: {", ".join(ResourceType.values())}')

    service = current_app.config['RESOURCE_SERVICE']
    return jsonify(service.search(disaster_id, center, radius, category))


@resources_bp.route('', methods=['POST'])
@require_auth
def create_resource():
    """
    Submit a new resource.

    Body: {disaster_id, name, type, location_name?, lat?, lng?,
           capacity?, contact_info?}

    The created record is broadcast to the disaster's subscribers as
    resources_updated.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest('JSON body required')

    service = current_app.config['RESOURCE_SERVICE']
    resource = service.create(g.identity, data)

    return jsonify({'resource': resource}), 201
