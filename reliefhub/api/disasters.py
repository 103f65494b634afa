"""
Disaster API endpoints.

Provides endpoints for:
- GET    /api/disasters - List disasters (tag, owner_id, limit, offset)
- GET    /api/disasters/<id> - Get one disaster
- POST   /api/disasters - Create (authenticated)
- PUT    /api/disasters/<id> - Update (owner or admin)
- DELETE /api/disasters/<id> - Delete (owner or admin)
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from reliefhub.auth import require_auth
from reliefhub.errors import BadRequest

logger = logging.getLogger(__name__)

disasters_bp = Blueprint('disasters', __name__, url_prefix='/api/disasters')


def _int_arg(name: str, default: int, minimum: int, maximum: int) -> int:
    try:
        value = int(request.args.get(name, default))
    except ValueError:
        raise BadRequest(f'{name} must be an integer')
    return max(minimum, min(value, maximum))


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise BadRequest('JSON body required')
    return data


@disasters_bp.route('', methods=['GET'])
def list_disasters():
    """
    List disasters, newest first.

    Query parameters:
    - tag: only disasters carrying this tag
    - owner_id: only disasters created by this user
    - limit: max results (default 50, max 200)
    - offset: results to skip (default 0)
    """
    service = current_app.config['DISASTER_SERVICE']
    disasters = service.list(
        tag=request.args.get('tag') or None,
        owner_id=request.args.get('owner_id') or None,
        limit=_int_arg('limit', 50, 1, 200),
        offset=_int_arg('offset', 0, 0, 1_000_000),
    )
    return jsonify({'disasters': disasters})


@disasters_bp.route('/<disaster_id>', methods=['GET'])
def get_disaster(disaster_id: str):
    service = current_app.config['DISASTER_SERVICE']
    return jsonify({'disaster': service.get(disaster_id)})


@disasters_bp.route('', methods=['POST'])
@require_auth
def create_disaster():
    """
    Create a disaster owned by the caller.

    Body: {title, description, location_name?, tags?, lat?, lng?}
    """
    service = current_app.config['DISASTER_SERVICE']
    disaster = service.create(g.identity, _json_body())
    return jsonify({'disaster': disaster}), 201


@disasters_bp.route('/<disaster_id>', methods=['PUT'])
@require_auth
def update_disaster(disaster_id: str):
    service = current_app.config['DISASTER_SERVICE']
    disaster = service.update(g.identity, disaster_id, _json_body())
    return jsonify({'disaster': disaster})


@disasters_bp.route('/<disaster_id>', methods=['DELETE'])
@require_auth
def delete_disaster(disaster_id: str):
    service = current_app.config['DISASTER_SERVICE']
    service.delete(g.identity, disaster_id)
    return jsonify({'message': 'Disaster deleted successfully'})
