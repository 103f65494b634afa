"""
Geocoding API endpoints.

Provides endpoints for:
- POST /api/geocoding - Extract locations from text and geocode each
- POST /api/geocoding/location - Geocode one location name
"""

from flask import Blueprint, current_app, jsonify, request

geocoding_bp = Blueprint('geocoding', __name__, url_prefix='/api/geocoding')


@geocoding_bp.route('', methods=['POST'])
def extract_locations():
    """
    Body: {text} or {description}; text wins when both are given.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}

    service = current_app.config['GEOCODING_SERVICE']
    return jsonify(service.extract_and_geocode(data.get('text') or data.get('description')))


@geocoding_bp.route('/location', methods=['POST'])
def geocode_location():
    """Body: {location_name}"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}

    service = current_app.config['GEOCODING_SERVICE']
    return jsonify(service.geocode_location(data.get('location_name')))
