"""
Authentication API endpoints.

Provides endpoints for:
- POST /api/auth/login - Exchange username/password for a bearer token
- GET  /api/auth/me - Identity behind the current token
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from reliefhub.auth import require_auth
from reliefhub.errors import BadRequest, Unauthorized

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    password = data.get('password')

    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        raise BadRequest('Username and password required')

    provider = current_app.config['IDENTITY_PROVIDER']
    identity = provider.authenticate(username, password)
    if identity is None:
        logger.warning(f'Failed login attempt for username: {username}')
        raise Unauthorized('Invalid credentials')

    logger.info(f'User logged in: {username}')
    return jsonify({
        'token': provider.issue_token(identity),
        'user': identity.to_dict(),
    })


@auth_bp.route('/me', methods=['GET'])
@require_auth
def me():
    return jsonify({'user': g.identity.to_dict()})
