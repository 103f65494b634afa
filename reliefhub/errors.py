"""
API error taxonomy.

Services raise these; the handlers registered by register_error_handlers()
render them as {"error": message} with the matching status code. Datastore
failures are logged where they happen and re-raised as InternalError with a
generic message so no driver detail reaches clients.
"""

import logging

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors that map directly to an HTTP response."""
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {'error': self.message}


class BadRequest(APIError):
    status_code = 400
    default_message = 'Bad request'


class Unauthorized(APIError):
    status_code = 401
    default_message = 'Authentication required'


class Forbidden(APIError):
    status_code = 403
    default_message = 'Forbidden'


class NotFound(APIError):
    status_code = 404
    default_message = 'Not found'


class InternalError(APIError):
    status_code = 500
    default_message = 'Internal server error'


def register_error_handlers(app: Flask) -> None:
    """Render every error as JSON."""

    @app.errorhandler(APIError)
    def handle_api_error(e: APIError):
        if e.status_code >= 500:
            logger.error(f'Request failed: {e.message}')
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e: SQLAlchemyError):
        logger.error(f'Unhandled database error: {e}')
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({'error': e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.exception(f'Unexpected error: {e}')
        return jsonify({'error': 'Internal server error'}), 500
