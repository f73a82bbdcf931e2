"""Error taxonomy and the one place that turns errors into HTTP responses.

Route handlers never build error responses themselves. They raise one of
the exceptions below and let the handlers registered in
register_error_handlers() translate it into the standard envelope:

    {"success": false, "error": "<message>", "errors": {...}}
"""

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class TavernaError(Exception):
    """Base class for errors that map to a known HTTP status."""
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class AuthError(TavernaError):
    status_code = 401
    default_message = 'Unauthorized, please log in first'


class ForbiddenError(TavernaError):
    status_code = 403
    default_message = 'Forbidden'


class NotFoundError(TavernaError):
    status_code = 404
    default_message = 'Not found'


class ValidationError(TavernaError):
    status_code = 400
    default_message = 'Invalid data'

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        # Field path -> list of messages, e.g. {'hp.current': ['Field required']}
        self.errors = errors


class ConflictError(TavernaError):
    status_code = 409
    default_message = 'Conflict'


def error_response(message, status, errors=None):
    body = {'success': False, 'error': message}
    if errors:
        body['errors'] = errors
    return jsonify(body), status


def register_error_handlers(app):
    from taverna import db

    @app.errorhandler(TavernaError)
    def handle_taverna_error(e):
        # Guards run before writes, but a handler may have flushed before
        # validating a nested field, so never leave half a change pending.
        db.session.rollback()
        logger.info('%s %s -> %s %s', request.method, request.path, e.status_code, e.message)
        return error_response(e.message, e.status_code, getattr(e, 'errors', None))

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        # Unknown routes, wrong methods, oversized bodies, rate limits (429)
        return error_response(e.description or e.name, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        db.session.rollback()
        logger.exception('Unhandled error on %s %s', request.method, request.path)
        return error_response('Internal server error', 500)
