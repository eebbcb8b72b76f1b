from flask import jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """An error that is reported to the client as ``{"error": message}``."""

    status_code = 400

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        body = dict(self.payload)
        body['error'] = self.message
        return body


class ValidationError(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class NotFound(ApiError):
    status_code = 404


class TooManyRequests(ApiError):
    status_code = 429


def ensure(condition, message, error=ValidationError):
    if not condition:
        raise error(message)


def register_error_handlers(app):
    from . import db

    @app.errorhandler(ApiError)
    def handle_api_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({'error': err.description or err.name}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err):
        db.session.rollback()
        app.logger.exception('Unhandled error: %s', err)
        return jsonify({'error': 'Internal Server Error'}), 500
