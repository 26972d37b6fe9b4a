# Overview: API error taxonomy and the Flask handlers that turn errors into envelopes.

"""
Every user-facing failure is an ApiError subclass carrying its HTTP status.
Services raise them; the handlers registered here are the only place they are
converted into responses. Anything that is not an ApiError is logged and
answered with a generic 500 so internals never leak into a response body.
"""

from __future__ import annotations

from flask import Flask, current_app, request
from werkzeug.exceptions import HTTPException

from .responses import api_error


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(ApiError):
    """400-level input problem."""
    status_code = 400
    default_message = "Invalid input"


class Unauthenticated(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden: Admin access required"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    """409-level duplicate of a unique key (coupon code, email, ...)."""
    status_code = 409
    default_message = "Resource already exists"


class PaymentVerificationFailed(ApiError):
    status_code = 400
    default_message = "Payment verification failed"


class UpstreamFailure(ApiError):
    """A collaborator (gateway, SMS, mail, storage) failed or is not configured."""
    status_code = 502
    default_message = "Upstream service failed"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class InternalError(ApiError):
    status_code = 500


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            current_app.logger.warning(
                "%s on %s %s: %s", type(exc).__name__, request.method, request.path, exc.message
            )
        return api_error(exc.message, exc.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return api_error(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return api_error(InternalError.default_message, 500)
