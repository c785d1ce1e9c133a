"""Standardised API error responses.

Usage
-----
    from workboard.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Stage not found")
    return api_error(E.VALIDATION_INVALID, "Invalid stage for this project")

``register_error_handlers(app)`` maps the board exceptions in
``workboard.core.exceptions`` onto these responses app-wide, so views only
raise.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from workboard.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    UnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Auth – HTTP 401 / 403
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Transport – HTTP 405 / 429
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # Server – HTTP 500 / 503
    INTERNAL = "ERR_INTERNAL"
    UNAVAILABLE = "ERR_UNAVAILABLE"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.RATE_LIMITED: 429,
    E.INTERNAL: 500,
    E.UNAVAILABLE: 503,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (offending field, rejected ids, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def _not_found_message(error: NotFoundError) -> str:
    # Ids and scope stay in the logs; the client only learns what was missing.
    return f"{error.resource} not found"


def register_error_handlers(app):
    """Translate board exceptions and HTTP errors into ``api_error`` bodies."""

    @app.errorhandler(UnauthorizedError)
    def _handle_unauthorized(error: UnauthorizedError):
        return api_error(E.UNAUTHORIZED, str(error))

    @app.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        logger.info("Forbidden %s %s action=%s", request.method, request.path, error.action)
        return api_error(E.FORBIDDEN, str(error))

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.debug("Not found on %s %s: %s", request.method, request.path, error)
        return api_error(E.NOT_FOUND, _not_found_message(error))

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @app.errorhandler(UnavailableError)
    def _handle_unavailable(error: UnavailableError):
        response, status = api_error(E.UNAVAILABLE, str(error))
        response.headers["Retry-After"] = "1"
        return response, status

    @app.errorhandler(404)
    def _handle_404(error):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _handle_405(error):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(429)
    def _handle_429(error):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"retry_after": error.description})

    @app.errorhandler(HTTPException)
    def _handle_http(error: HTTPException):
        return api_error(E.VALIDATION_INVALID, error.description or error.name, status=error.code)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        logger.exception("Unexpected error on %s %s endpoint=%s",
                         request.method, request.path, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
