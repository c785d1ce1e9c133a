"""
JWT Auth Middleware — Parses JWT from Authorization header, sets g.jwt_*.

The middleware never rejects a request by itself. It only resolves the
bearer token into ``g.jwt_user_id`` / ``g.jwt_role``; routes that need an
identity use ``workboard.auth.require_session``, which raises 401 when
nothing was resolved here.
"""

import logging

import jwt as pyjwt
from flask import g, request

from workboard.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)


# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_role = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            logger.info("Expired access token on %s %s", request.method, path)
            return
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected access token on %s %s: %s", request.method, path, exc)
            return

        g.jwt_user_id = payload["sub"]
        g.jwt_role = payload.get("role")
