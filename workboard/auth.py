"""
Session resolution for board requests.

Provides:
    - ``SessionUser``: the identity and console role of the caller
    - ``current_session()``: the resolved caller, or None
    - ``require_session``: decorator raising UnauthorizedError (401) when
      the request carries no valid bearer token

Security model:
    - Tokens are verified by ``workboard.middleware.jwt_auth`` before the
      view runs; this module only reads what it placed on ``flask.g``.
    - The role claim is taken from the token as issued. Elevated roles are
      decided in ``workboard.services.permission``.
"""

import functools
from dataclasses import dataclass

from flask import g

from workboard.core.exceptions import UnauthorizedError


@dataclass(frozen=True)
class SessionUser:
    id: int
    role: str | None = None


def current_session() -> SessionUser | None:
    """Return the caller resolved from the bearer token, if any."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id is None:
        return None
    return SessionUser(id=user_id, role=getattr(g, "jwt_role", None))


def require_session(f):
    """
    Decorator: require a resolved session for the endpoint.

    Sets ``g.session_user`` so views and services can attribute writes.
    """

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        user = current_session()
        if user is None:
            raise UnauthorizedError()
        g.session_user = user
        return f(*args, **kwargs)

    return decorated
