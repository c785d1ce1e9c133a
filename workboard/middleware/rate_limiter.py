"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter
instance is created in workboard/__init__.py with no default limits; this
module applies granular limits per route category.

Usage:
    from workboard.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

# Blueprints whose routes mutate board state
_WRITE_BLUEPRINTS = ("stages", "items", "comments")


def rate_limit_key():
    """Dynamic rate limit key: the token's user if available, else remote IP."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id is not None:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def _is_read_request():
    return flask_request.method in ("GET", "HEAD", "OPTIONS")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to the board blueprints.

    Limits (per user, else per remote IP):
        - Write requests:  60/minute  (POST/PUT/PATCH/DELETE)
        - Read requests:   200/minute (GET, generous for the board UI)
        - Health check:    exempt

    Rate limiting is skipped when RATELIMIT_ENABLED is false (tests).
    """
    if not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled (RATELIMIT_ENABLED=False)")
        return

    for bp_name in _WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, key_func=rate_limit_key, exempt_when=_is_read_request)(bp)
            limiter.limit(READ_LIMIT, key_func=rate_limit_key,
                          exempt_when=lambda: not _is_read_request())(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: write %s, read %s", WRITE_LIMIT, READ_LIMIT)
