"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  — simple 200 for load balancers
    GET /api/v1/health/live   — dependency health (database, Redis)
"""

import logging
import time

import redis as redis_lib
from flask import Blueprint, current_app, jsonify

from workboard.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Simple readiness probe — always 200 if app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": "database unreachable"}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    # ── Redis (rate limiter storage; optional) ───────────────────────
    storage_uri = current_app.config.get("RATELIMIT_STORAGE_URI") or ""
    if storage_uri.startswith("redis"):
        try:
            t0 = time.perf_counter()
            redis_lib.from_url(storage_uri, socket_timeout=2).ping()
            redis_ms = (time.perf_counter() - t0) * 1000
            checks["redis"] = {"status": "ok", "latency_ms": round(redis_ms, 1)}
        except redis_lib.RedisError as exc:
            checks["redis"] = {"status": "error", "detail": "redis unreachable"}
            logger.warning("Health check — redis failed: %s", exc)
            # Redis only backs rate limits; don't fail overall health
    else:
        checks["redis"] = {"status": "skipped", "detail": "rate limiter uses in-process storage"}

    checks["app"] = {
        "name": "Workboard",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
