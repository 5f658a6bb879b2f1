# backend/chaintrack/routes/system.py
"""
System health endpoint.

Checks database connectivity and reports row counts for the core tables.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, Profile, SessionToken, SupplyChainTransaction
from chaintrack.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        profile_count = db.session.query(Profile).count()
        product_count = db.session.query(Product).count()
        transaction_count = db.session.query(SupplyChainTransaction).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "profiles": profile_count,
                "products": product_count,
                "transactions": transaction_count,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Liveness plus database check.

    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
        }
    }

    return response, 200 if healthy else 503
