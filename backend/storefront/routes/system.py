# Overview: Flask API routes for health and connection diagnostics.

"""
System health and diagnostics endpoints.

/health is cheap and never raises: 200 healthy/degraded, 503 unhealthy.
/api/system/diagnostics returns the full connection probe (engine, SQLite
version, foreign-key enforcement, table names).
"""

import sys

from flask import Blueprint, current_app, jsonify

from ..services.diagnostics_service import check_database_health, connection_diagnostics
from ..responses import internal_error
from storefront.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


@system_bp.get("/health")
def health():
    database_health = check_database_health()

    if database_health["status"] == "unhealthy":
        current_app.logger.error("Database health check failed: %s", database_health.get("error"))
        overall_status, http_status = "unhealthy", 503
    else:
        overall_status, http_status = database_health["status"], 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "order_store_backend": current_app.config.get("ORDER_STORE_BACKEND"),
        "checks": {"database": database_health},
    }, http_status


@system_bp.get("/api/system/diagnostics")
def diagnostics():
    try:
        return jsonify(connection_diagnostics())
    except Exception:
        return internal_error("run connection diagnostics")


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info."""
    return {
        "api_version": "1.0.0",
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
