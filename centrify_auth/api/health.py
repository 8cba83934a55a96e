"""Health check endpoints."""
from flask import Blueprint, current_app

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Ready once the backend has a stored configuration."""
    store = current_app.config.get("CONFIG_STORE")
    if store is None or store.load() is None:
        return ("not configured", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
