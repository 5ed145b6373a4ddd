# flask_app/routes/health.py

"""
Liveness and metrics endpoints
"""

from datetime import datetime, timezone

from flask import Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest


def register_health_routes(app):
    """Register health check and metrics routes"""

    @app.route(app.config.get("HEALTH_CHECK_ENDPOINT", "/health"), methods=["GET"])
    def health():
        """Liveness probe; does not touch the contact store."""
        return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}), 200

    if app.config.get("MONITORING_ENABLED", False):

        @app.route(app.config.get("METRICS_ENDPOINT", "/metrics"), methods=["GET"])
        def metrics():
            return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
