# flask_app/utils/error_handler.py

"""
JSON error handlers shared by all routes.
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException

from flask_app.models import db


def init_error_handlers(app):
    """Register JSON error responses on the application"""

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Route not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(400)
    def bad_request_error(error):
        description = getattr(error, "description", None) or "Bad request"
        return jsonify({"error": description}), 400

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        original = getattr(error, "original_exception", None) or error
        app.logger.error(f"Unhandled error: {original}", exc_info=original)
        return jsonify({"error": "Internal Server Error", "message": str(original)}), 500

    @app.errorhandler(Exception)
    def unhandled_exception(error):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        app.logger.error(f"Unhandled exception: {error}", exc_info=error)
        return jsonify({"error": "Internal Server Error", "message": str(error)}), 500
