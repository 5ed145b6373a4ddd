# flask_app/routes/identity.py

"""
Identity reconciliation endpoint
"""

from flask import current_app, jsonify, request

from flask_app.identity import IdentityService, ResolutionFailure


def _request_payload():
    """Read the body as JSON, falling back to form fields."""
    if request.is_json:
        return request.get_json(silent=True)
    if request.form:
        return request.form.to_dict()
    return request.get_json(silent=True, force=True) or {}


def register_identity_routes(app):
    """Register identity routes"""

    @app.route("/identify", methods=["POST"])
    def identify():
        """
        Resolve an email and/or phone number into its consolidated identity.
        Returns the primary contact id with every known email, phone and
        secondary contact id.
        """
        payload = _request_payload()
        result = IdentityService().identify_payload(payload)

        if result.ok:
            return jsonify(result.view.to_response()), 200

        if result.failure is ResolutionFailure.INVALID_REQUEST:
            return jsonify({"error": result.message}), 400

        current_app.logger.error(f"Identify request failed ({result.failure.value}): {result.message}")
        return jsonify({"error": "Internal Server Error", "message": result.message}), 500
