"""
Project Pulse
Authentication blueprint.

Endpoints:
    POST /api/auth/login   - {username, password} → user record
"""

from flask import Blueprint, Response, jsonify, request

from pulse.services import member_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """Return the user record for valid credentials.

    A mismatch answers 401 with a plain-text body the client shows as is.
    """
    data = request.get_json(silent=True) or {}
    user = member_service.authenticate(data.get("username"), data.get("password"))
    if user is None:
        return Response("Invalid username or password", status=401, mimetype="text/plain")
    return jsonify(user.to_dict())
