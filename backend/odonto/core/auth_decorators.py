"""
Authentication helpers for the clinic API.

Every ``/api/*`` resource route is protected by ``@jwt_required``: the client
sends the token returned by ``POST /api/auth/login`` as
``Authorization: Bearer <token>``.

Example:
    @patient_bp.route("/", methods=["GET"])
    @jwt_required
    def list_patients():
        ...

Setting ``LOGIN_DISABLED`` in the app config skips the check and installs a
stand-in user on ``g.current_user`` (used by the controller tests).
"""

from functools import wraps
from types import SimpleNamespace
from typing import Any, Optional

from flask import current_app, g, request

from odonto.core.api_utils import api_response
from odonto.core.security import get_user_from_token


def get_current_user() -> Optional[Any]:
    """Return the user authenticated for this request, if any."""
    return g.get("current_user")


def _load_active_user(user_id: str):
    from odonto.db.session import SessionLocal
    from odonto.repositories.user_repo import UserRepository

    db = SessionLocal()
    try:
        return UserRepository(db).get_by_id(user_id)
    finally:
        db.close()


def jwt_required(f):
    """Require a valid Bearer token and set ``g.current_user``.

    Returns 401 when the header is missing, the token is invalid or expired,
    or the user no longer exists or is inactive.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_app.config.get("LOGIN_DISABLED", False):
            g.current_user = SimpleNamespace(
                id="test-user", email="test@odonto.local", name="Test User"
            )
            return f(*args, **kwargs)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_response(
                False,
                "Missing or invalid Authorization header",
                {"error": "unauthorized"},
                401,
            )

        token = auth_header.split(" ", 1)[1].strip()
        user_data = get_user_from_token(token)
        if not user_data:
            return api_response(
                False, "Invalid or expired token", {"error": "unauthorized"}, 401
            )

        user = _load_active_user(user_data["user_id"])
        if user is None or not user.is_active:
            return api_response(
                False, "User not found or inactive", {"error": "unauthorized"}, 401
            )

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function
