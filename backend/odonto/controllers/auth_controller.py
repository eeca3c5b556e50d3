from flask import Blueprint

from odonto.core.api_utils import api_response, get_json_body
from odonto.core.auth_decorators import get_current_user, jwt_required
from odonto.core.limiter_config import LOGIN_LIMIT, limiter
from odonto.db.session import SessionLocal
from odonto.repositories.user_repo import UserRepository
from odonto.schemas.dtos import LoginRequest
from odonto.services.auth_service import AuthService

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(LOGIN_LIMIT)
def login():
    """Email/password login.

    Expected JSON: {"email": str, "password": str}
    Returns a Bearer token and the user on success, 401 otherwise.
    """
    login_request = LoginRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        service = AuthService(UserRepository(db))
        result = service.authenticate(login_request)
        return api_response(True, "Login successful", result)
    finally:
        db.close()


@auth_bp.route("/me", methods=["GET"])
@jwt_required
def me():
    user = get_current_user()
    return api_response(
        True,
        "Current user",
        {"id": str(user.id), "email": user.email, "name": user.name},
    )
