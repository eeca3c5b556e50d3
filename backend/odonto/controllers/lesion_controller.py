from flask import Blueprint

from odonto.core.api_utils import api_response, get_json_body
from odonto.core.auth_decorators import jwt_required
from odonto.core.limiter_config import WRITE_LIMIT, limiter
from odonto.db.session import SessionLocal
from odonto.repositories.lesion_repo import LesionRepository
from odonto.schemas.dtos import LesionCreateRequest, LesionUpdateRequest
from odonto.services.lesion_service import LesionService

lesion_bp = Blueprint("lesions", __name__, url_prefix="/api/lesions")


@lesion_bp.route("/", methods=["GET"])
@jwt_required
def list_lesions():
    db = SessionLocal()
    try:
        items = LesionService(LesionRepository(db)).list_lesions()
        return api_response(True, "Lesions retrieved", [item.to_dict() for item in items])
    finally:
        db.close()


@lesion_bp.route("/active", methods=["GET"])
@jwt_required
def list_active_lesions():
    db = SessionLocal()
    try:
        items = LesionService(LesionRepository(db)).get_active_lesions()
        return api_response(
            True, "Active lesions retrieved", [item.to_dict() for item in items]
        )
    finally:
        db.close()


@lesion_bp.route("/categories", methods=["GET"])
@jwt_required
def list_categories():
    db = SessionLocal()
    try:
        categories = LesionService(LesionRepository(db)).get_categories()
        return api_response(True, "Lesion categories retrieved", categories)
    finally:
        db.close()


@lesion_bp.route("/category/<category>", methods=["GET"])
@jwt_required
def get_by_category(category):
    db = SessionLocal()
    try:
        items = LesionService(LesionRepository(db)).get_by_category(category)
        return api_response(True, "Lesions retrieved", [item.to_dict() for item in items])
    finally:
        db.close()


@lesion_bp.route("/<lesion_id>", methods=["GET"])
@jwt_required
def get_lesion(lesion_id):
    db = SessionLocal()
    try:
        lesion = LesionService(LesionRepository(db)).get_lesion(lesion_id)
        return api_response(True, "Lesion retrieved", lesion.to_dict())
    finally:
        db.close()


@lesion_bp.route("/", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def create_lesion():
    create_request = LesionCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        lesion_id = LesionService(LesionRepository(db)).create_lesion(create_request)
        return api_response(True, "Lesion created", {"id": lesion_id}, 201)
    finally:
        db.close()


@lesion_bp.route("/<lesion_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def update_lesion(lesion_id):
    update_request = LesionUpdateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        lesion = LesionService(LesionRepository(db)).update_lesion(
            lesion_id, update_request
        )
        return api_response(True, "Lesion updated", lesion.to_dict())
    finally:
        db.close()


@lesion_bp.route("/<lesion_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def delete_lesion(lesion_id):
    db = SessionLocal()
    try:
        LesionService(LesionRepository(db)).delete_lesion(lesion_id)
        return api_response(True, "Lesion deleted")
    finally:
        db.close()


@lesion_bp.route("/<lesion_id>/activate", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def activate_lesion(lesion_id):
    db = SessionLocal()
    try:
        lesion = LesionService(LesionRepository(db)).activate_lesion(lesion_id)
        return api_response(True, "Lesion activated", lesion.to_dict())
    finally:
        db.close()


@lesion_bp.route("/<lesion_id>/deactivate", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def deactivate_lesion(lesion_id):
    db = SessionLocal()
    try:
        lesion = LesionService(LesionRepository(db)).deactivate_lesion(lesion_id)
        return api_response(True, "Lesion deactivated", lesion.to_dict())
    finally:
        db.close()
