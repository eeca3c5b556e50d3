from flask import Blueprint

from odonto.core.api_utils import api_response, get_json_body
from odonto.core.auth_decorators import jwt_required
from odonto.core.limiter_config import WRITE_LIMIT, limiter
from odonto.db.session import SessionLocal
from odonto.repositories.treatment_repo import TreatmentRepository
from odonto.schemas.dtos import TreatmentCreateRequest, TreatmentUpdateRequest
from odonto.services.treatment_service import TreatmentService

treatment_bp = Blueprint("treatments", __name__, url_prefix="/api/treatments")


@treatment_bp.route("/", methods=["GET"])
@jwt_required
def list_treatments():
    db = SessionLocal()
    try:
        items = TreatmentService(TreatmentRepository(db)).list_treatments()
        return api_response(True, "Treatments retrieved", [t.to_dict() for t in items])
    finally:
        db.close()


@treatment_bp.route("/by-category/<category>", methods=["GET"])
@jwt_required
def get_by_category(category):
    db = SessionLocal()
    try:
        items = TreatmentService(TreatmentRepository(db)).get_by_category(category)
        return api_response(True, "Treatments retrieved", [t.to_dict() for t in items])
    finally:
        db.close()


@treatment_bp.route("/<treatment_id>", methods=["GET"])
@jwt_required
def get_treatment(treatment_id):
    db = SessionLocal()
    try:
        treatment = TreatmentService(TreatmentRepository(db)).get_treatment(treatment_id)
        return api_response(True, "Treatment retrieved", treatment.to_dict())
    finally:
        db.close()


@treatment_bp.route("/", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def create_treatment():
    """Add a catalogue entry.

    Expected JSON: {"name", "price", "estimated_duration_minutes",
    "description"?, "category"?, "currency"?}. ``price`` may also be an
    object {"amount", "currency"}.
    """
    create_request = TreatmentCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        treatment_id = TreatmentService(TreatmentRepository(db)).create_treatment(
            create_request
        )
        return api_response(True, "Treatment created", {"id": treatment_id}, 201)
    finally:
        db.close()


@treatment_bp.route("/<treatment_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def update_treatment(treatment_id):
    update_request = TreatmentUpdateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        treatment = TreatmentService(TreatmentRepository(db)).update_treatment(
            treatment_id, update_request
        )
        return api_response(True, "Treatment updated", treatment.to_dict())
    finally:
        db.close()


@treatment_bp.route("/<treatment_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def delete_treatment(treatment_id):
    db = SessionLocal()
    try:
        TreatmentService(TreatmentRepository(db)).delete_treatment(treatment_id)
        return api_response(True, "Treatment deleted")
    finally:
        db.close()
