from flask import Blueprint

from odonto.core.api_utils import api_response, get_json_body
from odonto.core.auth_decorators import jwt_required
from odonto.core.limiter_config import WRITE_LIMIT, limiter
from odonto.db.session import SessionLocal
from odonto.repositories.lesion_repo import LesionRepository
from odonto.repositories.odontogram_repo import OdontogramRepository
from odonto.repositories.patient_repo import PatientRepository
from odonto.repositories.treatment_repo import TreatmentRepository
from odonto.schemas.dtos import (
    LesionRecordCreateRequest,
    PerformedProcedureCreateRequest,
    ToothRecordCreateRequest,
)
from odonto.services.odontogram_service import OdontogramService

odontogram_bp = Blueprint("odontograms", __name__, url_prefix="/api/odontograms")


def _service(db) -> OdontogramService:
    return OdontogramService(
        OdontogramRepository(db),
        PatientRepository(db),
        LesionRepository(db),
        TreatmentRepository(db),
    )


@odontogram_bp.route("/patient/<patient_id>", methods=["GET"])
@jwt_required
def get_by_patient(patient_id):
    db = SessionLocal()
    try:
        odontogram = _service(db).get_by_patient(patient_id)
        return api_response(True, "Odontogram retrieved", odontogram.to_dict())
    finally:
        db.close()


@odontogram_bp.route("/patient/<patient_id>", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def create_for_patient(patient_id):
    db = SessionLocal()
    try:
        odontogram_id = _service(db).create_for_patient(patient_id)
        return api_response(True, "Odontogram created", {"id": odontogram_id}, 201)
    finally:
        db.close()


@odontogram_bp.route("/<odontogram_id>/tooth", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def add_tooth_record(odontogram_id):
    tooth_request = ToothRecordCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        odontogram = _service(db).add_tooth_record(odontogram_id, tooth_request)
        return api_response(True, "Tooth record added", odontogram.to_dict(), 201)
    finally:
        db.close()


@odontogram_bp.route("/<odontogram_id>/tooth/<int:tooth_number>/lesion", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def add_lesion_record(odontogram_id, tooth_number):
    """Record a lesion on a tooth.

    Expected JSON: {"lesion_id", "affected_surfaces": [..],
    "detection_date"? (defaults to today), "notes"?}
    """
    lesion_request = LesionRecordCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        odontogram = _service(db).add_lesion_record(
            odontogram_id, tooth_number, lesion_request
        )
        return api_response(True, "Lesion recorded", odontogram.to_dict(), 201)
    finally:
        db.close()


@odontogram_bp.route(
    "/<odontogram_id>/tooth/<int:tooth_number>/procedure", methods=["POST"]
)
@limiter.limit(WRITE_LIMIT)
@jwt_required
def add_performed_procedure(odontogram_id, tooth_number):
    procedure_request = PerformedProcedureCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        odontogram = _service(db).add_performed_procedure(
            odontogram_id, tooth_number, procedure_request
        )
        return api_response(True, "Procedure recorded", odontogram.to_dict(), 201)
    finally:
        db.close()


@odontogram_bp.route(
    "/<odontogram_id>/tooth/<int:tooth_number>/active-lesions", methods=["GET"]
)
@jwt_required
def get_active_lesions(odontogram_id, tooth_number):
    db = SessionLocal()
    try:
        lesions = _service(db).get_active_lesions(odontogram_id, tooth_number)
        return api_response(True, "Active lesions retrieved", lesions)
    finally:
        db.close()
