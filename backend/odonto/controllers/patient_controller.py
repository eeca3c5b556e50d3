"""
Patient controller.

Routes only translate HTTP to service calls; domain errors raised by the
service are turned into JSON responses by the global error handlers.
"""

from flask import Blueprint, request

from odonto.core.api_utils import (
    api_response,
    get_json_body,
    get_pagination_args,
    paginated,
    parse_int,
)
from odonto.core.auth_decorators import jwt_required
from odonto.core.limiter_config import WRITE_LIMIT, limiter
from odonto.db.session import SessionLocal
from odonto.repositories.patient_repo import PatientRepository
from odonto.schemas.dtos import (
    AllergyRequest,
    MedicalHistoryRequest,
    PatientCreateRequest,
    PatientUpdateRequest,
)
from odonto.services.patient_service import PatientService

patient_bp = Blueprint("patients", __name__, url_prefix="/api/Patient")


@patient_bp.route("/", methods=["GET"])
@jwt_required
def list_patients():
    db = SessionLocal()
    try:
        patients = PatientService(PatientRepository(db)).list_patients()
        return api_response(True, "Patients retrieved", [p.to_dict() for p in patients])
    finally:
        db.close()


@patient_bp.route("/search", methods=["GET"])
@jwt_required
def search_patients():
    """Free-text search over name, email and phone (``?searchTerm=``)."""
    term = request.args.get("searchTerm")
    db = SessionLocal()
    try:
        patients = PatientService(PatientRepository(db)).search_patients(term)
        return api_response(True, "Patients found", [p.to_dict() for p in patients])
    finally:
        db.close()


@patient_bp.route("/query", methods=["GET"])
@jwt_required
def query_patients():
    """Filtered, paginated listing.

    Query params: name, minAge, maxAge, email, phone, term, page, pageSize.
    All filters are optional and combined with AND.
    """
    args = request.args
    min_age = parse_int(args.get("minAge"), "minAge", min_value=0)
    max_age = parse_int(args.get("maxAge"), "maxAge", min_value=0)
    page, page_size = get_pagination_args()

    db = SessionLocal()
    try:
        items, total = PatientService(PatientRepository(db)).query_patients(
            name=args.get("name"),
            min_age=min_age,
            max_age=max_age,
            email=args.get("email"),
            phone=args.get("phone"),
            term=args.get("term"),
            page=page,
            page_size=page_size,
        )
        return api_response(
            True,
            "Patients retrieved",
            paginated([p.to_dict() for p in items], total, page, page_size),
        )
    finally:
        db.close()


@patient_bp.route("/<patient_id>", methods=["GET"])
@jwt_required
def get_patient(patient_id):
    db = SessionLocal()
    try:
        patient = PatientService(PatientRepository(db)).get_patient(patient_id)
        return api_response(True, "Patient retrieved", patient.to_dict())
    finally:
        db.close()


@patient_bp.route("/", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def create_patient():
    create_request = PatientCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        patient_id = PatientService(PatientRepository(db)).create_patient(create_request)
        return api_response(True, "Patient created", {"id": patient_id}, 201)
    finally:
        db.close()


@patient_bp.route("/<patient_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def update_patient(patient_id):
    update_request = PatientUpdateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        patient = PatientService(PatientRepository(db)).update_patient(
            patient_id, update_request
        )
        return api_response(True, "Patient updated", patient.to_dict())
    finally:
        db.close()


@patient_bp.route("/<patient_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def delete_patient(patient_id):
    db = SessionLocal()
    try:
        PatientService(PatientRepository(db)).delete_patient(patient_id)
        return api_response(True, "Patient deleted")
    finally:
        db.close()


@patient_bp.route("/<patient_id>/medical-history", methods=["PATCH"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def update_medical_history(patient_id):
    history_request = MedicalHistoryRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        patient = PatientService(PatientRepository(db)).update_medical_history(
            patient_id, history_request
        )
        return api_response(True, "Medical history updated", patient.to_dict())
    finally:
        db.close()


@patient_bp.route("/<patient_id>/allergies", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def add_allergy(patient_id):
    allergy_request = AllergyRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        patient = PatientService(PatientRepository(db)).add_allergy(
            patient_id, allergy_request
        )
        return api_response(True, "Allergy added", patient.to_dict())
    finally:
        db.close()


@patient_bp.route("/<patient_id>/allergies", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def remove_allergy(patient_id):
    allergy_request = AllergyRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        patient = PatientService(PatientRepository(db)).remove_allergy(
            patient_id, allergy_request
        )
        return api_response(True, "Allergy removed", patient.to_dict())
    finally:
        db.close()
