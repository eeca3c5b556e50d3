from flask import Blueprint, request

from odonto.core.api_utils import api_response, get_json_body, parse_date, parse_int
from odonto.core.auth_decorators import jwt_required
from odonto.core.exceptions import ValidationException
from odonto.core.limiter_config import WRITE_LIMIT, limiter
from odonto.db.session import SessionLocal
from odonto.repositories.appointment_repo import AppointmentRepository
from odonto.repositories.doctor_repo import DoctorRepository
from odonto.schemas.dtos import DoctorCreateRequest, DoctorUpdateRequest
from odonto.services.doctor_service import DoctorService

doctor_bp = Blueprint("doctors", __name__, url_prefix="/api/Doctors")


def _service(db) -> DoctorService:
    return DoctorService(DoctorRepository(db), AppointmentRepository(db))


def _hour_args() -> tuple[int, int]:
    start_hour = parse_int(request.args.get("startHour"), "startHour", min_value=0, max_value=23)
    end_hour = parse_int(request.args.get("endHour"), "endHour", min_value=0, max_value=23)
    missing = [
        name
        for name, value in (("startHour", start_hour), ("endHour", end_hour))
        if value is None
    ]
    if missing:
        raise ValidationException("startHour and endHour are required", missing)
    return start_hour, end_hour


@doctor_bp.route("/", methods=["GET"])
@jwt_required
def list_doctors():
    db = SessionLocal()
    try:
        doctors = _service(db).list_doctors()
        return api_response(True, "Doctors retrieved", [d.to_dict() for d in doctors])
    finally:
        db.close()


@doctor_bp.route("/search", methods=["GET"])
@jwt_required
def search_doctors():
    term = request.args.get("searchTerm")
    db = SessionLocal()
    try:
        doctors = _service(db).search_doctors(term)
        return api_response(True, "Doctors found", [d.to_dict() for d in doctors])
    finally:
        db.close()


@doctor_bp.route("/specialty/<specialty>", methods=["GET"])
@jwt_required
def get_by_specialty(specialty):
    db = SessionLocal()
    try:
        doctors = _service(db).get_by_specialty(specialty)
        return api_response(True, "Doctors retrieved", [d.to_dict() for d in doctors])
    finally:
        db.close()


@doctor_bp.route("/<doctor_id>", methods=["GET"])
@jwt_required
def get_doctor(doctor_id):
    db = SessionLocal()
    try:
        doctor = _service(db).get_doctor(doctor_id)
        return api_response(True, "Doctor retrieved", doctor.to_dict())
    finally:
        db.close()


@doctor_bp.route("/", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def create_doctor():
    create_request = DoctorCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        doctor_id = _service(db).create_doctor(create_request)
        return api_response(True, "Doctor created", {"id": doctor_id}, 201)
    finally:
        db.close()


@doctor_bp.route("/<doctor_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def update_doctor(doctor_id):
    update_request = DoctorUpdateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        doctor = _service(db).update_doctor(doctor_id, update_request)
        return api_response(True, "Doctor updated", doctor.to_dict())
    finally:
        db.close()


@doctor_bp.route("/<doctor_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def delete_doctor(doctor_id):
    db = SessionLocal()
    try:
        _service(db).delete_doctor(doctor_id)
        return api_response(True, "Doctor deleted")
    finally:
        db.close()


@doctor_bp.route("/<doctor_id>/availability", methods=["GET"])
@jwt_required
def check_availability(doctor_id):
    """Whether the doctor can take a booking (``?date&startHour&endHour``)."""
    on = parse_date(request.args.get("date"), "date")
    start_hour, end_hour = _hour_args()
    db = SessionLocal()
    try:
        available = _service(db).check_availability(doctor_id, on, start_hour, end_hour)
        return api_response(
            True,
            "Availability checked",
            {
                "doctor_id": doctor_id,
                "date": on.isoformat(),
                "start_hour": start_hour,
                "end_hour": end_hour,
                "available": available,
            },
        )
    finally:
        db.close()


@doctor_bp.route("/<doctor_id>/availability", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def set_availability(doctor_id):
    """Add a weekly working window (``?day&startHour&endHour``).

    ``day`` is a weekday name ("Monday") or number (0 = Monday).
    """
    day = request.args.get("day")
    if day is None or day == "":
        raise ValidationException("day is required", ["day"])
    start_hour, end_hour = _hour_args()
    db = SessionLocal()
    try:
        doctor = _service(db).set_availability(doctor_id, day, start_hour, end_hour)
        return api_response(True, "Availability updated", doctor.to_dict())
    finally:
        db.close()


@doctor_bp.route("/<doctor_id>/available-slots", methods=["GET"])
@jwt_required
def available_slots(doctor_id):
    on = parse_date(request.args.get("date"), "date")
    half_hours = parse_int(
        request.args.get("halfHours"), "halfHours", default=1, min_value=1, max_value=16
    )
    db = SessionLocal()
    try:
        slots = _service(db).available_slots(doctor_id, on, half_hours)
        return api_response(True, "Available slots", slots)
    finally:
        db.close()
