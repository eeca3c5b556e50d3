"""
Appointment controller.

Booking checks (doctor availability, overlap) live in the service; this
module only parses query strings and bodies and shapes the JSON reply.
"""

from flask import Blueprint, request

from odonto.core.api_utils import (
    api_response,
    get_json_body,
    get_pagination_args,
    paginated,
    parse_date,
    parse_int,
)
from odonto.core.auth_decorators import jwt_required
from odonto.core.exceptions import ValidationException
from odonto.core.limiter_config import WRITE_LIMIT, limiter
from odonto.db.session import SessionLocal
from odonto.domain.value_objects import TimeSlotFactory
from odonto.repositories.appointment_repo import AppointmentRepository
from odonto.repositories.doctor_repo import DoctorRepository
from odonto.repositories.patient_repo import PatientRepository
from odonto.repositories.treatment_repo import TreatmentRepository
from odonto.schemas.dtos import (
    AppointmentCreateRequest,
    AppointmentUpdateRequest,
    CancelAppointmentRequest,
)
from odonto.services.appointment_service import AppointmentService

appointment_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


def _service(db) -> AppointmentService:
    return AppointmentService(
        AppointmentRepository(db),
        PatientRepository(db),
        DoctorRepository(db),
        TreatmentRepository(db),
    )


def _date_range_args():
    start = parse_date(request.args.get("startDate"), "startDate")
    end = parse_date(request.args.get("endDate"), "endDate")
    return start, end


@appointment_bp.route("/", methods=["GET"])
@jwt_required
def list_appointments():
    db = SessionLocal()
    try:
        items = _service(db).list_appointments()
        return api_response(True, "Appointments retrieved", [a.to_dict() for a in items])
    finally:
        db.close()


@appointment_bp.route("/overlap", methods=["GET"])
@jwt_required
def check_overlap():
    """Does a whole-hour window clash with the doctor's bookings?

    Query params: doctorId, date, startHour, endHour and optionally
    excludeId (the appointment being edited).
    """
    args = request.args
    doctor_id = args.get("doctorId")
    if not doctor_id:
        raise ValidationException("doctorId is required", ["doctorId"])
    on = parse_date(args.get("date"), "date")
    start_hour = parse_int(args.get("startHour"), "startHour", min_value=0, max_value=23)
    end_hour = parse_int(args.get("endHour"), "endHour", min_value=0, max_value=23)
    if start_hour is None or end_hour is None:
        raise ValidationException(
            "startHour and endHour are required", ["startHour", "endHour"]
        )
    slot = TimeSlotFactory.create_slot(start_hour, 0, end_hour, 0)

    db = SessionLocal()
    try:
        overlaps = _service(db).check_overlap(
            doctor_id, on, slot, exclude_id=args.get("excludeId") or None
        )
        return api_response(
            True,
            "Overlap checked",
            {
                "doctor_id": doctor_id,
                "date": on.isoformat(),
                "time_slot": slot.to_dict(),
                "has_overlap": overlaps,
            },
        )
    finally:
        db.close()


@appointment_bp.route("/patient/<patient_id>", methods=["GET"])
@jwt_required
def get_by_patient(patient_id):
    start, end = _date_range_args()
    db = SessionLocal()
    try:
        items = _service(db).get_by_patient(patient_id, start, end)
        return api_response(True, "Appointments retrieved", [a.to_dict() for a in items])
    finally:
        db.close()


@appointment_bp.route("/doctor/<doctor_id>", methods=["GET"])
@jwt_required
def get_by_doctor(doctor_id):
    start, end = _date_range_args()
    page, page_size = get_pagination_args()
    db = SessionLocal()
    try:
        items, total = _service(db).get_by_doctor(
            doctor_id, start, end, page, page_size
        )
        return api_response(
            True,
            "Appointments retrieved",
            paginated([a.to_dict() for a in items], total, page, page_size),
        )
    finally:
        db.close()


@appointment_bp.route("/<appointment_id>", methods=["GET"])
@jwt_required
def get_appointment(appointment_id):
    db = SessionLocal()
    try:
        appointment = _service(db).get_appointment(appointment_id)
        return api_response(True, "Appointment retrieved", appointment.to_dict())
    finally:
        db.close()


@appointment_bp.route("/", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def create_appointment():
    create_request = AppointmentCreateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        appointment_id = _service(db).create_appointment(create_request)
        return api_response(True, "Appointment created", {"id": appointment_id}, 201)
    finally:
        db.close()


@appointment_bp.route("/<appointment_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def update_appointment(appointment_id):
    update_request = AppointmentUpdateRequest.from_dict(get_json_body())
    db = SessionLocal()
    try:
        appointment = _service(db).update_appointment(appointment_id, update_request)
        return api_response(True, "Appointment updated", appointment.to_dict())
    finally:
        db.close()


@appointment_bp.route("/<appointment_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def delete_appointment(appointment_id):
    db = SessionLocal()
    try:
        _service(db).delete_appointment(appointment_id)
        return api_response(True, "Appointment deleted")
    finally:
        db.close()


@appointment_bp.route("/<appointment_id>/cancel", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def cancel_appointment(appointment_id):
    # Body is optional here; a missing one just means no reason given.
    data = request.get_json(silent=True)
    cancel_request = CancelAppointmentRequest.from_dict(
        data if isinstance(data, dict) else {}
    )
    db = SessionLocal()
    try:
        appointment = _service(db).cancel_appointment(appointment_id, cancel_request)
        return api_response(True, "Appointment cancelled", appointment.to_dict())
    finally:
        db.close()


@appointment_bp.route("/<appointment_id>/waiting-room", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def mark_waiting_room(appointment_id):
    db = SessionLocal()
    try:
        appointment = _service(db).mark_waiting_room(appointment_id)
        return api_response(True, "Patient in waiting room", appointment.to_dict())
    finally:
        db.close()


@appointment_bp.route("/<appointment_id>/in-progress", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def mark_in_progress(appointment_id):
    db = SessionLocal()
    try:
        appointment = _service(db).mark_in_progress(appointment_id)
        return api_response(True, "Appointment in progress", appointment.to_dict())
    finally:
        db.close()


@appointment_bp.route("/<appointment_id>/complete", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@jwt_required
def mark_completed(appointment_id):
    db = SessionLocal()
    try:
        appointment = _service(db).mark_completed(appointment_id)
        return api_response(True, "Appointment completed", appointment.to_dict())
    finally:
        db.close()
