"""
Domain services - rules that span more than one entity.

They depend only on the repository interfaces, so tests can hand in
``Mock(spec=IAppointmentRepository)`` and friends.
"""

import logging
import time
from datetime import date
from typing import List, Optional, Tuple

from odonto.core.config import (
    CLINIC_CLOSE_HOUR,
    CLINIC_OPEN_HOUR,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
)
from odonto.core.exceptions import EntityNotFoundException, InvalidValueException
from odonto.core.logging_config import log_performance

from .entities import Appointment, Patient
from .interfaces import IAppointmentReader, IDoctorReader, IPatientReader
from .specifications import (
    AppointmentOverlapSpecification,
    BaseSpecification,
    PatientByAgeRange,
    PatientByEmail,
    PatientByName,
    PatientByPhone,
    PatientSearch,
    check_date_range,
    match_all,
)
from .value_objects import TimeSlot, TimeSlotFactory

logger = logging.getLogger(__name__)


def validate_pagination(page: int, page_size: int) -> None:
    if page < 1:
        raise InvalidValueException("Page must be at least 1")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidValueException(f"Page size must be between 1 and {MAX_PAGE_SIZE}")


def paginate(items: List, page: int, page_size: int) -> List:
    validate_pagination(page, page_size)
    offset = (page - 1) * page_size
    return items[offset : offset + page_size]


class AppointmentOverlapService:
    def __init__(self, appointment_repository: IAppointmentReader):
        self.appointment_repo = appointment_repository

    def has_overlapping_appointments(
        self,
        doctor_id: str,
        on: date,
        time_slot: TimeSlot,
        exclude_id: Optional[str] = None,
    ) -> bool:
        spec = AppointmentOverlapSpecification(doctor_id, on, time_slot, exclude_id)
        candidates = self.appointment_repo.get_by_doctor_and_date(doctor_id, on)
        return any(spec.is_satisfied_by(a) for a in candidates)


class DoctorAvailabilityService:
    def __init__(
        self,
        doctor_repository: IDoctorReader,
        overlap_service: AppointmentOverlapService,
    ):
        self.doctor_repo = doctor_repository
        self.overlap_service = overlap_service

    def is_available(
        self,
        doctor_id: str,
        on: date,
        time_slot: TimeSlot,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        """Slot lies inside the doctor's weekly hours and clashes with nothing."""
        doctor = self.doctor_repo.get_by_id(doctor_id)
        if doctor is None:
            raise EntityNotFoundException("Doctor", doctor_id)
        if not doctor.is_available(on, time_slot):
            return False
        return not self.overlap_service.has_overlapping_appointments(
            doctor_id, on, time_slot, exclude_appointment_id
        )


class AppointmentSchedulingService:
    def __init__(
        self,
        doctor_repository: IDoctorReader,
        appointment_repository: IAppointmentReader,
        open_hour: int = CLINIC_OPEN_HOUR,
        close_hour: int = CLINIC_CLOSE_HOUR,
    ):
        self.doctor_repo = doctor_repository
        self.appointment_repo = appointment_repository
        self.open_hour = open_hour
        self.close_hour = close_hour

    def get_available_slots(
        self, doctor_id: str, on: date, duration_half_hours: int = 1
    ) -> List[TimeSlot]:
        """Free slots of the requested length on the clinic's half-hour grid."""
        if duration_half_hours < 1:
            raise InvalidValueException("Duration must be at least one half hour")
        started = time.perf_counter()

        doctor = self.doctor_repo.get_by_id(doctor_id)
        if doctor is None:
            raise EntityNotFoundException("Doctor", doctor_id)

        booked = [
            a
            for a in self.appointment_repo.get_by_doctor_and_date(doctor_id, on)
            if a.is_active
        ]
        closing = self.close_hour * 60
        available: List[TimeSlot] = []
        for grid_slot in TimeSlotFactory.get_all_daily_slots(
            self.open_hour, self.close_hour
        ):
            start = grid_slot.start
            if start.hour * 60 + start.minute + duration_half_hours * 30 > closing:
                break
            try:
                candidate = TimeSlotFactory.create_normalized_slot(
                    start.hour, start.minute, duration_half_hours
                )
            except InvalidValueException:
                break
            if not doctor.is_available(on, candidate):
                continue
            if any(a.time_slot.overlaps(candidate) for a in booked):
                continue
            available.append(candidate)

        log_performance(
            "get_available_slots",
            (time.perf_counter() - started) * 1000,
            doctor_id=doctor_id,
            date=on.isoformat(),
            slot_count=len(available),
        )
        return available

    def is_slot_available(
        self,
        doctor_id: str,
        on: date,
        time_slot: TimeSlot,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        availability = DoctorAvailabilityService(
            self.doctor_repo, AppointmentOverlapService(self.appointment_repo)
        )
        return availability.is_available(
            doctor_id, on, time_slot, exclude_appointment_id
        )


class AppointmentQueryService:
    def __init__(self, appointment_repository: IAppointmentReader):
        self.appointment_repo = appointment_repository

    def get_by_patient(
        self,
        patient_id: str,
        start: date,
        end: date,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> List[Appointment]:
        check_date_range(start, end)
        items = self.appointment_repo.get_by_patient_and_date_range(patient_id, start, end)
        return paginate(items, page, page_size)

    def count_by_patient(self, patient_id: str, start: date, end: date) -> int:
        check_date_range(start, end)
        return len(
            self.appointment_repo.get_by_patient_and_date_range(patient_id, start, end)
        )

    def get_by_doctor(
        self,
        doctor_id: str,
        start: date,
        end: date,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> List[Appointment]:
        check_date_range(start, end)
        items = self.appointment_repo.get_by_doctor_and_date_range(doctor_id, start, end)
        return paginate(items, page, page_size)

    def count_by_doctor(self, doctor_id: str, start: date, end: date) -> int:
        check_date_range(start, end)
        return len(
            self.appointment_repo.get_by_doctor_and_date_range(doctor_id, start, end)
        )


class PatientQueryService:
    """Combines the optional patient filters with AND and pages the result."""

    def __init__(self, patient_repository: IPatientReader):
        self.patient_repo = patient_repository

    @staticmethod
    def build_specification(
        name: Optional[str] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        term: Optional[str] = None,
    ) -> BaseSpecification[Patient]:
        spec: BaseSpecification[Patient] = match_all()
        if name and name.strip():
            spec = spec.and_(PatientByName(name))
        if min_age is not None or max_age is not None:
            spec = spec.and_(
                PatientByAgeRange(
                    min_age if min_age is not None else 0,
                    max_age if max_age is not None else 120,
                )
            )
        if email and email.strip():
            spec = spec.and_(PatientByEmail(email))
        if phone and phone.strip():
            spec = spec.and_(PatientByPhone(phone))
        if term and term.strip():
            spec = spec.and_(PatientSearch(term))
        return spec

    def search(
        self,
        name: Optional[str] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        term: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[Patient], int]:
        """Return the requested page and the total number of matches."""
        validate_pagination(page, page_size)
        spec = self.build_specification(name, min_age, max_age, email, phone, term)
        matches = spec.filter(self.patient_repo.get_all())
        logger.debug(
            "Patient query evaluated",
            extra={"context": {"matches": len(matches), "page": page}},
        )
        return paginate(matches, page, page_size), len(matches)
