import logging
from datetime import date
from typing import List, Optional

from odonto.core.exceptions import EntityNotFoundException, ValidationException
from odonto.domain.entities import Doctor
from odonto.domain.interfaces import IAppointmentRepository, IDoctorRepository
from odonto.domain.services import AppointmentSchedulingService
from odonto.domain.specifications import DoctorSearch
from odonto.domain.value_objects import (
    ContactInfo,
    FullName,
    TimeRange,
    TimeSlotFactory,
    WeeklyAvailability,
    Weekday,
)
from odonto.schemas.dtos import DoctorCreateRequest, DoctorResponse, DoctorUpdateRequest

logger = logging.getLogger(__name__)


def _contact_info(request: DoctorCreateRequest) -> ContactInfo:
    return ContactInfo(
        address=request.contact_info.address,
        phone_number=request.contact_info.phone_number,
        email=request.contact_info.email,
    )


class DoctorService:
    def __init__(
        self,
        repo: IDoctorRepository,
        appointment_repo: Optional[IAppointmentRepository] = None,
    ) -> None:
        self.repo = repo
        self.appointment_repo = appointment_repo

    def _get_or_404(self, doctor_id: str) -> Doctor:
        doctor = self.repo.get_by_id(doctor_id)
        if doctor is None:
            raise EntityNotFoundException("Doctor", doctor_id)
        return doctor

    def _scheduling(self) -> AppointmentSchedulingService:
        if self.appointment_repo is None:
            raise RuntimeError("DoctorService needs an appointment repository for scheduling")
        return AppointmentSchedulingService(self.repo, self.appointment_repo)

    def list_doctors(self) -> List[DoctorResponse]:
        return [DoctorResponse.from_domain(d) for d in self.repo.get_all()]

    def get_doctor(self, doctor_id: str) -> DoctorResponse:
        return DoctorResponse.from_domain(self._get_or_404(doctor_id))

    def create_doctor(self, request: DoctorCreateRequest) -> str:
        request.validate()
        doctor = Doctor(
            full_name=FullName(request.first_names, request.last_names),
            specialty=request.specialty,
            license_number=request.license_number,
            contact_info=_contact_info(request),
            availability=WeeklyAvailability.from_dict(request.availability),
            notes=request.notes,
        )
        created = self.repo.create(doctor)
        logger.info("Doctor created", extra={"context": {"doctor_id": created.id}})
        return created.id

    def update_doctor(self, doctor_id: str, request: DoctorUpdateRequest) -> DoctorResponse:
        request.validate()
        doctor = self._get_or_404(doctor_id)
        doctor.update_info(
            full_name=FullName(request.first_names, request.last_names),
            specialty=request.specialty,
            contact_info=_contact_info(request),
            license_number=request.license_number,
            notes=request.notes,
        )
        if request.availability is not None:
            doctor.set_availability(WeeklyAvailability.from_dict(request.availability))
        updated = self.repo.update(doctor)
        logger.info("Doctor updated", extra={"context": {"doctor_id": doctor_id}})
        return DoctorResponse.from_domain(updated)

    def delete_doctor(self, doctor_id: str) -> None:
        if not self.repo.delete(doctor_id):
            raise EntityNotFoundException("Doctor", doctor_id)
        logger.info("Doctor deleted", extra={"context": {"doctor_id": doctor_id}})

    def get_by_specialty(self, specialty: str) -> List[DoctorResponse]:
        if not specialty or not specialty.strip():
            raise ValidationException("Specialty is required", ["specialty"])
        return [DoctorResponse.from_domain(d) for d in self.repo.get_by_specialty(specialty)]

    def search_doctors(self, term: Optional[str]) -> List[DoctorResponse]:
        if not term or not term.strip():
            raise ValidationException("Search term is required", ["searchTerm"])
        matches = DoctorSearch(term).filter(self.repo.get_all())
        return [DoctorResponse.from_domain(d) for d in matches]

    def check_availability(
        self, doctor_id: str, on: date, start_hour: int, end_hour: int
    ) -> bool:
        """Whether the doctor is free for the whole-hour window on that date."""
        slot = TimeSlotFactory.create_slot(start_hour, 0, end_hour, 0)
        return self._scheduling().is_slot_available(doctor_id, on, slot)

    def set_availability(
        self, doctor_id: str, day, start_hour: int, end_hour: int
    ) -> DoctorResponse:
        """Add a working window on a weekday (ranges may not overlap)."""
        weekday = Weekday.from_value(day)
        slot = TimeSlotFactory.create_slot(start_hour, 0, end_hour, 0)
        doctor = self._get_or_404(doctor_id)
        doctor.add_availability(weekday, TimeRange.from_slot(slot))
        updated = self.repo.update(doctor)
        logger.info(
            "Doctor availability added",
            extra={
                "context": {
                    "doctor_id": doctor_id,
                    "day": weekday.label,
                    "range": str(slot),
                }
            },
        )
        return DoctorResponse.from_domain(updated)

    def available_slots(
        self, doctor_id: str, on: date, half_hours: int = 1
    ) -> List[dict]:
        slots = self._scheduling().get_available_slots(doctor_id, on, half_hours)
        return [slot.to_dict() for slot in slots]
