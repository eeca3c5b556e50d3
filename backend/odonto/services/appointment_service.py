import logging
from datetime import date
from typing import List, Optional

from odonto.core.config import DEFAULT_PAGE_SIZE
from odonto.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    ValidationException,
    WrongOperationException,
)
from odonto.domain.entities import Appointment, PlannedProcedure, TreatmentPlan
from odonto.domain.interfaces import (
    IAppointmentRepository,
    IDoctorRepository,
    IPatientRepository,
    ITreatmentRepository,
)
from odonto.domain.services import AppointmentOverlapService, AppointmentQueryService
from odonto.domain.value_objects import AppointmentStatus, TimeSlot, ToothSurfaces
from odonto.schemas.dtos import (
    AppointmentCreateRequest,
    AppointmentResponse,
    AppointmentUpdateRequest,
    CancelAppointmentRequest,
    PlannedProcedureRequest,
)

logger = logging.getLogger(__name__)


class AppointmentService:
    """Booking, rescheduling and the visit workflow.

    Every booking is checked against the doctor's weekly availability and
    the doctor's other appointments of the day before it is persisted.
    """

    def __init__(
        self,
        repo: IAppointmentRepository,
        patient_repo: IPatientRepository,
        doctor_repo: IDoctorRepository,
        treatment_repo: ITreatmentRepository,
    ) -> None:
        self.repo = repo
        self.patient_repo = patient_repo
        self.doctor_repo = doctor_repo
        self.treatment_repo = treatment_repo
        self.overlap_service = AppointmentOverlapService(repo)

    def _get_or_404(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_by_id(appointment_id)
        if appointment is None:
            raise EntityNotFoundException("Appointment", appointment_id)
        return appointment

    def _ensure_bookable(
        self,
        doctor_id: str,
        on: date,
        slot: TimeSlot,
        exclude_id: Optional[str] = None,
    ) -> None:
        doctor = self.doctor_repo.get_by_id(doctor_id)
        if doctor is None:
            raise EntityNotFoundException("Doctor", doctor_id)
        if not doctor.is_available(on, slot):
            raise BusinessRuleException(
                f"Doctor is not available on {on.isoformat()} at {slot}"
            )
        if self.overlap_service.has_overlapping_appointments(
            doctor_id, on, slot, exclude_id
        ):
            raise BusinessRuleException(
                f"Doctor already has an appointment overlapping {slot} on {on.isoformat()}"
            )

    def _build_plan(
        self, procedures: Optional[List[PlannedProcedureRequest]]
    ) -> Optional[TreatmentPlan]:
        """Turn requested procedures into a plan priced from the catalogue."""
        if not procedures:
            return None
        planned = []
        for item in procedures:
            treatment = self.treatment_repo.get_by_id(item.treatment_id)
            if treatment is None:
                raise EntityNotFoundException("Treatment", item.treatment_id)
            teeth = tuple(
                ToothSurfaces(t.tooth_number, frozenset(t.surfaces)) for t in item.teeth
            )
            planned.append(
                PlannedProcedure(
                    treatment_id=treatment.id,
                    teeth=teeth,
                    price=treatment.price,
                    notes=item.notes,
                )
            )
        return TreatmentPlan(tuple(planned))

    # ---- queries ---------------------------------------------------------

    def list_appointments(self) -> List[AppointmentResponse]:
        return [AppointmentResponse.from_domain(a) for a in self.repo.get_all()]

    def get_appointment(self, appointment_id: str) -> AppointmentResponse:
        return AppointmentResponse.from_domain(self._get_or_404(appointment_id))

    def get_by_patient(
        self, patient_id: str, start: date, end: date
    ) -> List[AppointmentResponse]:
        require_date_range(start, end)
        if not self.patient_repo.exists(patient_id):
            raise EntityNotFoundException("Patient", patient_id)
        items = self.repo.get_by_patient_and_date_range(patient_id, start, end)
        return [AppointmentResponse.from_domain(a) for a in items]

    def get_by_doctor(
        self,
        doctor_id: str,
        start: date,
        end: date,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[List[AppointmentResponse], int]:
        require_date_range(start, end)
        if not self.doctor_repo.exists(doctor_id):
            raise EntityNotFoundException("Doctor", doctor_id)
        query = AppointmentQueryService(self.repo)
        items = query.get_by_doctor(doctor_id, start, end, page, page_size)
        total = query.count_by_doctor(doctor_id, start, end)
        return [AppointmentResponse.from_domain(a) for a in items], total

    def check_overlap(
        self,
        doctor_id: str,
        on: date,
        slot: TimeSlot,
        exclude_id: Optional[str] = None,
    ) -> bool:
        return self.overlap_service.has_overlapping_appointments(
            doctor_id, on, slot, exclude_id
        )

    # ---- commands --------------------------------------------------------

    def create_appointment(self, request: AppointmentCreateRequest) -> str:
        request.validate()
        if not self.patient_repo.exists(request.patient_id):
            raise EntityNotFoundException("Patient", request.patient_id)
        slot = TimeSlot(request.start_time, request.end_time)
        self._ensure_bookable(request.doctor_id, request.date, slot)

        appointment = Appointment.schedule(
            patient_id=request.patient_id,
            doctor_id=request.doctor_id,
            on=request.date,
            time_slot=slot,
            treatment_plan=self._build_plan(request.procedures),
            notes=request.notes,
        )
        created = self.repo.create(appointment)
        logger.info(
            "Appointment scheduled",
            extra={
                "context": {
                    "appointment_id": created.id,
                    "doctor_id": created.doctor_id,
                    "date": created.date.isoformat(),
                    "slot": str(created.time_slot),
                }
            },
        )
        return created.id

    def update_appointment(
        self, appointment_id: str, request: AppointmentUpdateRequest
    ) -> AppointmentResponse:
        request.validate()
        appointment = self._get_or_404(appointment_id)

        if request.changes_schedule:
            if appointment.status != AppointmentStatus.SCHEDULED:
                raise WrongOperationException(
                    "Only scheduled appointments can be rescheduled"
                )
            new_date = request.date or appointment.date
            if request.start_time is not None:
                new_slot = TimeSlot(request.start_time, request.end_time)
            else:
                new_slot = appointment.time_slot
            self._ensure_bookable(
                appointment.doctor_id, new_date, new_slot, exclude_id=appointment.id
            )
            appointment.reschedule(new_date, new_slot)

        if request.notes is not None:
            appointment.update_notes(request.notes)
        if request.procedures is not None:
            appointment.set_treatment_plan(self._build_plan(request.procedures))

        updated = self.repo.update(appointment)
        logger.info(
            "Appointment updated",
            extra={"context": {"appointment_id": appointment_id}},
        )
        return AppointmentResponse.from_domain(updated)

    def delete_appointment(self, appointment_id: str) -> None:
        if not self.repo.delete(appointment_id):
            raise EntityNotFoundException("Appointment", appointment_id)
        logger.info(
            "Appointment deleted", extra={"context": {"appointment_id": appointment_id}}
        )

    def cancel_appointment(
        self, appointment_id: str, request: CancelAppointmentRequest
    ) -> AppointmentResponse:
        appointment = self._get_or_404(appointment_id)
        appointment.cancel(request.reason)
        return self._save_transition(appointment, "cancelled")

    def mark_waiting_room(self, appointment_id: str) -> AppointmentResponse:
        appointment = self._get_or_404(appointment_id)
        appointment.mark_as_waiting_room()
        return self._save_transition(appointment, "waiting_room")

    def mark_in_progress(self, appointment_id: str) -> AppointmentResponse:
        appointment = self._get_or_404(appointment_id)
        appointment.mark_as_in_progress()
        return self._save_transition(appointment, "in_progress")

    def mark_completed(self, appointment_id: str) -> AppointmentResponse:
        appointment = self._get_or_404(appointment_id)
        appointment.mark_as_completed()
        return self._save_transition(appointment, "completed")

    def _save_transition(self, appointment: Appointment, action: str) -> AppointmentResponse:
        updated = self.repo.update(appointment)
        logger.info(
            f"Appointment {action}",
            extra={
                "context": {
                    "appointment_id": appointment.id,
                    "status": updated.status.value,
                }
            },
        )
        return AppointmentResponse.from_domain(updated)


def require_date_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end < start:
        raise ValidationException("endDate must not be before startDate", ["endDate"])
