from datetime import date
from typing import List, Optional

from odonto.core.exceptions import EntityNotFoundException
from odonto.db.base import Appointment as DbAppointment
from odonto.domain.entities import Appointment as DomainAppointment
from odonto.domain.entities import TreatmentPlan
from odonto.domain.interfaces import IAppointmentRepository
from odonto.domain.value_objects import AppointmentStatus, TimeSlot


class AppointmentRepository(IAppointmentRepository):
    """Appointment persistence. Results are ordered by date then start time."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def _ordered(self, query):
        return query.order_by(DbAppointment.appointment_date, DbAppointment.start_time)

    def get_by_id(self, appointment_id: str) -> Optional[DomainAppointment]:
        row = self.db.query(DbAppointment).filter_by(id=appointment_id).first()
        return self._to_domain(row) if row else None

    def get_all(self) -> List[DomainAppointment]:
        rows = self._ordered(self.db.query(DbAppointment)).all()
        return [self._to_domain(row) for row in rows]

    def get_by_doctor_and_date(self, doctor_id: str, on: date) -> List[DomainAppointment]:
        rows = self._ordered(
            self.db.query(DbAppointment).filter(
                DbAppointment.doctor_id == doctor_id,
                DbAppointment.appointment_date == on,
            )
        ).all()
        return [self._to_domain(row) for row in rows]

    def get_by_doctor_and_date_range(
        self, doctor_id: str, start: date, end: date
    ) -> List[DomainAppointment]:
        rows = self._ordered(
            self.db.query(DbAppointment).filter(
                DbAppointment.doctor_id == doctor_id,
                DbAppointment.appointment_date >= start,
                DbAppointment.appointment_date <= end,
            )
        ).all()
        return [self._to_domain(row) for row in rows]

    def get_by_patient_and_date_range(
        self, patient_id: str, start: date, end: date
    ) -> List[DomainAppointment]:
        rows = self._ordered(
            self.db.query(DbAppointment).filter(
                DbAppointment.patient_id == patient_id,
                DbAppointment.appointment_date >= start,
                DbAppointment.appointment_date <= end,
            )
        ).all()
        return [self._to_domain(row) for row in rows]

    def create(self, appointment: DomainAppointment) -> DomainAppointment:
        row = DbAppointment(id=appointment.id, created_at=appointment.created_at)
        self._apply(row, appointment)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    def update(self, appointment: DomainAppointment) -> DomainAppointment:
        row = self.db.query(DbAppointment).filter_by(id=appointment.id).first()
        if not row:
            raise EntityNotFoundException("Appointment", appointment.id)
        self._apply(row, appointment)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    def delete(self, appointment_id: str) -> bool:
        row = self.db.query(DbAppointment).filter_by(id=appointment_id).first()
        if not row:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    @staticmethod
    def _apply(row: DbAppointment, appointment: DomainAppointment) -> None:
        row.patient_id = appointment.patient_id
        row.doctor_id = appointment.doctor_id
        row.appointment_date = appointment.date
        row.start_time = appointment.time_slot.start
        row.end_time = appointment.time_slot.end
        row.status = appointment.status.value
        row.treatment_plan = (
            appointment.treatment_plan.to_list() if appointment.treatment_plan else None
        )
        row.notes = appointment.notes
        row.cancellation_reason = appointment.cancellation_reason
        row.updated_at = appointment.updated_at

    def _to_domain(self, row: DbAppointment) -> DomainAppointment:
        return DomainAppointment(
            id=row.id,
            patient_id=row.patient_id,
            doctor_id=row.doctor_id,
            date=row.appointment_date,
            time_slot=TimeSlot(row.start_time, row.end_time),
            status=AppointmentStatus(row.status),
            treatment_plan=TreatmentPlan.from_list(row.treatment_plan),
            notes=row.notes or "",
            cancellation_reason=row.cancellation_reason,
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
        )
