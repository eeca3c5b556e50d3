from typing import List, Optional

from sqlalchemy import func

from odonto.core.exceptions import EntityNotFoundException
from odonto.db.base import Doctor as DbDoctor
from odonto.domain.entities import Doctor as DomainDoctor
from odonto.domain.interfaces import IDoctorRepository
from odonto.domain.value_objects import ContactInfo, FullName, WeeklyAvailability


class DoctorRepository(IDoctorRepository):
    """Doctor persistence; weekly availability lives in a JSON column."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, doctor_id: str) -> Optional[DomainDoctor]:
        db_doctor = self.db.query(DbDoctor).filter_by(id=doctor_id).first()
        return self._to_domain(db_doctor) if db_doctor else None

    def get_all(self) -> List[DomainDoctor]:
        rows = (
            self.db.query(DbDoctor)
            .order_by(DbDoctor.last_names, DbDoctor.first_names)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def get_by_specialty(self, specialty: str) -> List[DomainDoctor]:
        needle = (specialty or "").strip().lower()
        rows = (
            self.db.query(DbDoctor)
            .filter(func.lower(DbDoctor.specialty) == needle)
            .order_by(DbDoctor.last_names, DbDoctor.first_names)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def exists(self, doctor_id: str) -> bool:
        return self.db.query(DbDoctor.id).filter_by(id=doctor_id).first() is not None

    def create(self, doctor: DomainDoctor) -> DomainDoctor:
        db_doctor = DbDoctor(id=doctor.id, created_at=doctor.created_at)
        self._apply(db_doctor, doctor)
        self.db.add(db_doctor)
        self.db.commit()
        self.db.refresh(db_doctor)
        return self._to_domain(db_doctor)

    def update(self, doctor: DomainDoctor) -> DomainDoctor:
        db_doctor = self.db.query(DbDoctor).filter_by(id=doctor.id).first()
        if not db_doctor:
            raise EntityNotFoundException("Doctor", doctor.id)
        self._apply(db_doctor, doctor)
        self.db.commit()
        self.db.refresh(db_doctor)
        return self._to_domain(db_doctor)

    def delete(self, doctor_id: str) -> bool:
        db_doctor = self.db.query(DbDoctor).filter_by(id=doctor_id).first()
        if not db_doctor:
            return False
        self.db.delete(db_doctor)
        self.db.commit()
        return True

    @staticmethod
    def _apply(db_doctor: DbDoctor, doctor: DomainDoctor) -> None:
        db_doctor.first_names = doctor.full_name.first_names
        db_doctor.last_names = doctor.full_name.last_names
        db_doctor.specialty = doctor.specialty
        db_doctor.license_number = doctor.license_number
        db_doctor.address = doctor.contact_info.address
        db_doctor.phone_number = doctor.contact_info.phone_number
        db_doctor.email = doctor.contact_info.email
        db_doctor.availability = doctor.availability.to_dict()
        db_doctor.notes = doctor.notes
        db_doctor.updated_at = doctor.updated_at

    def _to_domain(self, db_doctor: DbDoctor) -> DomainDoctor:
        return DomainDoctor(
            id=db_doctor.id,
            full_name=FullName(db_doctor.first_names, db_doctor.last_names),
            specialty=db_doctor.specialty,
            license_number=db_doctor.license_number,
            contact_info=ContactInfo(
                address=db_doctor.address or "",
                phone_number=db_doctor.phone_number or "",
                email=db_doctor.email or "",
            ),
            availability=WeeklyAvailability.from_dict(db_doctor.availability),
            notes=db_doctor.notes or "",
            created_at=db_doctor.created_at,
            updated_at=db_doctor.updated_at or db_doctor.created_at,
        )
