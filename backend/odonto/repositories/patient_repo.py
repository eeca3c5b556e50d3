import logging
from typing import List, Optional

from odonto.core.exceptions import EntityNotFoundException
from odonto.db.base import Patient as DbPatient
from odonto.domain.entities import Patient as DomainPatient
from odonto.domain.interfaces import IPatientRepository
from odonto.domain.value_objects import ContactInfo, FullName, Gender

logger = logging.getLogger(__name__)


class PatientRepository(IPatientRepository):
    """Repository for Patient persistence operations.

    Maps between the ``Patient`` domain entity and the ``patients`` table.
    Every write commits immediately.
    """

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, patient_id: str) -> Optional[DomainPatient]:
        db_patient = self.db.query(DbPatient).filter_by(id=patient_id).first()
        return self._to_domain(db_patient) if db_patient else None

    def get_all(self) -> List[DomainPatient]:
        rows = (
            self.db.query(DbPatient)
            .order_by(DbPatient.last_names, DbPatient.first_names)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def exists(self, patient_id: str) -> bool:
        return (
            self.db.query(DbPatient.id).filter_by(id=patient_id).first() is not None
        )

    def create(self, patient: DomainPatient) -> DomainPatient:
        db_patient = DbPatient(id=patient.id, created_at=patient.created_at)
        self._apply(db_patient, patient)
        self.db.add(db_patient)
        self.db.commit()
        self.db.refresh(db_patient)
        logger.info(
            "Patient persisted", extra={"context": {"patient_id": patient.id}}
        )
        return self._to_domain(db_patient)

    def update(self, patient: DomainPatient) -> DomainPatient:
        db_patient = self.db.query(DbPatient).filter_by(id=patient.id).first()
        if not db_patient:
            raise EntityNotFoundException("Patient", patient.id)
        self._apply(db_patient, patient)
        self.db.commit()
        self.db.refresh(db_patient)
        return self._to_domain(db_patient)

    def delete(self, patient_id: str) -> bool:
        db_patient = self.db.query(DbPatient).filter_by(id=patient_id).first()
        if not db_patient:
            return False
        self.db.delete(db_patient)
        self.db.commit()
        return True

    @staticmethod
    def _apply(db_patient: DbPatient, patient: DomainPatient) -> None:
        db_patient.first_names = patient.full_name.first_names
        db_patient.last_names = patient.full_name.last_names
        db_patient.date_of_birth = patient.date_of_birth
        db_patient.gender = patient.gender.value
        db_patient.address = patient.contact_info.address
        db_patient.phone_number = patient.contact_info.phone_number
        db_patient.email = patient.contact_info.email
        db_patient.medical_history = patient.medical_history
        db_patient.allergies = list(patient.allergies)
        db_patient.notes = patient.notes
        db_patient.updated_at = patient.updated_at

    def _to_domain(self, db_patient: DbPatient) -> DomainPatient:
        return DomainPatient(
            id=db_patient.id,
            full_name=FullName(db_patient.first_names, db_patient.last_names),
            date_of_birth=db_patient.date_of_birth,
            gender=Gender.from_string(db_patient.gender),
            contact_info=ContactInfo(
                address=db_patient.address or "",
                phone_number=db_patient.phone_number or "",
                email=db_patient.email or "",
            ),
            medical_history=db_patient.medical_history or "",
            allergies=list(db_patient.allergies or []),
            notes=db_patient.notes or "",
            created_at=db_patient.created_at,
            updated_at=db_patient.updated_at or db_patient.created_at,
        )
