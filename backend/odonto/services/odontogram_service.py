import logging
from typing import Dict, List, Optional

from odonto.core.exceptions import (
    BusinessRuleException,
    DuplicateEntityException,
    EntityNotFoundException,
)
from odonto.domain.entities import (
    LesionRecord,
    Odontogram,
    PerformedProcedure,
    ToothRecord,
)
from odonto.domain.interfaces import (
    ILesionRepository,
    IOdontogramRepository,
    IPatientRepository,
    ITreatmentRepository,
)
from odonto.domain.value_objects import ToothNumber
from odonto.schemas.dtos import (
    LesionRecordCreateRequest,
    OdontogramResponse,
    PerformedProcedureCreateRequest,
    ToothRecordCreateRequest,
    lesion_record_to_dict,
)

logger = logging.getLogger(__name__)


class OdontogramService:
    """Tooth charts: one odontogram per patient, with per-tooth history.

    Lesion and procedure records are appended to the tooth record, which is
    created on first use. Responses carry the catalogue names of lesions and
    treatments so clients do not need extra lookups.
    """

    def __init__(
        self,
        repo: IOdontogramRepository,
        patient_repo: IPatientRepository,
        lesion_repo: ILesionRepository,
        treatment_repo: ITreatmentRepository,
    ) -> None:
        self.repo = repo
        self.patient_repo = patient_repo
        self.lesion_repo = lesion_repo
        self.treatment_repo = treatment_repo

    def _get_or_404(self, odontogram_id: str) -> Odontogram:
        odontogram = self.repo.get_by_id(odontogram_id)
        if odontogram is None:
            raise EntityNotFoundException("Odontogram", odontogram_id)
        return odontogram

    def _lesion_names(self) -> Dict[str, str]:
        return {lesion.id: lesion.name for lesion in self.lesion_repo.get_all()}

    def _treatment_names(self) -> Dict[str, str]:
        return {t.id: t.name for t in self.treatment_repo.get_all()}

    def _response(self, odontogram: Odontogram) -> OdontogramResponse:
        return OdontogramResponse.from_domain(
            odontogram, self._lesion_names(), self._treatment_names()
        )

    def get_by_patient(self, patient_id: str) -> OdontogramResponse:
        odontogram = self.repo.get_by_patient_id(patient_id)
        if odontogram is None:
            raise EntityNotFoundException("Odontogram for patient", patient_id)
        return self._response(odontogram)

    def create_for_patient(self, patient_id: str) -> str:
        if not self.patient_repo.exists(patient_id):
            raise EntityNotFoundException("Patient", patient_id)
        if self.repo.get_by_patient_id(patient_id) is not None:
            raise DuplicateEntityException(
                f"Patient {patient_id} already has an odontogram"
            )
        created = self.repo.create(Odontogram(patient_id=patient_id))
        logger.info(
            "Odontogram created",
            extra={"context": {"odontogram_id": created.id, "patient_id": patient_id}},
        )
        return created.id

    def add_tooth_record(
        self, odontogram_id: str, request: ToothRecordCreateRequest
    ) -> OdontogramResponse:
        request.validate()
        odontogram = self._get_or_404(odontogram_id)
        odontogram.add_tooth_record(ToothRecord(ToothNumber(request.tooth_number)))
        updated = self.repo.update(odontogram)
        logger.info(
            "Tooth record added",
            extra={
                "context": {
                    "odontogram_id": odontogram_id,
                    "tooth_number": request.tooth_number,
                }
            },
        )
        return self._response(updated)

    def add_lesion_record(
        self,
        odontogram_id: str,
        tooth_number: int,
        request: LesionRecordCreateRequest,
    ) -> OdontogramResponse:
        request.validate()
        odontogram = self._get_or_404(odontogram_id)
        lesion = self.lesion_repo.get_by_id(request.lesion_id)
        if lesion is None:
            raise EntityNotFoundException("Lesion", request.lesion_id)
        if not lesion.is_active:
            raise BusinessRuleException(f"Lesion '{lesion.name}' is not active")

        record = LesionRecord(
            lesion_id=lesion.id,
            affected_surfaces=frozenset(request.affected_surfaces),
            detection_date=request.detection_date,
            notes=request.notes,
        )
        odontogram.add_lesion_record(tooth_number, record)
        updated = self.repo.update(odontogram)
        logger.info(
            "Lesion recorded",
            extra={
                "context": {
                    "odontogram_id": odontogram_id,
                    "tooth_number": tooth_number,
                    "lesion_id": lesion.id,
                }
            },
        )
        return self._response(updated)

    def add_performed_procedure(
        self,
        odontogram_id: str,
        tooth_number: int,
        request: PerformedProcedureCreateRequest,
    ) -> OdontogramResponse:
        request.validate()
        odontogram = self._get_or_404(odontogram_id)
        treatment = self.treatment_repo.get_by_id(request.treatment_id)
        if treatment is None:
            raise EntityNotFoundException("Treatment", request.treatment_id)

        procedure = PerformedProcedure(
            treatment_id=treatment.id,
            treated_surfaces=frozenset(request.treated_surfaces),
            completion_date=request.completion_date,
            notes=request.notes,
        )
        odontogram.add_performed_procedure(tooth_number, procedure)
        updated = self.repo.update(odontogram)
        logger.info(
            "Procedure recorded",
            extra={
                "context": {
                    "odontogram_id": odontogram_id,
                    "tooth_number": tooth_number,
                    "treatment_id": treatment.id,
                }
            },
        )
        return self._response(updated)

    def get_active_lesions(
        self, odontogram_id: str, tooth_number: int
    ) -> List[dict]:
        odontogram = self._get_or_404(odontogram_id)
        record: Optional[ToothRecord] = odontogram.get_tooth_record(tooth_number)
        if record is None:
            return []
        names = self._lesion_names()
        return [
            lesion_record_to_dict(item, names, True)
            for item in record.get_active_lesions()
        ]
