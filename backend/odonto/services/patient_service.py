import logging
from typing import List, Optional

from odonto.core.exceptions import EntityNotFoundException, ValidationException
from odonto.domain.entities import Patient
from odonto.domain.interfaces import IPatientRepository
from odonto.domain.services import PatientQueryService
from odonto.domain.specifications import PatientSearch
from odonto.domain.value_objects import ContactInfo, FullName, Gender
from odonto.schemas.dtos import (
    AllergyRequest,
    MedicalHistoryRequest,
    PatientCreateRequest,
    PatientResponse,
    PatientUpdateRequest,
)

logger = logging.getLogger(__name__)


def _contact_info(request: PatientCreateRequest) -> ContactInfo:
    return ContactInfo(
        address=request.contact_info.address,
        phone_number=request.contact_info.phone_number,
        email=request.contact_info.email,
    )


class PatientService:
    """Application service for patient use-cases.

    Works with domain entities and returns response DTOs; domain errors
    propagate to the global error handler.
    """

    def __init__(self, repo: IPatientRepository) -> None:
        self.repo = repo

    def _get_or_404(self, patient_id: str) -> Patient:
        patient = self.repo.get_by_id(patient_id)
        if patient is None:
            raise EntityNotFoundException("Patient", patient_id)
        return patient

    def list_patients(self) -> List[PatientResponse]:
        return [PatientResponse.from_domain(p) for p in self.repo.get_all()]

    def get_patient(self, patient_id: str) -> PatientResponse:
        return PatientResponse.from_domain(self._get_or_404(patient_id))

    def create_patient(self, request: PatientCreateRequest) -> str:
        request.validate()
        patient = Patient.register(
            full_name=FullName(request.first_names, request.last_names),
            date_of_birth=request.date_of_birth,
            gender=Gender.from_string(request.gender),
            contact_info=_contact_info(request),
            medical_history=request.medical_history,
            allergies=request.allergies,
            notes=request.notes,
        )
        created = self.repo.create(patient)
        logger.info("Patient created", extra={"context": {"patient_id": created.id}})
        return created.id

    def update_patient(
        self, patient_id: str, request: PatientUpdateRequest
    ) -> PatientResponse:
        request.validate()
        patient = self._get_or_404(patient_id)
        patient.update_basic_info(
            full_name=FullName(request.first_names, request.last_names),
            date_of_birth=request.date_of_birth,
            gender=request.gender,
            contact_info=_contact_info(request),
            notes=request.notes,
        )
        patient.update_medical_history(request.medical_history)
        patient.allergies = []
        for allergy in request.allergies:
            if allergy:
                patient.add_allergy(allergy)
        updated = self.repo.update(patient)
        logger.info("Patient updated", extra={"context": {"patient_id": patient_id}})
        return PatientResponse.from_domain(updated)

    def delete_patient(self, patient_id: str) -> None:
        if not self.repo.delete(patient_id):
            raise EntityNotFoundException("Patient", patient_id)
        logger.info("Patient deleted", extra={"context": {"patient_id": patient_id}})

    def search_patients(self, term: Optional[str]) -> List[PatientResponse]:
        if not term or not term.strip():
            raise ValidationException("Search term is required", ["searchTerm"])
        matches = PatientSearch(term).filter(self.repo.get_all())
        return [PatientResponse.from_domain(p) for p in matches]

    def query_patients(
        self,
        name: Optional[str] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        term: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[List[PatientResponse], int]:
        items, total = PatientQueryService(self.repo).search(
            name=name,
            min_age=min_age,
            max_age=max_age,
            email=email,
            phone=phone,
            term=term,
            page=page,
            page_size=page_size,
        )
        return [PatientResponse.from_domain(p) for p in items], total

    def update_medical_history(
        self, patient_id: str, request: MedicalHistoryRequest
    ) -> PatientResponse:
        request.validate()
        patient = self._get_or_404(patient_id)
        patient.update_medical_history(request.medical_history)
        return PatientResponse.from_domain(self.repo.update(patient))

    def add_allergy(self, patient_id: str, request: AllergyRequest) -> PatientResponse:
        request.validate()
        patient = self._get_or_404(patient_id)
        patient.add_allergy(request.allergy)
        return PatientResponse.from_domain(self.repo.update(patient))

    def remove_allergy(
        self, patient_id: str, request: AllergyRequest
    ) -> PatientResponse:
        request.validate()
        patient = self._get_or_404(patient_id)
        patient.remove_allergy(request.allergy)
        return PatientResponse.from_domain(self.repo.update(patient))
