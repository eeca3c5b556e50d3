import logging
from typing import List

from odonto.core.exceptions import EntityNotFoundException, ValidationException
from odonto.domain.entities import Treatment
from odonto.domain.interfaces import ITreatmentRepository
from odonto.domain.value_objects import Money
from odonto.schemas.dtos import (
    TreatmentCreateRequest,
    TreatmentResponse,
    TreatmentUpdateRequest,
)

logger = logging.getLogger(__name__)


class TreatmentService:
    """Catalogue of billable treatments."""

    def __init__(self, repo: ITreatmentRepository) -> None:
        self.repo = repo

    def _get_or_404(self, treatment_id: str) -> Treatment:
        treatment = self.repo.get_by_id(treatment_id)
        if treatment is None:
            raise EntityNotFoundException("Treatment", treatment_id)
        return treatment

    def list_treatments(self) -> List[TreatmentResponse]:
        return [TreatmentResponse.from_domain(t) for t in self.repo.get_all()]

    def get_treatment(self, treatment_id: str) -> TreatmentResponse:
        return TreatmentResponse.from_domain(self._get_or_404(treatment_id))

    def get_by_category(self, category: str) -> List[TreatmentResponse]:
        if not category or not category.strip():
            raise ValidationException("Category is required", ["category"])
        return [
            TreatmentResponse.from_domain(t)
            for t in self.repo.get_by_category(category.strip())
        ]

    def create_treatment(self, request: TreatmentCreateRequest) -> str:
        request.validate()
        treatment = Treatment(
            name=request.name,
            description=request.description,
            price=Money(request.price, request.currency),
            estimated_duration_minutes=request.estimated_duration_minutes,
            category=request.category,
        )
        created = self.repo.create(treatment)
        logger.info(
            "Treatment created",
            extra={"context": {"treatment_id": created.id, "name": created.name}},
        )
        return created.id

    def update_treatment(
        self, treatment_id: str, request: TreatmentUpdateRequest
    ) -> TreatmentResponse:
        request.validate()
        treatment = self._get_or_404(treatment_id)
        treatment.update(
            name=request.name,
            description=request.description,
            price=Money(request.price, request.currency),
            estimated_duration_minutes=request.estimated_duration_minutes,
            category=request.category,
        )
        updated = self.repo.update(treatment)
        logger.info("Treatment updated", extra={"context": {"treatment_id": treatment_id}})
        return TreatmentResponse.from_domain(updated)

    def delete_treatment(self, treatment_id: str) -> None:
        if not self.repo.delete(treatment_id):
            raise EntityNotFoundException("Treatment", treatment_id)
        logger.info("Treatment deleted", extra={"context": {"treatment_id": treatment_id}})
