import logging
from typing import List

from odonto.core.exceptions import EntityNotFoundException, ValidationException
from odonto.domain.entities import Lesion
from odonto.domain.interfaces import ILesionRepository
from odonto.schemas.dtos import LesionCreateRequest, LesionResponse, LesionUpdateRequest

logger = logging.getLogger(__name__)


class LesionService:
    def __init__(self, repo: ILesionRepository) -> None:
        self.repo = repo

    def _get_or_404(self, lesion_id: str) -> Lesion:
        lesion = self.repo.get_by_id(lesion_id)
        if lesion is None:
            raise EntityNotFoundException("Lesion", lesion_id)
        return lesion

    def list_lesions(self) -> List[LesionResponse]:
        return [LesionResponse.from_domain(item) for item in self.repo.get_all()]

    def get_lesion(self, lesion_id: str) -> LesionResponse:
        return LesionResponse.from_domain(self._get_or_404(lesion_id))

    def get_by_category(self, category: str) -> List[LesionResponse]:
        if not category or not category.strip():
            raise ValidationException("Category is required", ["category"])
        return [
            LesionResponse.from_domain(item)
            for item in self.repo.get_by_category(category.strip())
        ]

    def get_active_lesions(self) -> List[LesionResponse]:
        return [LesionResponse.from_domain(item) for item in self.repo.get_active()]

    def get_categories(self) -> List[str]:
        return self.repo.get_categories()

    def create_lesion(self, request: LesionCreateRequest) -> str:
        request.validate()
        lesion = Lesion(
            name=request.name,
            description=request.description,
            category=request.category,
        )
        created = self.repo.create(lesion)
        logger.info("Lesion created", extra={"context": {"lesion_id": created.id}})
        return created.id

    def update_lesion(self, lesion_id: str, request: LesionUpdateRequest) -> LesionResponse:
        request.validate()
        lesion = self._get_or_404(lesion_id)
        lesion.update(request.name, request.description, request.category)
        updated = self.repo.update(lesion)
        logger.info("Lesion updated", extra={"context": {"lesion_id": lesion_id}})
        return LesionResponse.from_domain(updated)

    def delete_lesion(self, lesion_id: str) -> None:
        if not self.repo.delete(lesion_id):
            raise EntityNotFoundException("Lesion", lesion_id)
        logger.info("Lesion deleted", extra={"context": {"lesion_id": lesion_id}})

    def activate_lesion(self, lesion_id: str) -> LesionResponse:
        lesion = self._get_or_404(lesion_id)
        lesion.activate()
        return LesionResponse.from_domain(self.repo.update(lesion))

    def deactivate_lesion(self, lesion_id: str) -> LesionResponse:
        """Retire a lesion type; existing records that reference it are kept."""
        lesion = self._get_or_404(lesion_id)
        lesion.deactivate()
        return LesionResponse.from_domain(self.repo.update(lesion))
