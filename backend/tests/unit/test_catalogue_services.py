"""Unit tests for the treatment and lesion catalogue services."""

from decimal import Decimal

import pytest

from odonto.core.exceptions import (
    EntityNotFoundException,
    InvalidValueException,
    ValidationException,
)
from odonto.schemas.dtos import (
    LesionCreateRequest,
    TreatmentCreateRequest,
    TreatmentUpdateRequest,
)
from odonto.services.lesion_service import LesionService
from odonto.services.treatment_service import TreatmentService
from tests.factories.entity_factories import make_lesion, make_treatment, treatment_payload
from tests.factories.repository_factories import (
    LesionRepositoryFactory,
    TreatmentRepositoryFactory,
)


@pytest.fixture
def treatment_repo():
    return TreatmentRepositoryFactory.create_mock_full()


@pytest.fixture
def lesion_repo():
    return LesionRepositoryFactory.create_mock_full()


class TestTreatmentService:
    def test_create_with_plain_price(self, treatment_repo):
        service = TreatmentService(treatment_repo)

        treatment_id = service.create_treatment(
            TreatmentCreateRequest.from_dict(treatment_payload(price=59.9))
        )

        created = treatment_repo.create.call_args.args[0]
        assert created.id == treatment_id
        assert created.price.amount == Decimal("59.9")
        assert created.price.currency == "EUR"

    def test_create_with_price_object(self, treatment_repo):
        service = TreatmentService(treatment_repo)
        payload = treatment_payload(price={"amount": "120.00", "currency": "usd"})

        service.create_treatment(TreatmentCreateRequest.from_dict(payload))

        created = treatment_repo.create.call_args.args[0]
        assert created.price.to_dict() == {"amount": 120.0, "currency": "USD"}

    def test_missing_fields(self, treatment_repo):
        request = TreatmentCreateRequest.from_dict({"name": ""})
        with pytest.raises(ValidationException) as exc_info:
            TreatmentService(treatment_repo).create_treatment(request)
        assert exc_info.value.errors == ["name", "price", "estimated_duration_minutes"]

    def test_negative_price(self, treatment_repo):
        request = TreatmentCreateRequest.from_dict(treatment_payload(price=-5))
        with pytest.raises(InvalidValueException):
            TreatmentService(treatment_repo).create_treatment(request)

    def test_duration_must_be_integer(self):
        with pytest.raises(ValidationException):
            TreatmentCreateRequest.from_dict(
                treatment_payload(estimated_duration_minutes="long")
            )

    def test_update(self, treatment_repo):
        treatment = make_treatment()
        treatment_repo.get_by_id.return_value = treatment

        result = TreatmentService(treatment_repo).update_treatment(
            treatment.id,
            TreatmentUpdateRequest.from_dict(
                treatment_payload(name="Crown", price=450, estimated_duration_minutes=90)
            ),
        )

        assert result.name == "Crown"
        assert result.price == {"amount": 450.0, "currency": "EUR"}
        assert result.estimated_duration_minutes == 90

    def test_get_and_delete_missing(self, treatment_repo):
        service = TreatmentService(treatment_repo)
        with pytest.raises(EntityNotFoundException):
            service.get_treatment("missing")
        with pytest.raises(EntityNotFoundException):
            service.delete_treatment("missing")

    def test_by_category(self, treatment_repo):
        treatment_repo.get_by_category.return_value = [make_treatment()]
        service = TreatmentService(treatment_repo)

        assert [t.category for t in service.get_by_category("restorative")] == [
            "Restorative"
        ]
        with pytest.raises(ValidationException):
            service.get_by_category("")


class TestLesionService:
    def test_create(self, lesion_repo):
        lesion_id = LesionService(lesion_repo).create_lesion(
            LesionCreateRequest.from_dict({"name": "Fracture", "category": "Trauma"})
        )
        created = lesion_repo.create.call_args.args[0]
        assert created.id == lesion_id
        assert created.is_active

    def test_name_is_required(self, lesion_repo):
        with pytest.raises(ValidationException):
            LesionService(lesion_repo).create_lesion(LesionCreateRequest(name=""))

    def test_deactivate_and_activate(self, lesion_repo):
        lesion = make_lesion()
        lesion_repo.get_by_id.return_value = lesion
        service = LesionService(lesion_repo)

        assert service.deactivate_lesion(lesion.id).is_active is False
        assert service.activate_lesion(lesion.id).is_active is True
        assert lesion_repo.update.call_count == 2

    def test_update(self, lesion_repo):
        lesion = make_lesion()
        lesion_repo.get_by_id.return_value = lesion
        result = LesionService(lesion_repo).update_lesion(
            lesion.id, LesionCreateRequest("Deep caries", "Reaches dentin", "Decay")
        )
        assert result.name == "Deep caries"

    def test_categories_come_from_repository(self, lesion_repo):
        lesion_repo.get_categories.return_value = ["Decay", "Trauma"]
        assert LesionService(lesion_repo).get_categories() == ["Decay", "Trauma"]

    def test_active_lesions_come_from_repository(self, lesion_repo):
        lesion_repo.get_active.return_value = [make_lesion(name="Caries")]

        result = LesionService(lesion_repo).get_active_lesions()

        assert [item.name for item in result] == ["Caries"]
        lesion_repo.get_active.assert_called_once_with()

    def test_missing_lesion(self, lesion_repo):
        service = LesionService(lesion_repo)
        with pytest.raises(EntityNotFoundException):
            service.activate_lesion("missing")
        with pytest.raises(EntityNotFoundException):
            service.delete_lesion("missing")
