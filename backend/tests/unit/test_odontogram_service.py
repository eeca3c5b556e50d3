"""
Unit tests for OdontogramService.

Lesion and treatment catalogues are mocked so responses can be checked
for the resolved display names.
"""

from datetime import timedelta

import pytest

from odonto.core import config
from odonto.core.exceptions import (
    BusinessRuleException,
    DuplicatedValueException,
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidValueException,
    ValidationException,
)
from odonto.domain.entities import Odontogram
from odonto.schemas.dtos import (
    LesionRecordCreateRequest,
    PerformedProcedureCreateRequest,
    ToothRecordCreateRequest,
)
from odonto.services.odontogram_service import OdontogramService
from tests.factories.entity_factories import make_lesion, make_treatment
from tests.factories.repository_factories import (
    LesionRepositoryFactory,
    OdontogramRepositoryFactory,
    PatientRepositoryFactory,
    TreatmentRepositoryFactory,
)


@pytest.fixture
def repos():
    return {
        "odontograms": OdontogramRepositoryFactory.create_mock_full(),
        "patients": PatientRepositoryFactory.create_mock_full(),
        "lesions": LesionRepositoryFactory.create_mock_full(),
        "treatments": TreatmentRepositoryFactory.create_mock_full(),
    }


@pytest.fixture
def service(repos):
    return OdontogramService(
        repos["odontograms"], repos["patients"], repos["lesions"], repos["treatments"]
    )


@pytest.fixture
def odontogram(repos):
    odontogram = Odontogram(patient_id="patient-1")
    repos["odontograms"].get_by_id.return_value = odontogram
    return odontogram


@pytest.fixture
def caries(repos):
    lesion = make_lesion(name="Caries")
    repos["lesions"].get_by_id.return_value = lesion
    repos["lesions"].get_all.return_value = [lesion]
    return lesion


@pytest.fixture
def filling(repos):
    treatment = make_treatment(name="Composite filling")
    repos["treatments"].get_by_id.return_value = treatment
    repos["treatments"].get_all.return_value = [treatment]
    return treatment


def _lesion_request(lesion_id, surfaces=("Mesial",), days_ago=10):
    return LesionRecordCreateRequest.from_dict(
        {
            "lesion_id": lesion_id,
            "affected_surfaces": list(surfaces),
            "detection_date": (config.today() - timedelta(days=days_ago)).isoformat(),
        }
    )


def _procedure_request(treatment_id, surfaces=("Mesial",)):
    return PerformedProcedureCreateRequest.from_dict(
        {"treatment_id": treatment_id, "treated_surfaces": list(surfaces)}
    )


class TestOdontogramCreation:
    def test_create_for_patient(self, service, repos):
        repos["patients"].exists.return_value = True

        odontogram_id = service.create_for_patient("patient-1")

        created = repos["odontograms"].create.call_args.args[0]
        assert created.id == odontogram_id
        assert created.patient_id == "patient-1"

    def test_unknown_patient(self, service):
        with pytest.raises(EntityNotFoundException):
            service.create_for_patient("missing")

    def test_one_odontogram_per_patient(self, service, repos):
        repos["patients"].exists.return_value = True
        repos["odontograms"].get_by_patient_id.return_value = Odontogram(patient_id="p1")
        with pytest.raises(DuplicateEntityException):
            service.create_for_patient("p1")

    def test_get_by_patient_missing(self, service):
        with pytest.raises(EntityNotFoundException, match="Odontogram for patient"):
            service.get_by_patient("p1")


class TestToothRecords:
    def test_add_tooth_record(self, service, odontogram):
        result = service.add_tooth_record(odontogram.id, ToothRecordCreateRequest(14))

        assert result.teeth == [
            {
                "tooth_number": 14,
                "quadrant": 2,
                "is_anterior": False,
                "lesion_records": [],
                "performed_procedures": [],
            }
        ]

    def test_duplicate_tooth_record(self, service, odontogram):
        service.add_tooth_record(odontogram.id, ToothRecordCreateRequest(14))
        with pytest.raises(DuplicatedValueException):
            service.add_tooth_record(odontogram.id, ToothRecordCreateRequest(14))

    def test_invalid_tooth_number(self, service, odontogram):
        with pytest.raises(InvalidValueException):
            service.add_tooth_record(odontogram.id, ToothRecordCreateRequest(40))

    def test_tooth_number_required(self, service, odontogram):
        with pytest.raises(ValidationException):
            service.add_tooth_record(odontogram.id, ToothRecordCreateRequest(None))

    def test_missing_odontogram(self, service):
        with pytest.raises(EntityNotFoundException):
            service.add_tooth_record("missing", ToothRecordCreateRequest(14))


class TestLesionsAndProcedures:
    def test_lesion_record_resolves_name(self, service, odontogram, caries):
        result = service.add_lesion_record(odontogram.id, 3, _lesion_request(caries.id))

        tooth = result.teeth[0]
        assert tooth["tooth_number"] == 3
        assert tooth["lesion_records"][0]["lesion_name"] == "Caries"
        assert tooth["lesion_records"][0]["is_active"] is True

    def test_inactive_lesion_is_refused(self, service, odontogram, caries):
        caries.deactivate()
        with pytest.raises(BusinessRuleException, match="not active"):
            service.add_lesion_record(odontogram.id, 3, _lesion_request(caries.id))

    def test_unknown_lesion(self, service, odontogram):
        with pytest.raises(EntityNotFoundException, match="Lesion"):
            service.add_lesion_record(odontogram.id, 3, _lesion_request("nope"))

    def test_invalid_surface_name(self, service, odontogram, caries):
        with pytest.raises(ValidationException) as exc_info:
            service.add_lesion_record(
                odontogram.id, 3, _lesion_request(caries.id, surfaces=("Lingual",))
            )
        assert exc_info.value.errors == ["affected_surfaces"]

    def test_occlusal_on_incisor(self, service, odontogram, caries):
        with pytest.raises(InvalidValueException):
            service.add_lesion_record(
                odontogram.id, 8, _lesion_request(caries.id, surfaces=("Occlusal",))
            )

    def test_procedure_treats_lesion(self, service, odontogram, caries, filling):
        service.add_lesion_record(odontogram.id, 3, _lesion_request(caries.id))
        assert len(service.get_active_lesions(odontogram.id, 3)) == 1

        result = service.add_performed_procedure(
            odontogram.id, 3, _procedure_request(filling.id)
        )

        tooth = result.teeth[0]
        assert tooth["performed_procedures"][0]["treatment_name"] == "Composite filling"
        assert tooth["lesion_records"][0]["is_active"] is False
        assert service.get_active_lesions(odontogram.id, 3) == []

    def test_unknown_treatment(self, service, odontogram):
        with pytest.raises(EntityNotFoundException, match="Treatment"):
            service.add_performed_procedure(odontogram.id, 3, _procedure_request("nope"))

    def test_active_lesions_of_untouched_tooth(self, service, odontogram):
        assert service.get_active_lesions(odontogram.id, 30) == []

    def test_active_lesions_payload(self, service, odontogram, caries):
        service.add_lesion_record(
            odontogram.id, 3, _lesion_request(caries.id, surfaces=("Distal", "Mesial"))
        )

        lesions = service.get_active_lesions(odontogram.id, 3)

        assert lesions[0]["lesion_id"] == caries.id
        assert lesions[0]["affected_surfaces"] == ["Distal", "Mesial"]
        assert lesions[0]["lesion_name"] == "Caries"
