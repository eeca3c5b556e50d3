"""Unit tests for DoctorService: CRUD, weekly availability and free slots."""

from datetime import timedelta

import pytest

from odonto.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    InvalidValueException,
    ValidationException,
)
from odonto.domain.value_objects import WeeklyAvailability
from odonto.schemas.dtos import DoctorCreateRequest, DoctorUpdateRequest
from odonto.services.doctor_service import DoctorService
from tests.factories.entity_factories import (
    days_ahead,
    doctor_payload,
    make_appointment,
    make_doctor,
)
from tests.factories.repository_factories import (
    AppointmentRepositoryFactory,
    DoctorRepositoryFactory,
)


@pytest.fixture
def mock_doctor_repo():
    return DoctorRepositoryFactory.create_mock_full()


@pytest.fixture
def mock_appointment_repo():
    return AppointmentRepositoryFactory.create_mock_full()


@pytest.fixture
def service(mock_doctor_repo, mock_appointment_repo):
    return DoctorService(mock_doctor_repo, mock_appointment_repo)


def _next_weekday(weekday: int):
    day = days_ahead(1)
    while day.weekday() != weekday:
        day += timedelta(days=1)
    return day


class TestDoctorServiceCrud:
    def test_create_doctor_with_availability(self, service, mock_doctor_repo):
        request = DoctorCreateRequest.from_dict(
            doctor_payload(availability={"Monday": [{"start": "09:00", "end": "13:00"}]})
        )

        doctor_id = service.create_doctor(request)

        created = mock_doctor_repo.create.call_args.args[0]
        assert created.id == doctor_id
        assert created.availability.to_dict() == {
            "Monday": [{"start": "09:00", "end": "13:00"}]
        }

    def test_create_doctor_with_overlapping_availability(self, service):
        request = DoctorCreateRequest.from_dict(
            doctor_payload(
                availability={
                    "Monday": [
                        {"start": "09:00", "end": "13:00"},
                        {"start": "12:00", "end": "15:00"},
                    ]
                }
            )
        )
        with pytest.raises(BusinessRuleException):
            service.create_doctor(request)

    def test_create_doctor_validation(self, service):
        request = DoctorCreateRequest.from_dict(
            doctor_payload(specialty="", availability={"Monday": "all day"})
        )
        with pytest.raises(ValidationException) as exc_info:
            service.create_doctor(request)
        assert exc_info.value.errors == ["specialty", "availability.Monday"]

    def test_update_keeps_availability_when_omitted(self, service, mock_doctor_repo):
        doctor = make_doctor()
        mock_doctor_repo.get_by_id.return_value = doctor
        payload = doctor_payload(specialty="Periodontics")
        del payload["availability"]

        result = service.update_doctor(doctor.id, DoctorUpdateRequest.from_dict(payload))

        assert result.specialty == "Periodontics"
        assert len(result.availability) == 7

    def test_get_missing_doctor(self, service):
        with pytest.raises(EntityNotFoundException):
            service.get_doctor("missing")

    def test_by_specialty_requires_value(self, service):
        with pytest.raises(ValidationException):
            service.get_by_specialty(" ")

    def test_search_doctors(self, service, mock_doctor_repo):
        mock_doctor_repo.get_all.return_value = [make_doctor(), make_doctor(specialty="Surgery")]
        results = service.search_doctors("surgery")
        assert [d.specialty for d in results] == ["Surgery"]


class TestDoctorServiceAvailability:
    def test_set_availability_adds_range(self, service, mock_doctor_repo):
        doctor = make_doctor(availability=WeeklyAvailability())
        mock_doctor_repo.get_by_id.return_value = doctor

        result = service.set_availability(doctor.id, "Wednesday", 9, 14)

        assert result.availability == {"Wednesday": [{"start": "09:00", "end": "14:00"}]}
        mock_doctor_repo.update.assert_called_once_with(doctor)

    def test_set_availability_rejects_overlap(self, service, mock_doctor_repo):
        doctor = make_doctor()
        mock_doctor_repo.get_by_id.return_value = doctor
        with pytest.raises(BusinessRuleException):
            service.set_availability(doctor.id, 0, 9, 10)

    def test_set_availability_rejects_bad_day(self, service, mock_doctor_repo):
        with pytest.raises(InvalidValueException):
            service.set_availability("d1", "Someday", 9, 10)

    def test_check_availability(self, service, mock_doctor_repo, mock_appointment_repo):
        doctor = make_doctor()
        on = _next_weekday(2)
        mock_doctor_repo.get_by_id.return_value = doctor
        mock_appointment_repo.get_by_doctor_and_date.return_value = [
            make_appointment(doctor_id=doctor.id, date=on)
        ]

        assert service.check_availability(doctor.id, on, 11, 12)
        assert not service.check_availability(doctor.id, on, 10, 11)
        # Outside the doctor's 08:00-20:00 hours
        assert not service.check_availability(doctor.id, on, 6, 9)

    def test_check_availability_needs_end_after_start(self, service):
        with pytest.raises(InvalidValueException):
            service.check_availability("d1", days_ahead(1), 12, 12)

    def test_available_slots_as_dicts(self, service, mock_doctor_repo):
        mock_doctor_repo.get_by_id.return_value = make_doctor()

        slots = service.available_slots("d1", days_ahead(1), half_hours=2)

        assert slots[0] == {"start": "09:00", "end": "10:00"}
        assert slots[-1] == {"start": "18:00", "end": "19:00"}

    def test_scheduling_without_appointment_repo(self, mock_doctor_repo):
        with pytest.raises(RuntimeError):
            DoctorService(mock_doctor_repo).available_slots("d1", days_ahead(1))
