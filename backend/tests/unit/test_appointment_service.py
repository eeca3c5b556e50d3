"""
Unit tests for AppointmentService.

This module tests:
- Booking against doctor hours and existing appointments
- Treatment plans priced from the catalogue
- Rescheduling and partial updates
- The visit status workflow and cancellation
- Date-range queries
"""

from datetime import time
from decimal import Decimal

import pytest

from odonto.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    InvalidValueException,
    ValidationException,
    WrongOperationException,
)
from odonto.domain.value_objects import AppointmentStatus, Money, TimeSlot, WeeklyAvailability
from odonto.schemas.dtos import (
    AppointmentCreateRequest,
    AppointmentUpdateRequest,
    CancelAppointmentRequest,
)
from odonto.services.appointment_service import AppointmentService
from tests.factories.entity_factories import (
    days_ahead,
    make_appointment,
    make_doctor,
    make_treatment,
)
from tests.factories.repository_factories import (
    AppointmentRepositoryFactory,
    DoctorRepositoryFactory,
    PatientRepositoryFactory,
    TreatmentRepositoryFactory,
)


@pytest.fixture
def repos():
    return {
        "appointments": AppointmentRepositoryFactory.create_mock_full(),
        "patients": PatientRepositoryFactory.create_mock_full(),
        "doctors": DoctorRepositoryFactory.create_mock_full(),
        "treatments": TreatmentRepositoryFactory.create_mock_full(),
    }


@pytest.fixture
def doctor(repos):
    doctor = make_doctor()
    repos["doctors"].get_by_id.return_value = doctor
    repos["doctors"].exists.return_value = True
    repos["patients"].exists.return_value = True
    return doctor


@pytest.fixture
def service(repos):
    return AppointmentService(
        repos["appointments"], repos["patients"], repos["doctors"], repos["treatments"]
    )


def _create_request(doctor_id, **overrides):
    payload = {
        "patient_id": "patient-1",
        "doctor_id": doctor_id,
        "date": days_ahead(1).isoformat(),
        "start_time": "10:00",
        "end_time": "11:00",
    }
    payload.update(overrides)
    return AppointmentCreateRequest.from_dict(payload)


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestAppointmentServiceCreation:
    def test_create_appointment_success(self, service, repos, doctor):
        appointment_id = service.create_appointment(_create_request(doctor.id))

        created = repos["appointments"].create.call_args.args[0]
        assert created.id == appointment_id
        assert created.status is AppointmentStatus.SCHEDULED
        assert created.time_slot == TimeSlot(time(10, 0), time(11, 0))

    def test_missing_fields_are_reported(self, service):
        request = AppointmentCreateRequest.from_dict({"patient_id": "p1"})
        with pytest.raises(ValidationException) as exc_info:
            service.create_appointment(request)
        assert exc_info.value.errors == ["doctor_id", "date", "start_time", "end_time"]

    def test_end_before_start(self, service, doctor):
        with pytest.raises(ValidationException) as exc_info:
            service.create_appointment(
                _create_request(doctor.id, start_time="11:00", end_time="10:00")
            )
        assert exc_info.value.errors == ["end_time"]

    def test_unknown_patient(self, service, repos, doctor):
        repos["patients"].exists.return_value = False
        with pytest.raises(EntityNotFoundException, match="Patient"):
            service.create_appointment(_create_request(doctor.id))

    def test_unknown_doctor(self, service, repos):
        repos["patients"].exists.return_value = True
        with pytest.raises(EntityNotFoundException, match="Doctor"):
            service.create_appointment(_create_request("missing"))

    def test_outside_doctor_hours(self, service, repos, doctor):
        doctor.set_availability(WeeklyAvailability())
        with pytest.raises(BusinessRuleException, match="not available"):
            service.create_appointment(_create_request(doctor.id))
        repos["appointments"].create.assert_not_called()

    def test_overlapping_booking(self, service, repos, doctor):
        repos["appointments"].get_by_doctor_and_date.return_value = [
            make_appointment(doctor_id=doctor.id, date=days_ahead(1))
        ]
        with pytest.raises(BusinessRuleException, match="overlapping"):
            service.create_appointment(
                _create_request(doctor.id, start_time="10:30", end_time="11:30")
            )

    def test_back_to_back_booking_is_allowed(self, service, repos, doctor):
        repos["appointments"].get_by_doctor_and_date.return_value = [
            make_appointment(doctor_id=doctor.id, date=days_ahead(1))
        ]
        service.create_appointment(
            _create_request(doctor.id, start_time="11:00", end_time="11:30")
        )
        repos["appointments"].create.assert_called_once()

    def test_past_date(self, service, doctor):
        with pytest.raises(InvalidValueException, match="past"):
            service.create_appointment(
                _create_request(doctor.id, date=days_ahead(-1).isoformat())
            )

    def test_treatment_plan_is_priced_from_catalogue(self, service, repos, doctor):
        treatment = make_treatment(price=Money(Decimal("80"), "EUR"))
        repos["treatments"].get_by_id.return_value = treatment
        request = _create_request(
            doctor.id,
            procedures=[
                {
                    "treatment_id": treatment.id,
                    "teeth": [{"tooth_number": 3, "surfaces": ["Occlusal"]}],
                },
                {"treatment_id": treatment.id},
            ],
        )

        service.create_appointment(request)

        created = repos["appointments"].create.call_args.args[0]
        assert created.treatment_plan.total_cost == Money(Decimal("160"), "EUR")
        assert created.treatment_plan.procedures[0].teeth[0].to_dict() == {
            "tooth_number": 3,
            "surfaces": ["Occlusal"],
        }

    def test_unknown_treatment_in_plan(self, service, doctor):
        request = _create_request(doctor.id, procedures=[{"treatment_id": "nope"}])
        with pytest.raises(EntityNotFoundException, match="Treatment"):
            service.create_appointment(request)


@pytest.mark.appointment
class TestAppointmentServiceUpdates:
    def test_reschedule_excludes_itself_from_overlap(self, service, repos, doctor):
        appointment = make_appointment(doctor_id=doctor.id, date=days_ahead(1))
        repos["appointments"].get_by_id.return_value = appointment
        repos["appointments"].get_by_doctor_and_date.return_value = [appointment]

        result = service.update_appointment(
            appointment.id,
            AppointmentUpdateRequest.from_dict({"start_time": "10:30", "end_time": "11:30"}),
        )

        assert result.start_time == "10:30"
        assert result.duration_minutes == 60

    def test_reschedule_needs_both_times(self, service):
        with pytest.raises(ValidationException) as exc_info:
            service.update_appointment(
                "a1", AppointmentUpdateRequest.from_dict({"start_time": "10:30"})
            )
        assert exc_info.value.errors == ["end_time"]

    def test_reschedule_of_cancelled_appointment(self, service, repos, doctor):
        appointment = make_appointment(
            doctor_id=doctor.id, status=AppointmentStatus.CANCELLED
        )
        repos["appointments"].get_by_id.return_value = appointment
        with pytest.raises(WrongOperationException):
            service.update_appointment(
                appointment.id,
                AppointmentUpdateRequest.from_dict({"date": days_ahead(2).isoformat()}),
            )

    def test_notes_only_update_skips_availability(self, service, repos, doctor):
        appointment = make_appointment(doctor_id=doctor.id)
        repos["appointments"].get_by_id.return_value = appointment

        result = service.update_appointment(
            appointment.id, AppointmentUpdateRequest.from_dict({"notes": "Bring x-rays"})
        )

        assert result.notes == "Bring x-rays"
        repos["doctors"].get_by_id.assert_not_called()

    def test_update_missing_appointment(self, service):
        with pytest.raises(EntityNotFoundException):
            service.update_appointment("missing", AppointmentUpdateRequest())


@pytest.mark.appointment
class TestAppointmentServiceStatus:
    def test_full_workflow(self, service, repos):
        appointment = make_appointment()
        repos["appointments"].get_by_id.return_value = appointment

        assert service.mark_waiting_room(appointment.id).status == "WaitingRoom"
        assert service.mark_in_progress(appointment.id).status == "InProgress"
        assert service.mark_completed(appointment.id).status == "Completed"
        assert repos["appointments"].update.call_count == 3

    def test_cannot_complete_scheduled(self, service, repos):
        repos["appointments"].get_by_id.return_value = make_appointment()
        with pytest.raises(WrongOperationException):
            service.mark_completed("a1")

    def test_cancel_with_reason(self, service, repos):
        repos["appointments"].get_by_id.return_value = make_appointment()

        result = service.cancel_appointment("a1", CancelAppointmentRequest("Patient ill"))

        assert result.status == "Cancelled"
        assert result.cancellation_reason == "Patient ill"

    def test_cannot_cancel_completed(self, service, repos):
        repos["appointments"].get_by_id.return_value = make_appointment(
            status=AppointmentStatus.COMPLETED
        )
        with pytest.raises(WrongOperationException):
            service.cancel_appointment("a1", CancelAppointmentRequest())

    def test_delete_missing(self, service):
        with pytest.raises(EntityNotFoundException):
            service.delete_appointment("missing")


@pytest.mark.appointment
class TestAppointmentServiceQueries:
    def test_by_patient_checks_patient(self, service, repos):
        with pytest.raises(EntityNotFoundException):
            service.get_by_patient("missing", days_ahead(0), days_ahead(7))

    def test_by_patient_rejects_inverted_range(self, service):
        with pytest.raises(ValidationException) as exc_info:
            service.get_by_patient("p1", days_ahead(7), days_ahead(0))
        assert exc_info.value.errors == ["endDate"]

    def test_by_patient(self, service, repos, doctor):
        repos["appointments"].get_by_patient_and_date_range.return_value = [
            make_appointment()
        ]
        result = service.get_by_patient("patient-1", days_ahead(0), days_ahead(7))
        assert [a.patient_id for a in result] == ["patient-1"]

    def test_by_doctor_is_paged(self, service, repos, doctor):
        repos["appointments"].get_by_doctor_and_date_range.return_value = [
            make_appointment(date=days_ahead(i + 1)) for i in range(3)
        ]

        items, total = service.get_by_doctor(
            doctor.id, days_ahead(0), days_ahead(30), page=1, page_size=2
        )

        assert total == 3
        assert len(items) == 2

    def test_check_overlap(self, service, repos):
        on = days_ahead(1)
        repos["appointments"].get_by_doctor_and_date.return_value = [
            make_appointment(doctor_id="d1", date=on)
        ]
        assert service.check_overlap("d1", on, TimeSlot.parse("10:15", "10:45"))
        assert not service.check_overlap("d1", on, TimeSlot.parse("09:00", "10:00"))
