"""
Unit tests for the domain entities.

Covers patient validation and allergies, doctor availability, the
appointment status workflow, treatment plans and the odontogram.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from odonto.core import config
from odonto.core.exceptions import (
    DuplicatedValueException,
    InvalidValueException,
    ValueNotFoundException,
    WrongOperationException,
)
from odonto.domain.entities import (
    Appointment,
    LesionRecord,
    Odontogram,
    Patient,
    PerformedProcedure,
    PlannedProcedure,
    ToothRecord,
    TreatmentPlan,
    User,
)
from odonto.domain.value_objects import (
    AppointmentStatus,
    FullName,
    Money,
    TimeRange,
    TimeSlot,
    ToothNumber,
    ToothSurface,
    ToothSurfaces,
    Weekday,
)
from tests.factories.entity_factories import (
    days_ahead,
    make_appointment,
    make_doctor,
    make_lesion,
    make_patient,
    make_treatment,
)


def _birthday_years_ago(years: int) -> date:
    today = config.today()
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


@pytest.mark.patient
class TestPatient:
    def test_entities_compare_by_id(self):
        patient = make_patient()
        same = make_patient(id=patient.id)
        assert patient == same
        assert patient != make_patient()
        assert len({patient, same}) == 1

    def test_requires_full_name(self):
        with pytest.raises(InvalidValueException, match="full name"):
            make_patient(full_name=None)

    def test_birth_date_cannot_be_in_the_future(self):
        with pytest.raises(InvalidValueException, match="future"):
            make_patient(date_of_birth=days_ahead(1))

    def test_age_over_limit_is_rejected(self):
        with pytest.raises(InvalidValueException, match="over 120"):
            make_patient(date_of_birth=_birthday_years_ago(121))

    def test_stored_patient_is_not_revalidated_against_today(self):
        patient = Patient(
            full_name=FullName("Ana", "Ruiz"), date_of_birth=_birthday_years_ago(121)
        )
        assert patient.calculate_age() == 121

    def test_birth_date_is_still_required(self):
        with pytest.raises(InvalidValueException, match="required"):
            Patient(full_name=FullName("Ana", "Ruiz"), date_of_birth=None)

    def test_age_and_minor(self):
        patient = make_patient(date_of_birth=_birthday_years_ago(17))
        assert patient.calculate_age() == 17
        assert patient.is_minor()
        assert not make_patient(date_of_birth=_birthday_years_ago(18)).is_minor()

    def test_age_before_birthday(self):
        patient = make_patient(date_of_birth=date(2000, 6, 15))
        assert patient.calculate_age(on=date(2020, 6, 14)) == 19
        assert patient.calculate_age(on=date(2020, 6, 15)) == 20

    def test_allergies_are_deduplicated_case_insensitively(self):
        patient = make_patient(allergies=["Penicillin", "penicillin ", "", "Latex"])
        assert patient.allergies == ["Penicillin", "Latex"]

        patient.add_allergy("LATEX")
        assert patient.allergies == ["Penicillin", "Latex"]

        patient.add_allergy("Ibuprofen")
        assert patient.allergies[-1] == "Ibuprofen"

    def test_add_empty_allergy_fails(self):
        with pytest.raises(InvalidValueException):
            make_patient().add_allergy("   ")

    def test_remove_allergy(self):
        patient = make_patient(allergies=["Latex"])
        patient.remove_allergy("latex")
        assert patient.allergies == []

    def test_remove_unknown_allergy(self):
        with pytest.raises(ValueNotFoundException):
            make_patient().remove_allergy("Latex")

    def test_update_basic_info_touches_entity(self):
        patient = make_patient()
        before = patient.updated_at
        patient.update_basic_info(
            full_name=FullName("Ana", "Ruiz"),
            date_of_birth=date(1991, 1, 1),
            gender="Other",
            contact_info=None,
            notes=" prefers mornings ",
        )
        assert patient.full_name.full == "Ana Ruiz"
        assert patient.notes == "prefers mornings"
        assert patient.contact_info.email == ""
        assert patient.updated_at >= before


@pytest.mark.doctor
class TestDoctor:
    def test_specialty_is_required(self):
        with pytest.raises(InvalidValueException, match="Specialty"):
            make_doctor(specialty=" ")

    def test_blank_license_becomes_none(self):
        assert make_doctor(license_number="  ").license_number is None

    def test_is_available_uses_weekday_of_date(self):
        monday_only = make_doctor(availability=None)
        monday_only.add_availability(Weekday.MONDAY, TimeRange.parse("09:00", "13:00"))

        day = days_ahead(1)
        while day.weekday() != 0:
            day += timedelta(days=1)

        assert monday_only.is_available(day, TimeSlot.parse("09:00", "10:00"))
        assert not monday_only.is_available(day, TimeSlot.parse("12:30", "13:30"))
        assert not monday_only.is_available(
            day + timedelta(days=1), TimeSlot.parse("09:00", "10:00")
        )


@pytest.mark.appointment
class TestAppointment:
    def test_schedule_rejects_past_dates(self):
        with pytest.raises(InvalidValueException, match="past"):
            Appointment.schedule(
                "p", "d", config.today() - timedelta(days=1), TimeSlot.parse("09:00", "10:00")
            )

    def test_schedule_today_is_allowed(self):
        appointment = Appointment.schedule(
            "p", "d", config.today(), TimeSlot.parse("09:00", "10:00")
        )
        assert appointment.status is AppointmentStatus.SCHEDULED
        assert appointment.is_active

    def test_requires_patient_and_doctor(self):
        with pytest.raises(InvalidValueException, match="patient"):
            make_appointment(patient_id="")
        with pytest.raises(InvalidValueException, match="doctor"):
            make_appointment(doctor_id=" ")

    def test_full_visit_workflow(self):
        appointment = make_appointment()
        appointment.mark_as_waiting_room()
        assert appointment.status is AppointmentStatus.WAITING_ROOM
        appointment.mark_as_in_progress()
        assert appointment.status is AppointmentStatus.IN_PROGRESS
        appointment.mark_as_completed()
        assert appointment.status is AppointmentStatus.COMPLETED

    def test_cannot_start_without_waiting_room(self):
        with pytest.raises(WrongOperationException):
            make_appointment().mark_as_in_progress()

    def test_cannot_complete_unless_in_progress(self):
        appointment = make_appointment(status=AppointmentStatus.WAITING_ROOM)
        with pytest.raises(WrongOperationException):
            appointment.mark_as_completed()

    @pytest.mark.parametrize(
        "status", [AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED]
    )
    def test_closed_appointment_cannot_go_to_waiting_room(self, status):
        with pytest.raises(WrongOperationException):
            make_appointment(status=status).mark_as_waiting_room()

    def test_cancel_records_reason(self):
        appointment = make_appointment()
        appointment.cancel("  patient ill ")
        assert appointment.status is AppointmentStatus.CANCELLED
        assert appointment.cancellation_reason == "patient ill"
        assert not appointment.is_active

    def test_completed_appointment_cannot_be_cancelled(self):
        with pytest.raises(WrongOperationException):
            make_appointment(status=AppointmentStatus.COMPLETED).cancel()

    def test_reschedule_only_when_scheduled(self):
        appointment = make_appointment()
        new_slot = TimeSlot.parse("12:00", "13:00")
        appointment.reschedule(days_ahead(2), new_slot)
        assert appointment.date == days_ahead(2)
        assert appointment.time_slot == new_slot

        appointment.cancel()
        with pytest.raises(WrongOperationException):
            appointment.reschedule(days_ahead(3), new_slot)

    def test_reschedule_into_the_past_fails(self):
        with pytest.raises(InvalidValueException):
            make_appointment().reschedule(
                config.today() - timedelta(days=1), TimeSlot.parse("09:00", "10:00")
            )

    def test_treatment_plan_total_cost(self):
        plan = TreatmentPlan(
            (
                PlannedProcedure("t1", price=Money(Decimal("60"), "EUR")),
                PlannedProcedure(
                    "t2",
                    teeth=(ToothSurfaces(3, frozenset({"Occlusal"})),),
                    price=Money(Decimal("25.50"), "EUR"),
                ),
            )
        )
        assert plan.total_cost == Money(Decimal("85.50"), "EUR")
        restored = TreatmentPlan.from_list(plan.to_list())
        assert restored.total_cost == plan.total_cost
        assert restored.procedures[1].teeth[0].tooth_number == ToothNumber(3)

    def test_empty_treatment_plan_is_rejected(self):
        with pytest.raises(InvalidValueException):
            TreatmentPlan(())
        assert TreatmentPlan.from_list([]) is None

    def test_closed_appointment_plan_is_frozen(self):
        appointment = make_appointment(status=AppointmentStatus.CANCELLED)
        with pytest.raises(WrongOperationException):
            appointment.set_treatment_plan(None)


class TestCatalogue:
    def test_treatment_duration_limits(self):
        with pytest.raises(InvalidValueException):
            make_treatment(estimated_duration_minutes=0)
        with pytest.raises(InvalidValueException, match="480"):
            make_treatment(estimated_duration_minutes=481)
        with pytest.raises(InvalidValueException):
            make_treatment(estimated_duration_minutes=True)

    def test_treatment_update(self):
        treatment = make_treatment()
        treatment.update("Crown", "", Money(400, "EUR"), 90, "Prosthetics")
        assert treatment.name == "Crown"
        assert treatment.price.amount == Decimal("400")

    def test_lesion_activation(self):
        lesion = make_lesion()
        assert lesion.is_active
        lesion.deactivate()
        assert not lesion.is_active
        lesion.activate()
        assert lesion.is_active

    def test_lesion_name_required(self):
        with pytest.raises(InvalidValueException):
            make_lesion(name="")

    def test_user_email_is_normalized(self):
        user = User(email=" Staff@Clinic.Example ", name="Staff")
        assert user.email == "staff@clinic.example"
        with pytest.raises(InvalidValueException):
            User(email="nope", name="Staff")


@pytest.mark.odontogram
class TestOdontogram:
    def _lesion(self, surfaces=("Mesial",), detected=None):
        return LesionRecord(
            lesion_id="caries",
            affected_surfaces=frozenset(surfaces),
            detection_date=detected or config.today() - timedelta(days=10),
        )

    def _procedure(self, surfaces=("Mesial",), completed=None):
        return PerformedProcedure(
            treatment_id="filling",
            treated_surfaces=frozenset(surfaces),
            completion_date=completed or config.today(),
        )

    def test_requires_patient(self):
        with pytest.raises(InvalidValueException):
            Odontogram(patient_id="")

    def test_duplicate_tooth_record(self):
        odontogram = Odontogram(patient_id="p1")
        odontogram.add_tooth_record(ToothRecord(ToothNumber(3)))
        with pytest.raises(DuplicatedValueException):
            odontogram.add_tooth_record(ToothRecord(ToothNumber(3)))

    def test_update_missing_tooth_record(self):
        with pytest.raises(WrongOperationException):
            Odontogram(patient_id="p1").update_tooth_record(ToothRecord(ToothNumber(3)))

    def test_lesion_record_creates_tooth_record(self):
        odontogram = Odontogram(patient_id="p1")
        odontogram.add_lesion_record(14, self._lesion())
        assert odontogram.has_tooth_record(ToothNumber(14))
        assert [r.tooth_number.value for r in odontogram.get_teeth_with_lesions()] == [14]
        assert odontogram.get_teeth_with_procedures() == []

    def test_anterior_tooth_rejects_occlusal_lesion(self):
        odontogram = Odontogram(patient_id="p1")
        with pytest.raises(InvalidValueException):
            odontogram.add_lesion_record(8, self._lesion(surfaces=("Occlusal",)))
        assert not odontogram.has_tooth_record(8)
        assert odontogram.tooth_records == {}

    def test_rejected_procedure_leaves_chart_untouched(self):
        odontogram = Odontogram(patient_id="p1")
        stamp = odontogram.updated_at
        with pytest.raises(InvalidValueException):
            odontogram.add_performed_procedure(9, self._procedure(surfaces=("Occlusal",)))
        assert not odontogram.has_tooth_record(9)
        assert odontogram.updated_at == stamp

    def test_rejected_lesion_keeps_existing_record(self):
        odontogram = Odontogram(patient_id="p1")
        odontogram.add_lesion_record(8, self._lesion())
        with pytest.raises(InvalidValueException):
            odontogram.add_lesion_record(8, self._lesion(surfaces=("Occlusal",)))
        assert len(odontogram.get_tooth_record(8).lesion_records) == 1

    def test_future_detection_date_is_rejected(self):
        with pytest.raises(InvalidValueException, match="future"):
            self._lesion(detected=config.today() + timedelta(days=1))

    def test_lesion_needs_a_surface(self):
        with pytest.raises(InvalidValueException):
            self._lesion(surfaces=())

    def test_later_procedure_on_shared_surface_treats_lesion(self):
        record = ToothRecord(ToothNumber(3))
        lesion = self._lesion(surfaces=("Mesial", "Occlusal"))
        record.add_lesion_record(lesion)
        assert record.get_active_lesions() == [lesion]

        record.add_performed_procedure(self._procedure(surfaces=("Occlusal",)))
        assert record.get_active_lesions() == []

    def test_procedure_on_other_surface_leaves_lesion_active(self):
        record = ToothRecord(ToothNumber(3))
        lesion = self._lesion(surfaces=("Mesial",))
        record.add_lesion_record(lesion)
        record.add_performed_procedure(self._procedure(surfaces=("Distal",)))
        assert record.get_active_lesions() == [lesion]

    def test_procedure_on_detection_day_does_not_treat(self):
        detected = config.today() - timedelta(days=3)
        record = ToothRecord(ToothNumber(3))
        lesion = self._lesion(detected=detected)
        record.add_lesion_record(lesion)
        record.add_performed_procedure(self._procedure(completed=detected))
        assert record.get_active_lesions() == [lesion]

    def test_tooth_record_round_trip(self):
        record = ToothRecord(ToothNumber(30))
        record.add_lesion_record(self._lesion(surfaces=("Distal",)))
        record.add_performed_procedure(self._procedure(surfaces=("Distal",)))
        restored = ToothRecord.from_dict(record.to_dict())
        assert restored.to_dict() == record.to_dict()
        assert ToothSurface.DISTAL in restored.lesion_records[0].affected_surfaces
