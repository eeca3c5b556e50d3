"""
Builders for domain entities and JSON payloads used across the test suite.

Dates are relative to the clinic's "today" so tests never schedule in the
past by accident.
"""

from datetime import date, timedelta
from decimal import Decimal

from odonto.core import config
from odonto.domain.entities import Appointment, Doctor, Lesion, Patient, Treatment
from odonto.domain.value_objects import (
    ContactInfo,
    FullName,
    Gender,
    Money,
    TimeRange,
    TimeSlot,
    WeeklyAvailability,
    Weekday,
)

ALL_WEEK = tuple(Weekday)


def days_ahead(n: int) -> date:
    return config.today() + timedelta(days=n)


def full_week_availability(start: str = "08:00", end: str = "20:00") -> WeeklyAvailability:
    return WeeklyAvailability({day: [TimeRange.parse(start, end)] for day in ALL_WEEK})


def make_patient(**overrides) -> Patient:
    fields = {
        "full_name": FullName("Ana María", "García López"),
        "date_of_birth": date(1990, 5, 17),
        "gender": Gender.FEMALE,
        "contact_info": ContactInfo(
            address="Calle Mayor 1", phone_number="+34 600 123 456", email="ana@example.com"
        ),
        "medical_history": "",
        "allergies": [],
    }
    fields.update(overrides)
    return Patient.register(**fields)


def make_doctor(**overrides) -> Doctor:
    fields = {
        "full_name": FullName("Luis", "Pérez"),
        "specialty": "Orthodontics",
        "license_number": "COL-1234",
        "contact_info": ContactInfo(email="luis@clinic.example"),
        "availability": full_week_availability(),
    }
    fields.update(overrides)
    return Doctor(**fields)


def make_appointment(patient_id: str = "patient-1", doctor_id: str = "doctor-1", **overrides) -> Appointment:
    fields = {
        "patient_id": patient_id,
        "doctor_id": doctor_id,
        "date": days_ahead(1),
        "time_slot": TimeSlot.parse("10:00", "11:00"),
    }
    fields.update(overrides)
    return Appointment(**fields)


def make_treatment(**overrides) -> Treatment:
    fields = {
        "name": "Composite filling",
        "description": "Single surface resin filling",
        "price": Money(Decimal("60.00"), "EUR"),
        "estimated_duration_minutes": 45,
        "category": "Restorative",
    }
    fields.update(overrides)
    return Treatment(**fields)


def make_lesion(**overrides) -> Lesion:
    fields = {"name": "Caries", "description": "Dental decay", "category": "Decay"}
    fields.update(overrides)
    return Lesion(**fields)


# ===========================
# JSON payloads
# ===========================


def patient_payload(**overrides) -> dict:
    payload = {
        "first_names": "Ana María",
        "last_names": "García López",
        "date_of_birth": "1990-05-17",
        "gender": "Female",
        "contact_info": {
            "address": "Calle Mayor 1",
            "phone_number": "+34 600 123 456",
            "email": "ana@example.com",
        },
        "medical_history": "",
        "allergies": [],
        "notes": "",
    }
    payload.update(overrides)
    return payload


def doctor_payload(**overrides) -> dict:
    payload = {
        "first_names": "Luis",
        "last_names": "Pérez",
        "specialty": "Orthodontics",
        "license_number": "COL-1234",
        "contact_info": {"email": "luis@clinic.example"},
        "availability": {
            day.label: [{"start": "08:00", "end": "20:00"}] for day in ALL_WEEK
        },
    }
    payload.update(overrides)
    return payload


def treatment_payload(**overrides) -> dict:
    payload = {
        "name": "Composite filling",
        "price": 60,
        "currency": "EUR",
        "estimated_duration_minutes": 45,
        "category": "Restorative",
    }
    payload.update(overrides)
    return payload
