"""
Composable predicate specifications.

A specification wraps a ``candidate -> bool`` criterion and can be combined
with ``and_``, ``or_`` and ``not_``. Query services filter repository
results through them.
"""

from datetime import date
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from odonto.core import config
from odonto.core.exceptions import InvalidValueException

from .entities import Appointment, Doctor, Patient
from .value_objects import AppointmentStatus, TimeSlot

T = TypeVar("T")


class BaseSpecification(Generic[T]):
    def __init__(self, criteria: Callable[[T], bool]):
        self._criteria = criteria

    def is_satisfied_by(self, candidate: T) -> bool:
        return bool(self._criteria(candidate))

    def and_(self, other: "BaseSpecification[T]") -> "BaseSpecification[T]":
        return BaseSpecification(
            lambda c: self.is_satisfied_by(c) and other.is_satisfied_by(c)
        )

    def or_(self, other: "BaseSpecification[T]") -> "BaseSpecification[T]":
        return BaseSpecification(
            lambda c: self.is_satisfied_by(c) or other.is_satisfied_by(c)
        )

    def not_(self) -> "BaseSpecification[T]":
        return BaseSpecification(lambda c: not self.is_satisfied_by(c))

    def filter(self, candidates: Iterable[T]) -> List[T]:
        return [c for c in candidates if self.is_satisfied_by(c)]


def match_all() -> BaseSpecification:
    return BaseSpecification(lambda _: True)


# ===========================
# Appointments
# ===========================


class AppointmentOverlapSpecification(BaseSpecification[Appointment]):
    """Active appointments of a doctor whose slot intersects the given one."""

    def __init__(
        self,
        doctor_id: str,
        on: date,
        time_slot: TimeSlot,
        exclude_id: Optional[str] = None,
    ):
        def criteria(a: Appointment) -> bool:
            return (
                a.doctor_id == doctor_id
                and a.date == on
                and a.status != AppointmentStatus.CANCELLED
                and a.id != exclude_id
                and a.time_slot.overlaps(time_slot)
            )

        super().__init__(criteria)


class AppointmentByDoctorAndDate(BaseSpecification[Appointment]):
    def __init__(self, doctor_id: str, on: date):
        super().__init__(lambda a: a.doctor_id == doctor_id and a.date == on)


def check_date_range(start: date, end: date) -> None:
    if end < start:
        raise InvalidValueException("End date must not be before start date")


class AppointmentByDoctorAndDateRange(BaseSpecification[Appointment]):
    def __init__(self, doctor_id: str, start: date, end: date):
        check_date_range(start, end)
        super().__init__(
            lambda a: a.doctor_id == doctor_id and start <= a.date <= end
        )


class AppointmentByPatientAndDateRange(BaseSpecification[Appointment]):
    def __init__(self, patient_id: str, start: date, end: date):
        check_date_range(start, end)
        super().__init__(
            lambda a: a.patient_id == patient_id and start <= a.date <= end
        )


# ===========================
# Patients
# ===========================


def _shift_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year - years, day=28)


class PatientByAgeRange(BaseSpecification[Patient]):
    """Patients whose age today lies within ``[min_age, max_age]``."""

    def __init__(self, min_age: int, max_age: int, on: Optional[date] = None):
        if min_age < 0 or max_age < min_age:
            raise InvalidValueException("Invalid age range")
        today = on or config.today()
        latest_birth = _shift_years(today, min_age)
        earliest_birth = date.fromordinal(_shift_years(today, max_age + 1).toordinal() + 1)
        super().__init__(
            lambda p: earliest_birth <= p.date_of_birth <= latest_birth
        )


class PatientByEmail(BaseSpecification[Patient]):
    def __init__(self, email: str):
        needle = (email or "").strip().lower()
        super().__init__(lambda p: p.contact_info.email.lower() == needle)


class PatientByPhone(BaseSpecification[Patient]):
    def __init__(self, phone: str):
        needle = (phone or "").strip()
        super().__init__(lambda p: needle in p.contact_info.phone_number)


class PatientByName(BaseSpecification[Patient]):
    def __init__(self, name: str):
        needle = (name or "").strip().lower()
        super().__init__(lambda p: needle in p.full_name.full.lower())


class PatientSearch(BaseSpecification[Patient]):
    """Case-insensitive substring match over name, email, phone and address."""

    def __init__(self, term: str):
        needle = (term or "").strip().lower()

        def criteria(p: Patient) -> bool:
            haystack = (
                p.full_name.full,
                p.contact_info.email,
                p.contact_info.phone_number,
                p.contact_info.address,
            )
            return any(needle in value.lower() for value in haystack)

        super().__init__(criteria)


# ===========================
# Doctors
# ===========================


class DoctorBySpecialty(BaseSpecification[Doctor]):
    def __init__(self, specialty: str):
        needle = (specialty or "").strip().lower()
        super().__init__(lambda d: d.specialty.lower() == needle)


class DoctorByEmail(BaseSpecification[Doctor]):
    def __init__(self, email: str):
        needle = (email or "").strip().lower()
        super().__init__(lambda d: d.contact_info.email.lower() == needle)


class DoctorByName(BaseSpecification[Doctor]):
    def __init__(self, name: str):
        needle = (name or "").strip().lower()
        super().__init__(lambda d: needle in d.full_name.full.lower())


class DoctorByLicenseNumber(BaseSpecification[Doctor]):
    def __init__(self, license_number: str):
        needle = (license_number or "").strip().lower()
        super().__init__(lambda d: (d.license_number or "").lower() == needle)


class DoctorSearch(BaseSpecification[Doctor]):
    def __init__(self, term: str):
        needle = (term or "").strip().lower()

        def criteria(d: Doctor) -> bool:
            haystack = (
                d.full_name.full,
                d.specialty,
                d.contact_info.email,
                d.contact_info.phone_number,
                d.contact_info.address,
            )
            return any(needle in value.lower() for value in haystack)

        super().__init__(criteria)
