"""
Domain entities - Pure business logic, no framework dependencies.

Entities validate themselves in ``__post_init__`` and expose domain methods
for every state change; repositories only persist what the entity already
accepted.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from odonto.core import config
from odonto.core.exceptions import (
    DuplicatedValueException,
    InvalidValueException,
    ValueNotFoundException,
    WrongOperationException,
)

from .value_objects import (
    AppointmentStatus,
    ContactInfo,
    FullName,
    Gender,
    Money,
    TimeRange,
    TimeSlot,
    ToothNumber,
    ToothSurface,
    ToothSurfaces,
    WeeklyAvailability,
    Weekday,
    parse_surfaces,
    validate_surfaces_for_tooth,
)

MAX_PATIENT_AGE = 120
ADULT_AGE = 18
MAX_TREATMENT_MINUTES = 480


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


@dataclass(eq=False)
class Entity:
    """Identity plus audit timestamps. Two entities are equal when ids match."""

    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity) or type(self) is not type(other):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))


# ===========================
# Patient
# ===========================


@dataclass(eq=False)
class Patient(Entity):
    full_name: Optional[FullName] = None
    date_of_birth: Optional[date] = None
    gender: Gender = Gender.OTHER
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    medical_history: str = ""
    allergies: List[str] = field(default_factory=list)
    notes: str = ""

    def __post_init__(self):
        """Structural rules only; stored rows must load whatever today is."""
        if not isinstance(self.full_name, FullName):
            raise InvalidValueException("Patient full name is required")
        if not isinstance(self.date_of_birth, date):
            raise InvalidValueException("Date of birth is required")
        self.gender = Gender.from_string(self.gender)
        if self.contact_info is None:
            self.contact_info = ContactInfo()
        self.medical_history = _clean(self.medical_history)
        self.notes = _clean(self.notes)
        self.allergies = self._normalize_allergies(self.allergies)

    @classmethod
    def register(
        cls, full_name: Optional[FullName], date_of_birth: Optional[date], **details
    ) -> "Patient":
        """Intake of a new patient. The birth date is checked against today."""
        cls._validate_birth_date(date_of_birth)
        return cls(full_name=full_name, date_of_birth=date_of_birth, **details)

    @staticmethod
    def _validate_birth_date(date_of_birth: Optional[date]) -> None:
        if not isinstance(date_of_birth, date):
            raise InvalidValueException("Date of birth is required")
        today = config.today()
        if date_of_birth > today:
            raise InvalidValueException("Date of birth cannot be in the future")
        if _years_between(date_of_birth, today) > MAX_PATIENT_AGE:
            raise InvalidValueException(
                f"Date of birth implies an age over {MAX_PATIENT_AGE} years"
            )

    @staticmethod
    def _normalize_allergies(allergies: Iterable[str]) -> List[str]:
        result: List[str] = []
        seen = set()
        for allergy in allergies or []:
            cleaned = _clean(allergy)
            if cleaned and cleaned.lower() not in seen:
                seen.add(cleaned.lower())
                result.append(cleaned)
        return result

    def calculate_age(self, on: Optional[date] = None) -> int:
        return _years_between(self.date_of_birth, on or config.today())

    def is_minor(self) -> bool:
        return self.calculate_age() < ADULT_AGE

    def update_basic_info(
        self,
        full_name: FullName,
        date_of_birth: date,
        gender: Union[Gender, str],
        contact_info: ContactInfo,
        notes: Optional[str] = None,
    ) -> None:
        if not isinstance(full_name, FullName):
            raise InvalidValueException("Patient full name is required")
        self._validate_birth_date(date_of_birth)
        self.full_name = full_name
        self.date_of_birth = date_of_birth
        self.gender = Gender.from_string(gender)
        self.contact_info = contact_info or ContactInfo()
        if notes is not None:
            self.notes = _clean(notes)
        self.touch()

    def update_medical_history(self, medical_history: str) -> None:
        self.medical_history = _clean(medical_history)
        self.touch()

    def add_allergy(self, allergy: str) -> None:
        cleaned = _clean(allergy)
        if not cleaned:
            raise InvalidValueException("Allergy cannot be empty")
        if cleaned.lower() in (a.lower() for a in self.allergies):
            return
        self.allergies.append(cleaned)
        self.touch()

    def remove_allergy(self, allergy: str) -> None:
        target = _clean(allergy).lower()
        for existing in self.allergies:
            if existing.lower() == target:
                self.allergies.remove(existing)
                self.touch()
                return
        raise ValueNotFoundException(f"Allergy '{allergy}' not registered for patient")


def _years_between(start: date, end: date) -> int:
    return end.year - start.year - ((end.month, end.day) < (start.month, start.day))


# ===========================
# Doctor
# ===========================


@dataclass(eq=False)
class Doctor(Entity):
    full_name: Optional[FullName] = None
    specialty: str = ""
    license_number: Optional[str] = None
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    availability: WeeklyAvailability = field(default_factory=WeeklyAvailability)
    notes: str = ""

    def __post_init__(self):
        if not isinstance(self.full_name, FullName):
            raise InvalidValueException("Doctor full name is required")
        self.specialty = _clean(self.specialty)
        if not self.specialty:
            raise InvalidValueException("Specialty is required")
        self.license_number = _clean(self.license_number) or None
        if self.contact_info is None:
            self.contact_info = ContactInfo()
        if self.availability is None:
            self.availability = WeeklyAvailability()
        self.notes = _clean(self.notes)

    def update_info(
        self,
        full_name: FullName,
        specialty: str,
        contact_info: ContactInfo,
        license_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        if not isinstance(full_name, FullName):
            raise InvalidValueException("Doctor full name is required")
        if not _clean(specialty):
            raise InvalidValueException("Specialty is required")
        self.full_name = full_name
        self.specialty = _clean(specialty)
        self.contact_info = contact_info or ContactInfo()
        self.license_number = _clean(license_number) or None
        if notes is not None:
            self.notes = _clean(notes)
        self.touch()

    def set_availability(self, availability: WeeklyAvailability) -> None:
        self.availability = availability or WeeklyAvailability()
        self.touch()

    def add_availability(
        self, day: Union[Weekday, int, str], time_range: TimeRange
    ) -> None:
        self.availability = self.availability.add_time_range(day, time_range)
        self.touch()

    def is_available(self, on: date, slot: TimeSlot) -> bool:
        return self.availability.is_within_availability(Weekday.of(on), slot)


# ===========================
# Appointment
# ===========================


@dataclass(frozen=True)
class PlannedProcedure:
    treatment_id: str
    teeth: Tuple[ToothSurfaces, ...] = ()
    price: Money = field(default_factory=Money.zero)
    notes: str = ""

    def __post_init__(self):
        if not _clean(self.treatment_id):
            raise InvalidValueException("Planned procedure requires a treatment")
        object.__setattr__(self, "teeth", tuple(self.teeth or ()))
        object.__setattr__(self, "notes", _clean(self.notes))

    def to_dict(self) -> Dict[str, object]:
        return {
            "treatment_id": self.treatment_id,
            "teeth": [t.to_dict() for t in self.teeth],
            "price": self.price.to_dict(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "PlannedProcedure":
        price = data.get("price") or {}
        return cls(
            treatment_id=data["treatment_id"],
            teeth=tuple(ToothSurfaces.from_dict(t) for t in data.get("teeth") or ()),
            price=Money(price.get("amount", 0), price.get("currency", config.DEFAULT_CURRENCY)),
            notes=data.get("notes") or "",
        )


@dataclass(frozen=True)
class TreatmentPlan:
    procedures: Tuple[PlannedProcedure, ...] = ()

    def __post_init__(self):
        procedures = tuple(self.procedures or ())
        if not procedures:
            raise InvalidValueException("A treatment plan needs at least one procedure")
        object.__setattr__(self, "procedures", procedures)

    @property
    def total_cost(self) -> Money:
        total = Money.zero(self.procedures[0].price.currency)
        for procedure in self.procedures:
            total = total + procedure.price
        return total

    def add_procedure(self, procedure: PlannedProcedure) -> "TreatmentPlan":
        return TreatmentPlan(self.procedures + (procedure,))

    def to_list(self) -> List[Dict[str, object]]:
        return [p.to_dict() for p in self.procedures]

    @classmethod
    def from_list(cls, items: Optional[List[Dict[str, object]]]) -> Optional["TreatmentPlan"]:
        if not items:
            return None
        return cls(tuple(PlannedProcedure.from_dict(item) for item in items))


@dataclass(eq=False)
class Appointment(Entity):
    patient_id: str = ""
    doctor_id: str = ""
    date: Optional[date] = None
    time_slot: Optional[TimeSlot] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    treatment_plan: Optional[TreatmentPlan] = None
    notes: str = ""
    cancellation_reason: Optional[str] = None

    def __post_init__(self):
        if not _clean(self.patient_id):
            raise InvalidValueException("Appointment requires a patient")
        if not _clean(self.doctor_id):
            raise InvalidValueException("Appointment requires a doctor")
        if not isinstance(self.date, date):
            raise InvalidValueException("Appointment date is required")
        if not isinstance(self.time_slot, TimeSlot):
            raise InvalidValueException("Appointment time slot is required")
        self.status = AppointmentStatus(self.status)
        self.notes = _clean(self.notes)

    @classmethod
    def schedule(
        cls,
        patient_id: str,
        doctor_id: str,
        on: date,
        time_slot: TimeSlot,
        treatment_plan: Optional[TreatmentPlan] = None,
        notes: str = "",
    ) -> "Appointment":
        """Create a new appointment; past dates are refused."""
        _ensure_not_past(on)
        return cls(
            patient_id=patient_id,
            doctor_id=doctor_id,
            date=on,
            time_slot=time_slot,
            treatment_plan=treatment_plan,
            notes=notes,
        )

    def reschedule(self, on: date, time_slot: TimeSlot) -> None:
        if self.status != AppointmentStatus.SCHEDULED:
            raise WrongOperationException(
                f"Only scheduled appointments can be rescheduled (status: {self.status.value})"
            )
        _ensure_not_past(on)
        if not isinstance(time_slot, TimeSlot):
            raise InvalidValueException("Appointment time slot is required")
        self.date = on
        self.time_slot = time_slot
        self.touch()

    def update_notes(self, notes: Optional[str]) -> None:
        self.notes = _clean(notes)
        self.touch()

    def set_treatment_plan(self, plan: Optional[TreatmentPlan]) -> None:
        if self.status in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED):
            raise WrongOperationException(
                "Cannot change the treatment plan of a closed appointment"
            )
        self.treatment_plan = plan
        self.touch()

    def mark_as_waiting_room(self) -> None:
        if self.status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
            raise WrongOperationException(
                f"Cannot move a {self.status.value} appointment to the waiting room"
            )
        self.status = AppointmentStatus.WAITING_ROOM
        self.touch()

    def mark_as_in_progress(self) -> None:
        if self.status != AppointmentStatus.WAITING_ROOM:
            raise WrongOperationException(
                "Only appointments in the waiting room can start"
            )
        self.status = AppointmentStatus.IN_PROGRESS
        self.touch()

    def mark_as_completed(self) -> None:
        if self.status != AppointmentStatus.IN_PROGRESS:
            raise WrongOperationException(
                "Only appointments in progress can be completed"
            )
        self.status = AppointmentStatus.COMPLETED
        self.touch()

    def cancel(self, reason: Optional[str] = None) -> None:
        if self.status == AppointmentStatus.COMPLETED:
            raise WrongOperationException("Cannot cancel a completed appointment")
        self.status = AppointmentStatus.CANCELLED
        self.cancellation_reason = _clean(reason) or None
        self.touch()

    @property
    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


def _ensure_not_past(on: date) -> None:
    if not isinstance(on, date):
        raise InvalidValueException("Appointment date is required")
    if on < config.today():
        raise InvalidValueException("Cannot schedule an appointment in the past")


# ===========================
# Catalogues
# ===========================


@dataclass(eq=False)
class Treatment(Entity):
    name: str = ""
    description: str = ""
    price: Money = field(default_factory=Money.zero)
    estimated_duration_minutes: int = 30
    category: str = ""

    def __post_init__(self):
        self._validate(self.name, self.estimated_duration_minutes)
        self.name = _clean(self.name)
        self.description = _clean(self.description)
        self.category = _clean(self.category)

    @staticmethod
    def _validate(name: str, duration: int) -> None:
        if not _clean(name):
            raise InvalidValueException("Treatment name is required")
        if not isinstance(duration, int) or isinstance(duration, bool):
            raise InvalidValueException("Estimated duration must be an integer")
        if duration <= 0:
            raise InvalidValueException("Estimated duration must be positive")
        if duration > MAX_TREATMENT_MINUTES:
            raise InvalidValueException(
                f"Estimated duration cannot exceed {MAX_TREATMENT_MINUTES} minutes"
            )

    def update(
        self,
        name: str,
        description: str,
        price: Money,
        estimated_duration_minutes: int,
        category: str,
    ) -> None:
        self._validate(name, estimated_duration_minutes)
        self.name = _clean(name)
        self.description = _clean(description)
        self.price = price
        self.estimated_duration_minutes = estimated_duration_minutes
        self.category = _clean(category)
        self.touch()


@dataclass(eq=False)
class Lesion(Entity):
    name: str = ""
    description: str = ""
    category: str = ""
    is_active: bool = True

    def __post_init__(self):
        if not _clean(self.name):
            raise InvalidValueException("Lesion name is required")
        self.name = _clean(self.name)
        self.description = _clean(self.description)
        self.category = _clean(self.category)

    def update(self, name: str, description: str, category: str) -> None:
        if not _clean(name):
            raise InvalidValueException("Lesion name is required")
        self.name = _clean(name)
        self.description = _clean(description)
        self.category = _clean(category)
        self.touch()

    def activate(self) -> None:
        self.is_active = True
        self.touch()

    def deactivate(self) -> None:
        self.is_active = False
        self.touch()


# ===========================
# Odontogram
# ===========================


def _ensure_not_future(day: date, label: str) -> None:
    if not isinstance(day, date):
        raise InvalidValueException(f"{label} is required")
    if day > config.today():
        raise InvalidValueException(f"{label} cannot be in the future")


@dataclass(frozen=True)
class LesionRecord:
    lesion_id: str
    affected_surfaces: FrozenSet[ToothSurface]
    detection_date: date
    notes: str = ""

    def __post_init__(self):
        if not _clean(self.lesion_id):
            raise InvalidValueException("Lesion record requires a lesion")
        surfaces = parse_surfaces(self.affected_surfaces or ())
        if not surfaces:
            raise InvalidValueException("At least one affected surface is required")
        _ensure_not_future(self.detection_date, "Detection date")
        object.__setattr__(self, "affected_surfaces", surfaces)
        object.__setattr__(self, "notes", _clean(self.notes))

    def to_dict(self) -> Dict[str, object]:
        return {
            "lesion_id": self.lesion_id,
            "affected_surfaces": sorted(s.value for s in self.affected_surfaces),
            "detection_date": self.detection_date.isoformat(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "LesionRecord":
        return cls(
            lesion_id=data["lesion_id"],
            affected_surfaces=frozenset(data.get("affected_surfaces") or ()),
            detection_date=date.fromisoformat(data["detection_date"]),
            notes=data.get("notes") or "",
        )


@dataclass(frozen=True)
class PerformedProcedure:
    treatment_id: str
    treated_surfaces: FrozenSet[ToothSurface]
    completion_date: date
    notes: str = ""

    def __post_init__(self):
        if not _clean(self.treatment_id):
            raise InvalidValueException("Performed procedure requires a treatment")
        surfaces = parse_surfaces(self.treated_surfaces or ())
        if not surfaces:
            raise InvalidValueException("At least one treated surface is required")
        _ensure_not_future(self.completion_date, "Completion date")
        object.__setattr__(self, "treated_surfaces", surfaces)
        object.__setattr__(self, "notes", _clean(self.notes))

    def to_dict(self) -> Dict[str, object]:
        return {
            "treatment_id": self.treatment_id,
            "treated_surfaces": sorted(s.value for s in self.treated_surfaces),
            "completion_date": self.completion_date.isoformat(),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "PerformedProcedure":
        return cls(
            treatment_id=data["treatment_id"],
            treated_surfaces=frozenset(data.get("treated_surfaces") or ()),
            completion_date=date.fromisoformat(data["completion_date"]),
            notes=data.get("notes") or "",
        )


@dataclass
class ToothRecord:
    tooth_number: ToothNumber
    lesion_records: List[LesionRecord] = field(default_factory=list)
    performed_procedures: List[PerformedProcedure] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.tooth_number, ToothNumber):
            self.tooth_number = ToothNumber(self.tooth_number)

    def add_lesion_record(self, record: LesionRecord) -> None:
        validate_surfaces_for_tooth(self.tooth_number, record.affected_surfaces)
        self.lesion_records.append(record)

    def add_performed_procedure(self, procedure: PerformedProcedure) -> None:
        validate_surfaces_for_tooth(self.tooth_number, procedure.treated_surfaces)
        self.performed_procedures.append(procedure)

    @property
    def has_lesions(self) -> bool:
        return bool(self.lesion_records)

    @property
    def has_completed_procedures(self) -> bool:
        return bool(self.performed_procedures)

    def get_active_lesions(self) -> List[LesionRecord]:
        """Lesions not yet treated.

        A lesion is treated once a procedure completed after its detection
        date touched at least one of its surfaces.
        """
        return [
            lesion
            for lesion in self.lesion_records
            if not any(
                proc.completion_date > lesion.detection_date
                and proc.treated_surfaces & lesion.affected_surfaces
                for proc in self.performed_procedures
            )
        ]

    def to_dict(self) -> Dict[str, object]:
        return {
            "tooth_number": self.tooth_number.value,
            "lesion_records": [r.to_dict() for r in self.lesion_records],
            "performed_procedures": [p.to_dict() for p in self.performed_procedures],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ToothRecord":
        return cls(
            tooth_number=ToothNumber(data["tooth_number"]),
            lesion_records=[
                LesionRecord.from_dict(r) for r in data.get("lesion_records") or ()
            ],
            performed_procedures=[
                PerformedProcedure.from_dict(p)
                for p in data.get("performed_procedures") or ()
            ],
        )


ToothKey = Union[int, ToothNumber]


@dataclass(eq=False)
class Odontogram(Entity):
    patient_id: str = ""
    tooth_records: Dict[int, ToothRecord] = field(default_factory=dict)

    def __post_init__(self):
        if not _clean(self.patient_id):
            raise InvalidValueException("Odontogram requires a patient")

    @staticmethod
    def _key(tooth: ToothKey) -> int:
        if isinstance(tooth, ToothNumber):
            return tooth.value
        return ToothNumber(tooth).value

    def has_tooth_record(self, tooth: ToothKey) -> bool:
        return self._key(tooth) in self.tooth_records

    def get_tooth_record(self, tooth: ToothKey) -> Optional[ToothRecord]:
        return self.tooth_records.get(self._key(tooth))

    def add_tooth_record(self, record: ToothRecord) -> None:
        key = record.tooth_number.value
        if key in self.tooth_records:
            raise DuplicatedValueException(f"Tooth {key} already has a record")
        self.tooth_records[key] = record
        self.touch()

    def update_tooth_record(self, record: ToothRecord) -> None:
        key = record.tooth_number.value
        if key not in self.tooth_records:
            raise WrongOperationException(f"Tooth {key} has no record to update")
        self.tooth_records[key] = record
        self.touch()

    def get_or_create_tooth_record(self, tooth: ToothKey) -> ToothRecord:
        key = self._key(tooth)
        record = self.tooth_records.get(key)
        if record is None:
            record = ToothRecord(ToothNumber(key))
            self.tooth_records[key] = record
            self.touch()
        return record

    def _existing_or_detached(self, tooth: ToothKey) -> ToothRecord:
        """The tooth's record, or a new one not yet attached to the chart."""
        key = self._key(tooth)
        return self.tooth_records.get(key) or ToothRecord(ToothNumber(key))

    def _attach(self, record: ToothRecord) -> None:
        self.tooth_records.setdefault(record.tooth_number.value, record)
        self.touch()

    def add_lesion_record(self, tooth: ToothKey, record: LesionRecord) -> None:
        tooth_record = self._existing_or_detached(tooth)
        tooth_record.add_lesion_record(record)
        self._attach(tooth_record)

    def add_performed_procedure(
        self, tooth: ToothKey, procedure: PerformedProcedure
    ) -> None:
        tooth_record = self._existing_or_detached(tooth)
        tooth_record.add_performed_procedure(procedure)
        self._attach(tooth_record)

    def get_teeth_with_lesions(self) -> List[ToothRecord]:
        return [r for _, r in sorted(self.tooth_records.items()) if r.has_lesions]

    def get_teeth_with_procedures(self) -> List[ToothRecord]:
        return [
            r
            for _, r in sorted(self.tooth_records.items())
            if r.has_completed_procedures
        ]


# ===========================
# Staff accounts
# ===========================


@dataclass(eq=False)
class User(Entity):
    """A staff member allowed to use the API."""

    email: str = ""
    name: str = ""
    password_hash: Optional[str] = None
    is_active: bool = True

    def __post_init__(self):
        self.email = _clean(self.email).lower()
        self.name = _clean(self.name)
        if not self.name:
            raise InvalidValueException("Name is required")
        if not self.email or "@" not in self.email:
            raise InvalidValueException("A valid email is required")
