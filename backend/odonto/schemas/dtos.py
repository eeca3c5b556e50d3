"""
Data Transfer Objects (DTOs) and validation schemas.

Request DTOs are built from JSON bodies with ``from_dict`` (type parsing)
and checked with ``validate`` (field rules); both raise
``ValidationException``. Response DTOs are built with ``from_domain`` and
serialized with ``to_dict``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from odonto.core import config
from odonto.core.api_utils import parse_date, parse_int, parse_time
from odonto.core.exceptions import ValidationException
from odonto.domain.value_objects import Gender, ToothSurface


def _text(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationException(f"{key} must be a string", [key])
    return value.strip()


def _optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    if key not in data or data[key] is None:
        return None
    return _text(data, key)


def _string_list(data: Mapping[str, Any], key: str) -> List[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationException(f"{key} must be a list of strings", [key])
    return [v.strip() for v in value]


def _mapping(data: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValidationException(f"{key} must be an object", [key])
    return value


def _raise_if(errors: List[str], message: str) -> None:
    if errors:
        raise ValidationException(message, errors)


def _iso(value: Optional[Any]) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return None


def _valid_surface(value: str) -> bool:
    return value.strip().lower() in {s.value.lower() for s in ToothSurface}


# ===========================
# Shared payloads
# ===========================


@dataclass
class ContactInfoPayload:
    address: str = ""
    phone_number: str = ""
    email: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContactInfoPayload":
        return cls(
            address=_text(data, "address"),
            phone_number=_text(data, "phone_number"),
            email=_text(data, "email"),
        )


# ===========================
# Auth
# ===========================


@dataclass
class LoginRequest:
    email: str
    password: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LoginRequest":
        return cls(email=_text(data, "email"), password=data.get("password") or "")

    def validate(self) -> None:
        errors = []
        if not self.email or "@" not in self.email:
            errors.append("email")
        if not self.password:
            errors.append("password")
        _raise_if(errors, "Email and password are required")


@dataclass
class UserResponse:
    id: str
    email: str
    name: str
    is_active: bool

    @classmethod
    def from_domain(cls, user) -> "UserResponse":
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            is_active=bool(getattr(user, "is_active", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===========================
# Patients
# ===========================


@dataclass
class PatientCreateRequest:
    """DTO for patient creation and full updates (PUT)."""

    first_names: str
    last_names: str
    date_of_birth: Optional[date]
    gender: str
    contact_info: ContactInfoPayload = field(default_factory=ContactInfoPayload)
    medical_history: str = ""
    allergies: List[str] = field(default_factory=list)
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PatientCreateRequest":
        return cls(
            first_names=_text(data, "first_names"),
            last_names=_text(data, "last_names"),
            date_of_birth=parse_date(data.get("date_of_birth"), "date_of_birth", required=False),
            gender=_text(data, "gender"),
            contact_info=ContactInfoPayload.from_dict(_mapping(data, "contact_info")),
            medical_history=_text(data, "medical_history"),
            allergies=_string_list(data, "allergies"),
            notes=_text(data, "notes"),
        )

    def validate(self) -> None:
        errors = []
        if not self.first_names:
            errors.append("first_names")
        if not self.last_names:
            errors.append("last_names")
        if self.date_of_birth is None:
            errors.append("date_of_birth")
        elif self.date_of_birth > config.today():
            errors.append("date_of_birth")
        if self.gender.lower() not in {g.value.lower() for g in Gender}:
            errors.append("gender")
        _raise_if(errors, "Invalid patient data")


PatientUpdateRequest = PatientCreateRequest


@dataclass
class MedicalHistoryRequest:
    medical_history: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MedicalHistoryRequest":
        if "medical_history" not in data:
            raise ValidationException("medical_history is required", ["medical_history"])
        return cls(medical_history=_text(data, "medical_history"))

    def validate(self) -> None:
        pass


@dataclass
class AllergyRequest:
    allergy: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AllergyRequest":
        return cls(allergy=_text(data, "allergy"))

    def validate(self) -> None:
        if not self.allergy:
            raise ValidationException("allergy is required", ["allergy"])


@dataclass
class PatientResponse:
    id: str
    first_names: str
    last_names: str
    full_name: str
    date_of_birth: Optional[str]
    age: int
    is_minor: bool
    gender: str
    contact_info: Dict[str, str]
    medical_history: str
    allergies: List[str]
    notes: str
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(cls, patient) -> "PatientResponse":
        return cls(
            id=patient.id,
            first_names=patient.full_name.first_names,
            last_names=patient.full_name.last_names,
            full_name=patient.full_name.full,
            date_of_birth=_iso(patient.date_of_birth),
            age=patient.calculate_age(),
            is_minor=patient.is_minor(),
            gender=patient.gender.value,
            contact_info=patient.contact_info.to_dict(),
            medical_history=patient.medical_history,
            allergies=list(patient.allergies),
            notes=patient.notes,
            created_at=_iso(patient.created_at),
            updated_at=_iso(patient.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===========================
# Doctors
# ===========================


@dataclass
class DoctorCreateRequest:
    """DTO for doctor creation and full updates (PUT)."""

    first_names: str
    last_names: str
    specialty: str
    license_number: Optional[str] = None
    contact_info: ContactInfoPayload = field(default_factory=ContactInfoPayload)
    availability: Optional[Dict[str, Any]] = None
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DoctorCreateRequest":
        availability = data.get("availability")
        if availability is not None and not isinstance(availability, dict):
            raise ValidationException("availability must be an object", ["availability"])
        return cls(
            first_names=_text(data, "first_names"),
            last_names=_text(data, "last_names"),
            specialty=_text(data, "specialty"),
            license_number=_optional_text(data, "license_number"),
            contact_info=ContactInfoPayload.from_dict(_mapping(data, "contact_info")),
            availability=availability,
            notes=_text(data, "notes"),
        )

    def validate(self) -> None:
        errors = []
        if not self.first_names:
            errors.append("first_names")
        if not self.last_names:
            errors.append("last_names")
        if not self.specialty:
            errors.append("specialty")
        if self.availability:
            for day, ranges in self.availability.items():
                if not isinstance(ranges, list) or not all(
                    isinstance(r, dict) and "start" in r and "end" in r for r in ranges
                ):
                    errors.append(f"availability.{day}")
        _raise_if(errors, "Invalid doctor data")


DoctorUpdateRequest = DoctorCreateRequest


@dataclass
class DoctorResponse:
    id: str
    first_names: str
    last_names: str
    full_name: str
    specialty: str
    license_number: Optional[str]
    contact_info: Dict[str, str]
    availability: Dict[str, List[Dict[str, str]]]
    notes: str
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(cls, doctor) -> "DoctorResponse":
        return cls(
            id=doctor.id,
            first_names=doctor.full_name.first_names,
            last_names=doctor.full_name.last_names,
            full_name=doctor.full_name.full,
            specialty=doctor.specialty,
            license_number=doctor.license_number,
            contact_info=doctor.contact_info.to_dict(),
            availability=doctor.availability.to_dict(),
            notes=doctor.notes,
            created_at=_iso(doctor.created_at),
            updated_at=_iso(doctor.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===========================
# Appointments
# ===========================


@dataclass
class ToothSurfacesPayload:
    tooth_number: int
    surfaces: List[str]

    @classmethod
    def from_dict(cls, data: Any) -> "ToothSurfacesPayload":
        if not isinstance(data, dict):
            raise ValidationException("Each tooth must be an object", ["teeth"])
        number = parse_int(data.get("tooth_number"), "tooth_number")
        if number is None:
            raise ValidationException("tooth_number is required", ["tooth_number"])
        return cls(tooth_number=number, surfaces=_string_list(data, "surfaces"))


@dataclass
class PlannedProcedureRequest:
    treatment_id: str
    teeth: List[ToothSurfacesPayload] = field(default_factory=list)
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "PlannedProcedureRequest":
        if not isinstance(data, dict):
            raise ValidationException("Each procedure must be an object", ["procedures"])
        teeth = data.get("teeth") or []
        if not isinstance(teeth, list):
            raise ValidationException("teeth must be a list", ["teeth"])
        return cls(
            treatment_id=_text(data, "treatment_id"),
            teeth=[ToothSurfacesPayload.from_dict(t) for t in teeth],
            notes=_text(data, "notes"),
        )


def _procedures(data: Mapping[str, Any]) -> Optional[List[PlannedProcedureRequest]]:
    if "procedures" not in data or data["procedures"] is None:
        return None
    items = data["procedures"]
    if not isinstance(items, list):
        raise ValidationException("procedures must be a list", ["procedures"])
    return [PlannedProcedureRequest.from_dict(item) for item in items]


@dataclass
class AppointmentCreateRequest:
    patient_id: str
    doctor_id: str
    date: Optional[date]
    start_time: Any
    end_time: Any
    notes: str = ""
    procedures: Optional[List[PlannedProcedureRequest]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppointmentCreateRequest":
        return cls(
            patient_id=_text(data, "patient_id"),
            doctor_id=_text(data, "doctor_id"),
            date=parse_date(data.get("date"), "date", required=False),
            start_time=parse_time(data.get("start_time"), "start_time", required=False),
            end_time=parse_time(data.get("end_time"), "end_time", required=False),
            notes=_text(data, "notes"),
            procedures=_procedures(data),
        )

    def validate(self) -> None:
        errors = []
        for name in ("patient_id", "doctor_id", "date", "start_time", "end_time"):
            if not getattr(self, name):
                errors.append(name)
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            errors.append("end_time")
        for procedure in self.procedures or []:
            if not procedure.treatment_id:
                errors.append("procedures.treatment_id")
        _raise_if(errors, "Invalid appointment data")


@dataclass
class AppointmentUpdateRequest:
    """Partial update; omitted fields keep their current value."""

    date: Optional[date] = None
    start_time: Any = None
    end_time: Any = None
    notes: Optional[str] = None
    procedures: Optional[List[PlannedProcedureRequest]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppointmentUpdateRequest":
        return cls(
            date=parse_date(data.get("date"), "date", required=False),
            start_time=parse_time(data.get("start_time"), "start_time", required=False),
            end_time=parse_time(data.get("end_time"), "end_time", required=False),
            notes=_optional_text(data, "notes"),
            procedures=_procedures(data),
        )

    @property
    def changes_schedule(self) -> bool:
        return any(v is not None for v in (self.date, self.start_time, self.end_time))

    def validate(self) -> None:
        errors = []
        if (self.start_time is None) != (self.end_time is None):
            errors.append("start_time" if self.start_time is None else "end_time")
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            errors.append("end_time")
        for procedure in self.procedures or []:
            if not procedure.treatment_id:
                errors.append("procedures.treatment_id")
        _raise_if(errors, "Invalid appointment data")


@dataclass
class CancelAppointmentRequest:
    reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CancelAppointmentRequest":
        return cls(reason=_optional_text(data, "reason"))


@dataclass
class AppointmentResponse:
    id: str
    patient_id: str
    doctor_id: str
    date: Optional[str]
    start_time: str
    end_time: str
    duration_minutes: int
    status: str
    notes: str
    cancellation_reason: Optional[str]
    procedures: List[Dict[str, Any]]
    total_cost: Optional[Dict[str, Any]]
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(cls, appointment) -> "AppointmentResponse":
        plan = appointment.treatment_plan
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            date=_iso(appointment.date),
            start_time=appointment.time_slot.start.strftime("%H:%M"),
            end_time=appointment.time_slot.end.strftime("%H:%M"),
            duration_minutes=appointment.time_slot.duration_minutes,
            status=appointment.status.value,
            notes=appointment.notes,
            cancellation_reason=appointment.cancellation_reason,
            procedures=plan.to_list() if plan else [],
            total_cost=plan.total_cost.to_dict() if plan else None,
            created_at=_iso(appointment.created_at),
            updated_at=_iso(appointment.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===========================
# Treatments and lesions
# ===========================


@dataclass
class TreatmentCreateRequest:
    name: str
    price: Any
    estimated_duration_minutes: Optional[int]
    description: str = ""
    category: str = ""
    currency: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TreatmentCreateRequest":
        price = data.get("price")
        if isinstance(price, dict):
            currency = _text(price, "currency")
            price = price.get("amount")
        else:
            currency = _text(data, "currency")
        return cls(
            name=_text(data, "name"),
            price=price,
            estimated_duration_minutes=parse_int(
                data.get("estimated_duration_minutes"), "estimated_duration_minutes"
            ),
            description=_text(data, "description"),
            category=_text(data, "category"),
            currency=currency or config.DEFAULT_CURRENCY,
        )

    def validate(self) -> None:
        errors = []
        if not self.name:
            errors.append("name")
        if self.price is None or isinstance(self.price, bool):
            errors.append("price")
        if self.estimated_duration_minutes is None:
            errors.append("estimated_duration_minutes")
        _raise_if(errors, "Invalid treatment data")


TreatmentUpdateRequest = TreatmentCreateRequest


@dataclass
class TreatmentResponse:
    id: str
    name: str
    description: str
    price: Dict[str, Any]
    estimated_duration_minutes: int
    category: str
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(cls, treatment) -> "TreatmentResponse":
        return cls(
            id=treatment.id,
            name=treatment.name,
            description=treatment.description,
            price=treatment.price.to_dict(),
            estimated_duration_minutes=treatment.estimated_duration_minutes,
            category=treatment.category,
            created_at=_iso(treatment.created_at),
            updated_at=_iso(treatment.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LesionCreateRequest:
    name: str
    description: str = ""
    category: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LesionCreateRequest":
        return cls(
            name=_text(data, "name"),
            description=_text(data, "description"),
            category=_text(data, "category"),
        )

    def validate(self) -> None:
        if not self.name:
            raise ValidationException("Invalid lesion data", ["name"])


LesionUpdateRequest = LesionCreateRequest


@dataclass
class LesionResponse:
    id: str
    name: str
    description: str
    category: str
    is_active: bool
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(cls, lesion) -> "LesionResponse":
        return cls(
            id=lesion.id,
            name=lesion.name,
            description=lesion.description,
            category=lesion.category,
            is_active=lesion.is_active,
            created_at=_iso(lesion.created_at),
            updated_at=_iso(lesion.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ===========================
# Odontograms
# ===========================


@dataclass
class ToothRecordCreateRequest:
    tooth_number: Optional[int]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToothRecordCreateRequest":
        return cls(tooth_number=parse_int(data.get("tooth_number"), "tooth_number"))

    def validate(self) -> None:
        if self.tooth_number is None:
            raise ValidationException("tooth_number is required", ["tooth_number"])


@dataclass
class LesionRecordCreateRequest:
    lesion_id: str
    affected_surfaces: List[str]
    detection_date: date
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LesionRecordCreateRequest":
        return cls(
            lesion_id=_text(data, "lesion_id"),
            affected_surfaces=_string_list(data, "affected_surfaces"),
            detection_date=parse_date(
                data.get("detection_date"), "detection_date", required=False
            )
            or config.today(),
            notes=_text(data, "notes"),
        )

    def validate(self) -> None:
        errors = []
        if not self.lesion_id:
            errors.append("lesion_id")
        if not self.affected_surfaces or not all(
            _valid_surface(s) for s in self.affected_surfaces
        ):
            errors.append("affected_surfaces")
        if self.detection_date > config.today():
            errors.append("detection_date")
        _raise_if(errors, "Invalid lesion record")


@dataclass
class PerformedProcedureCreateRequest:
    treatment_id: str
    treated_surfaces: List[str]
    completion_date: date
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PerformedProcedureCreateRequest":
        return cls(
            treatment_id=_text(data, "treatment_id"),
            treated_surfaces=_string_list(data, "treated_surfaces"),
            completion_date=parse_date(
                data.get("completion_date"), "completion_date", required=False
            )
            or config.today(),
            notes=_text(data, "notes"),
        )

    def validate(self) -> None:
        errors = []
        if not self.treatment_id:
            errors.append("treatment_id")
        if not self.treated_surfaces or not all(
            _valid_surface(s) for s in self.treated_surfaces
        ):
            errors.append("treated_surfaces")
        if self.completion_date > config.today():
            errors.append("completion_date")
        _raise_if(errors, "Invalid performed procedure")


@dataclass
class OdontogramResponse:
    """Odontogram with lesion and treatment names resolved for display."""

    id: str
    patient_id: str
    teeth: List[Dict[str, Any]]
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(
        cls,
        odontogram,
        lesion_names: Optional[Mapping[str, str]] = None,
        treatment_names: Optional[Mapping[str, str]] = None,
    ) -> "OdontogramResponse":
        lesion_names = lesion_names or {}
        treatment_names = treatment_names or {}
        teeth = [
            tooth_record_to_dict(record, lesion_names, treatment_names)
            for _, record in sorted(odontogram.tooth_records.items())
        ]
        return cls(
            id=odontogram.id,
            patient_id=odontogram.patient_id,
            teeth=teeth,
            created_at=_iso(odontogram.created_at),
            updated_at=_iso(odontogram.updated_at),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def lesion_record_to_dict(
    record, lesion_names: Mapping[str, str], is_active: bool
) -> Dict[str, Any]:
    data = record.to_dict()
    data["lesion_name"] = lesion_names.get(record.lesion_id, "")
    data["is_active"] = is_active
    return data


def tooth_record_to_dict(
    record,
    lesion_names: Mapping[str, str],
    treatment_names: Mapping[str, str],
) -> Dict[str, Any]:
    active = record.get_active_lesions()
    procedures = []
    for procedure in record.performed_procedures:
        item = procedure.to_dict()
        item["treatment_name"] = treatment_names.get(procedure.treatment_id, "")
        procedures.append(item)
    return {
        "tooth_number": record.tooth_number.value,
        "quadrant": record.tooth_number.quadrant,
        "is_anterior": record.tooth_number.is_anterior,
        "lesion_records": [
            lesion_record_to_dict(r, lesion_names, r in active)
            for r in record.lesion_records
        ],
        "performed_procedures": procedures,
    }
