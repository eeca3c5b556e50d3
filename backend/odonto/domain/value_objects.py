"""
Value objects - immutable, validated on construction, compared by value.

Every invalid input raises ``InvalidValueException`` so callers get a 400
through the global error handler.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

from odonto.core.config import DEFAULT_CURRENCY
from odonto.core.exceptions import BusinessRuleException, InvalidValueException

PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-\(\)]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


# ===========================
# People
# ===========================


@dataclass(frozen=True)
class FullName:
    first_names: str
    last_names: str

    def __post_init__(self):
        first = (self.first_names or "").strip()
        last = (self.last_names or "").strip()
        if not first:
            raise InvalidValueException("First names cannot be empty")
        if not last:
            raise InvalidValueException("Last names cannot be empty")
        object.__setattr__(self, "first_names", first)
        object.__setattr__(self, "last_names", last)

    @property
    def full(self) -> str:
        return f"{self.first_names} {self.last_names}"

    def __str__(self) -> str:
        return self.full


@dataclass(frozen=True)
class ContactInfo:
    """Address, phone and email. Any of them may be blank."""

    address: str = ""
    phone_number: str = ""
    email: str = ""

    def __post_init__(self):
        address = (self.address or "").strip()
        phone = (self.phone_number or "").strip()
        email = (self.email or "").strip()
        if phone and not PHONE_PATTERN.match(phone):
            raise InvalidValueException(f"Invalid phone number: {phone}")
        if email and not EMAIL_PATTERN.match(email):
            raise InvalidValueException(f"Invalid email: {email}")
        object.__setattr__(self, "address", address)
        object.__setattr__(self, "phone_number", phone)
        object.__setattr__(self, "email", email)

    def to_dict(self) -> Dict[str, str]:
        return {
            "address": self.address,
            "phone_number": self.phone_number,
            "email": self.email,
        }


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"

    @classmethod
    def from_string(cls, value: Union[str, "Gender"]) -> "Gender":
        if isinstance(value, Gender):
            return value
        text = (value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise InvalidValueException(f"Invalid gender: {value}")


# ===========================
# Money
# ===========================


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        try:
            amount = Decimal(str(self.amount))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidValueException(f"Invalid amount: {self.amount}")
        if not amount.is_finite():
            raise InvalidValueException(f"Invalid amount: {self.amount}")
        if amount < 0:
            raise InvalidValueException("Amount cannot be negative")
        currency = (self.currency or "").strip().upper()
        if not CURRENCY_PATTERN.match(currency):
            raise InvalidValueException(f"Invalid currency code: {self.currency}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(Decimal("0"), currency)

    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise InvalidValueException("Can only operate with another Money value")
        if other.currency != self.currency:
            raise InvalidValueException(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        result = self.amount - other.amount
        if result < 0:
            raise InvalidValueException("Resulting amount cannot be negative")
        return Money(result, self.currency)

    def __mul__(self, multiplier: Union[int, float, Decimal]) -> "Money":
        factor = Decimal(str(multiplier))
        if factor < 0:
            raise InvalidValueException("Multiplier cannot be negative")
        return Money(self.amount * factor, self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"

    def to_dict(self) -> Dict[str, object]:
        return {"amount": float(self.amount), "currency": self.currency}


# ===========================
# Scheduling
# ===========================


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    WAITING_ROOM = "WaitingRoom"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Weekday(IntEnum):
    """Day of the week, numbered like ``date.weekday()`` (Monday is 0)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def from_value(cls, value: Union[int, str, "Weekday"]) -> "Weekday":
        if isinstance(value, Weekday):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            if 0 <= value <= 6:
                return cls(value)
            raise InvalidValueException(f"Invalid weekday: {value}")
        text = str(value or "").strip()
        if text.isdigit():
            return cls.from_value(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            raise InvalidValueException(f"Invalid weekday: {value}")

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())

    @property
    def label(self) -> str:
        return self.name.capitalize()


def _parse_clock(value: Union[str, time], label: str) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidValueException(f"Invalid {label} time: {value}")


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


@dataclass(frozen=True)
class TimeSlot:
    """A start/end pair within a single day (end strictly after start)."""

    start: time
    end: time

    def __post_init__(self):
        if not isinstance(self.start, time) or not isinstance(self.end, time):
            raise InvalidValueException("Time slot start and end must be times")
        if self.end <= self.start:
            raise InvalidValueException("End time must be after start time")

    @classmethod
    def parse(cls, start: Union[str, time], end: Union[str, time]) -> "TimeSlot":
        return cls(_parse_clock(start, "start"), _parse_clock(end, "end"))

    @property
    def duration(self) -> timedelta:
        return datetime.combine(date.min, self.end) - datetime.combine(
            date.min, self.start
        )

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "TimeSlot":
        return cls.parse(data["start"], data["end"])

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


@dataclass(frozen=True, order=True)
class TimeRange:
    """A window of availability within a day."""

    start: time
    end: time

    def __post_init__(self):
        if not isinstance(self.start, time) or not isinstance(self.end, time):
            raise InvalidValueException("Time range start and end must be times")
        if self.end <= self.start:
            raise InvalidValueException("Range end must be after range start")

    @classmethod
    def parse(cls, start: Union[str, time], end: Union[str, time]) -> "TimeRange":
        return cls(_parse_clock(start, "start"), _parse_clock(end, "end"))

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "TimeRange":
        return cls(slot.start, slot.end)

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, slot: Union[TimeSlot, "TimeRange"]) -> bool:
        return self.start <= slot.start and slot.end <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


class WeeklyAvailability:
    """Immutable weekday -> time ranges map.

    Ranges of a day are kept sorted and never overlap each other. Every
    modifier returns a new instance.
    """

    __slots__ = ("_ranges",)

    def __init__(
        self, ranges: Optional[Mapping[Union[Weekday, int, str], Iterable[TimeRange]]] = None
    ):
        normalized: Dict[Weekday, Tuple[TimeRange, ...]] = {}
        for day, day_ranges in (ranges or {}).items():
            weekday = Weekday.from_value(day)
            collected: List[TimeRange] = []
            for time_range in day_ranges:
                if any(time_range.overlaps(existing) for existing in collected):
                    raise BusinessRuleException(
                        f"Overlapping availability ranges on {weekday.label}"
                    )
                collected.append(time_range)
            if collected:
                normalized[weekday] = tuple(sorted(collected))
        self._ranges = normalized

    @classmethod
    def empty(cls) -> "WeeklyAvailability":
        return cls()

    def get_time_slots(self, day: Union[Weekday, int, str]) -> Tuple[TimeRange, ...]:
        return self._ranges.get(Weekday.from_value(day), ())

    def get_days_with_availability(self) -> List[Weekday]:
        return sorted(self._ranges)

    def add_time_range(
        self, day: Union[Weekday, int, str], time_range: TimeRange
    ) -> "WeeklyAvailability":
        weekday = Weekday.from_value(day)
        current = self._ranges.get(weekday, ())
        if any(time_range.overlaps(existing) for existing in current):
            raise BusinessRuleException(
                f"Time range {time_range.start:%H:%M}-{time_range.end:%H:%M} "
                f"overlaps existing availability on {weekday.label}"
            )
        updated = dict(self._ranges)
        updated[weekday] = current + (time_range,)
        return WeeklyAvailability(updated)

    def add_time_slot(
        self, day: Union[Weekday, int, str], slot: TimeSlot
    ) -> "WeeklyAvailability":
        return self.add_time_range(day, TimeRange.from_slot(slot))

    def remove_day(self, day: Union[Weekday, int, str]) -> "WeeklyAvailability":
        weekday = Weekday.from_value(day)
        updated = {k: v for k, v in self._ranges.items() if k != weekday}
        return WeeklyAvailability(updated)

    def is_within_availability(
        self, day: Union[Weekday, int, str], slot: TimeSlot
    ) -> bool:
        return any(r.contains(slot) for r in self.get_time_slots(day))

    def is_empty(self) -> bool:
        return not self._ranges

    def to_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            day.label: [r.to_dict() for r in ranges]
            for day, ranges in sorted(self._ranges.items())
        }

    @classmethod
    def from_dict(
        cls, data: Optional[Mapping[str, Iterable[Mapping[str, str]]]]
    ) -> "WeeklyAvailability":
        if not data:
            return cls()
        return cls(
            {
                day: [TimeRange.parse(item["start"], item["end"]) for item in items]
                for day, items in data.items()
            }
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WeeklyAvailability):
            return NotImplemented
        return self._ranges == other._ranges

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._ranges.items())))

    def __repr__(self) -> str:
        return f"WeeklyAvailability({self.to_dict()!r})"


class TimeSlotFactory:
    """Builds slots aligned to the clinic's half-hour grid."""

    SLOT_MINUTES = 30

    @staticmethod
    def create_normalized_slot(hour: int, minute: int, half_hours: int = 1) -> TimeSlot:
        if not 0 <= hour <= 23:
            raise InvalidValueException("Hour must be between 0 and 23")
        if minute not in (0, 30):
            raise InvalidValueException("Minute must be 0 or 30")
        if half_hours < 1:
            raise InvalidValueException("Duration must be at least one half hour")
        start_minutes = hour * 60 + minute
        end_minutes = start_minutes + half_hours * TimeSlotFactory.SLOT_MINUTES
        if end_minutes >= 24 * 60:
            raise InvalidValueException("Time slot must end on the same day")
        return TimeSlot(
            time(hour, minute), time(end_minutes // 60, end_minutes % 60)
        )

    @staticmethod
    def create_slot(
        start_hour: int, start_minute: int, end_hour: int, end_minute: int
    ) -> TimeSlot:
        for hour in (start_hour, end_hour):
            if not 0 <= hour <= 23:
                raise InvalidValueException("Hour must be between 0 and 23")
        for minute in (start_minute, end_minute):
            if minute not in (0, 30):
                raise InvalidValueException("Minutes must be 0 or 30")
        return TimeSlot(time(start_hour, start_minute), time(end_hour, end_minute))

    @staticmethod
    def get_all_daily_slots(open_hour: int = 9, close_hour: int = 19) -> List[TimeSlot]:
        if not (0 <= open_hour <= 23 and 0 <= close_hour <= 24):
            raise InvalidValueException("Clinic hours must be between 0 and 24")
        if open_hour >= close_hour:
            raise InvalidValueException("Opening hour must be before closing hour")
        slots = []
        current = open_hour * 60
        last_start = close_hour * 60 - TimeSlotFactory.SLOT_MINUTES
        while current <= last_start:
            end = current + TimeSlotFactory.SLOT_MINUTES
            if end >= 24 * 60:
                break
            slots.append(
                TimeSlot(time(current // 60, current % 60), time(end // 60, end % 60))
            )
            current = end
        return slots


# ===========================
# Teeth
# ===========================

ANTERIOR_RANGES = ((6, 11), (22, 27), (53, 63), (73, 83))


@dataclass(frozen=True, order=True)
class ToothNumber:
    """Universal numbering: adults 1-32, children 51-85."""

    value: int

    def __post_init__(self):
        try:
            number = int(self.value)
        except (TypeError, ValueError):
            raise InvalidValueException(f"Invalid tooth number: {self.value}")
        if not (1 <= number <= 32 or 51 <= number <= 85):
            raise InvalidValueException(f"Invalid tooth number: {self.value}")
        object.__setattr__(self, "value", number)

    @property
    def is_adult(self) -> bool:
        return 1 <= self.value <= 32

    @property
    def is_child(self) -> bool:
        return 51 <= self.value <= 85

    @property
    def is_anterior(self) -> bool:
        return any(low <= self.value <= high for low, high in ANTERIOR_RANGES)

    @property
    def quadrant(self) -> int:
        n = self.value
        if self.is_adult:
            return (n - 1) // 8 + 1
        if 51 <= n <= 55:
            return 5
        if 61 <= n <= 65:
            return 6
        if 71 <= n <= 75:
            return 7
        return 8

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


class ToothSurface(str, Enum):
    OCCLUSAL = "Occlusal"
    MESIAL = "Mesial"
    DISTAL = "Distal"
    PALATINE = "Palatine"
    VESTIBULAR = "Vestibular"

    @classmethod
    def from_string(cls, value: Union[str, "ToothSurface"]) -> "ToothSurface":
        if isinstance(value, ToothSurface):
            return value
        text = (value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise InvalidValueException(f"Invalid tooth surface: {value}")


def parse_surfaces(values: Iterable[Union[str, ToothSurface]]) -> FrozenSet[ToothSurface]:
    return frozenset(ToothSurface.from_string(v) for v in values)


def validate_surfaces_for_tooth(
    tooth: ToothNumber, surfaces: Iterable[ToothSurface]
) -> None:
    surfaces = frozenset(surfaces)
    if not surfaces:
        raise InvalidValueException("At least one surface is required")
    if tooth.is_anterior and ToothSurface.OCCLUSAL in surfaces:
        raise InvalidValueException(
            f"Anterior tooth {tooth} has no occlusal surface"
        )


@dataclass(frozen=True)
class ToothSurfaces:
    """A tooth together with the surfaces a procedure touches."""

    tooth_number: ToothNumber
    surfaces: FrozenSet[ToothSurface] = field(default_factory=frozenset)

    def __post_init__(self):
        tooth = self.tooth_number
        if not isinstance(tooth, ToothNumber):
            tooth = ToothNumber(tooth)
            object.__setattr__(self, "tooth_number", tooth)
        surfaces = parse_surfaces(self.surfaces)
        validate_surfaces_for_tooth(tooth, surfaces)
        object.__setattr__(self, "surfaces", surfaces)

    def to_dict(self) -> Dict[str, object]:
        return {
            "tooth_number": self.tooth_number.value,
            "surfaces": sorted(s.value for s in self.surfaces),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "ToothSurfaces":
        return cls(ToothNumber(data["tooth_number"]), data.get("surfaces") or ())
