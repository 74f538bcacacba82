"""Canonical weekday names"""

import unicodedata
from datetime import date
from enum import Enum

from ...errors import ValidationError


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "Weekday":
        return _BY_ISO_INDEX[day.weekday()]


_BY_ISO_INDEX = list(Weekday)

# Spanish names (accents stripped) and common abbreviations
_ALIASES = {
    "lunes": Weekday.MONDAY,
    "martes": Weekday.TUESDAY,
    "miercoles": Weekday.WEDNESDAY,
    "jueves": Weekday.THURSDAY,
    "viernes": Weekday.FRIDAY,
    "sabado": Weekday.SATURDAY,
    "domingo": Weekday.SUNDAY,
    "mon": Weekday.MONDAY,
    "tue": Weekday.TUESDAY,
    "tues": Weekday.TUESDAY,
    "wed": Weekday.WEDNESDAY,
    "thu": Weekday.THURSDAY,
    "thur": Weekday.THURSDAY,
    "thurs": Weekday.THURSDAY,
    "fri": Weekday.FRIDAY,
    "sat": Weekday.SATURDAY,
    "sun": Weekday.SUNDAY,
}


def _strip_accents(value: str) -> str:
    normalized = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn")


def parse_weekday(value) -> Weekday:
    """
    Map an English or Spanish day name, in any case and with or without
    accents ("Miércoles", "miercoles", "Wednesday"), onto a Weekday.
    """
    if isinstance(value, Weekday):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid weekday: {value!r}")

    key = _strip_accents(value.strip()).lower()
    try:
        return Weekday(key)
    except ValueError:
        pass
    if key in _ALIASES:
        return _ALIASES[key]
    raise ValidationError(f"Unknown weekday: {value!r}")


def parse_weekdays(values) -> list[Weekday]:
    """Parse a list of day names, dropping duplicates and keeping Monday-first order"""
    parsed = {parse_weekday(v) for v in values or []}
    return [day for day in Weekday if day in parsed]
