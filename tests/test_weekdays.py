"""Tests for weekday parsing."""

from datetime import date

import pytest

from clinic_booking.domain.scheduling.weekdays import Weekday, parse_weekday, parse_weekdays
from clinic_booking.errors import ValidationError


@pytest.mark.parametrize(
    "name",
    ["miércoles", "Miércoles", "MIERCOLES", "miercoles", "wednesday", "Wednesday", " wed "],
)
def test_parse_weekday_accepts_spanish_and_english_variants(name):
    """Accents, case and language do not matter."""
    assert parse_weekday(name) is Weekday.WEDNESDAY


def test_parse_weekday_spanish_saturday_with_accent():
    assert parse_weekday("Sábado") is Weekday.SATURDAY


@pytest.mark.parametrize("bad", ["", "   ", "funday", None, 3])
def test_parse_weekday_rejects_unknown(bad):
    with pytest.raises(ValidationError):
        parse_weekday(bad)


def test_parse_weekdays_dedupes_and_orders():
    """Mixed spellings of the same day collapse to one entry, Monday first."""
    assert parse_weekdays(["viernes", "Miércoles", "wednesday", "lunes"]) == [
        Weekday.MONDAY,
        Weekday.WEDNESDAY,
        Weekday.FRIDAY,
    ]


def test_from_date():
    assert Weekday.from_date(date(2031, 1, 1)) is Weekday.WEDNESDAY
    assert Weekday.from_date(date(2031, 1, 5)) is Weekday.SUNDAY
