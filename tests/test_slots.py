"""Tests for slot generation."""

from datetime import date, time

import pytest

from clinic_booking.domain.scheduling.slots import generate_slots

DAY = date(2031, 1, 1)


def test_morning_window_twenty_minute_step():
    """09:00-12:00 yields 09:00 through 11:40."""
    slots = generate_slots(DAY, time(9, 0), time(12, 0), 20)
    labels = [s.strftime("%H:%M") for s in slots]
    assert labels[0] == "09:00"
    assert labels[-1] == "11:40"
    assert len(labels) == 9


@pytest.mark.parametrize(
    "open_time,close_time,step",
    [
        (time(9, 0), time(12, 0), 20),
        (time(8, 0), time(17, 30), 30),
        (time(10, 0), time(10, 50), 20),
        (time(14, 10), time(18, 0), 20),
    ],
)
def test_length_formula(open_time, close_time, step):
    """Length equals floor((close - open - step) / step) + 1."""
    minutes = (close_time.hour * 60 + close_time.minute) - (open_time.hour * 60 + open_time.minute)
    expected = (minutes - step) // step + 1
    assert len(generate_slots(DAY, open_time, close_time, step)) == expected


def test_deterministic():
    first = generate_slots(DAY, time(9, 0), time(12, 0), 20)
    second = generate_slots(DAY, time(9, 0), time(12, 0), 20)
    assert first == second


def test_window_shorter_than_step_is_empty():
    assert generate_slots(DAY, time(9, 0), time(9, 10), 20) == []


def test_slots_are_timezone_aware():
    slot = generate_slots(DAY, time(9, 0), time(12, 0), 20)[0]
    assert slot.tzinfo is not None
    assert slot.utcoffset().total_seconds() == -3 * 3600


def test_rejects_non_positive_step():
    with pytest.raises(ValueError):
        generate_slots(DAY, time(9, 0), time(12, 0), 0)
