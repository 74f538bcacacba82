"""Candidate start times for an open day"""

from datetime import date, datetime, time, timedelta

from ...config import SLOT_STEP_MINUTES
from .clock import combine_local


def generate_slots(day: date, open_time: time, close_time: time, step_minutes: int = SLOT_STEP_MINUTES) -> list[datetime]:
    """
    Start times from `open_time` while there is still a full step before `close_time`.
    09:00-12:00 with a 20 minute step gives 09:00, 09:20, ... 11:40.
    """
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    step = timedelta(minutes=step_minutes)
    current = combine_local(day, open_time)
    last_start = combine_local(day, close_time) - step

    slots = []
    while current <= last_start:
        slots.append(current)
        current += step
    return slots
