"""
Availability rules for a proposed appointment start.

check_slot() runs the rules in order and returns the first rejection, or None
when the slot is free. Each rule is a plain function so it can be exercised on
its own.

Two carve-outs share one table:
- the 11:40 local slot is always inside hours, skips the procedure window and
  only conflicts with an appointment at the exact same instant
- services flagged exempt_from_overlap (regenerative therapy) only conflict
  with an appointment at the exact same instant
The narrow rule follows the candidate: an existing exempt appointment still
occupies its full duration for anyone booking after it.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Iterable, Optional

from .clock import combine_local, to_local
from .day_type import DayResolution
from .services_catalog import PROCEDURE_GRACE_MINUTES, ServiceDefinition, get_service

LEGACY_SLOT = time(11, 40)
ALIGNMENT_STEPS = (20, 30)


class SlotRejection(str, Enum):
    DAY_CLOSED = "day_closed"
    MISALIGNED = "misaligned"
    OUTSIDE_HOURS = "outside_hours"
    OVERLAPS_APPOINTMENT = "overlaps_appointment"
    EXCEEDS_PROCEDURE_WINDOW = "exceeds_procedure_window"


@dataclass(frozen=True)
class Booking:
    """An existing appointment as seen by the overlap rule"""

    id: Optional[int]
    start: datetime
    service_type: str

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=get_service(self.service_type).duration_minutes)


def is_legacy_slot(start: datetime) -> bool:
    local = to_local(start)
    return local.hour == LEGACY_SLOT.hour and local.minute == LEGACY_SLOT.minute


def check_day_open(resolution: DayResolution) -> Optional[SlotRejection]:
    if not resolution.is_open:
        return SlotRejection.DAY_CLOSED
    return None


def check_alignment(start: datetime) -> Optional[SlotRejection]:
    local = to_local(start)
    if local.second or local.microsecond:
        return SlotRejection.MISALIGNED
    if not any(local.minute % step == 0 for step in ALIGNMENT_STEPS):
        return SlotRejection.MISALIGNED
    return None


def check_within_hours(start: datetime, service: ServiceDefinition, resolution: DayResolution) -> Optional[SlotRejection]:
    if is_legacy_slot(start):
        return None
    local = to_local(start)
    opens_at = combine_local(resolution.day, resolution.open_time)
    last_start = combine_local(resolution.day, resolution.close_time) - timedelta(
        minutes=service.duration_minutes
    )
    if not opens_at <= local <= last_start:
        return SlotRejection.OUTSIDE_HOURS
    return None


def check_overlap(start: datetime, service: ServiceDefinition, existing: Iterable[Booking]) -> Optional[SlotRejection]:
    start = to_local(start)
    end = start + timedelta(minutes=service.duration_minutes)
    narrow = service.exempt_from_overlap or is_legacy_slot(start)

    for booking in existing:
        other_start = to_local(booking.start)
        if narrow:
            if other_start == start:
                return SlotRejection.OVERLAPS_APPOINTMENT
            continue
        # Half-open intervals: back-to-back bookings do not collide
        if start < to_local(booking.end) and other_start < end:
            return SlotRejection.OVERLAPS_APPOINTMENT
    return None


def check_procedure_window(start: datetime, service: ServiceDefinition, resolution: DayResolution) -> Optional[SlotRejection]:
    if not service.enforce_procedure_window or is_legacy_slot(start):
        return None
    end = to_local(start) + timedelta(minutes=service.duration_minutes)
    cutoff = combine_local(resolution.day, resolution.close_time) + timedelta(minutes=PROCEDURE_GRACE_MINUTES)
    if end > cutoff:
        return SlotRejection.EXCEEDS_PROCEDURE_WINDOW
    return None


def check_slot(
    start: datetime,
    service_type,
    resolution: DayResolution,
    existing: Iterable[Booking],
    exclude_id: Optional[int] = None,
) -> Optional[SlotRejection]:
    """Return the first rule the candidate breaks, or None when it can be booked"""
    service = get_service(service_type)
    others = [b for b in existing if exclude_id is None or b.id != exclude_id]

    return (
        check_day_open(resolution)
        or check_alignment(start)
        or check_within_hours(start, service, resolution)
        or check_overlap(start, service, others)
        or check_procedure_window(start, service, resolution)
    )
