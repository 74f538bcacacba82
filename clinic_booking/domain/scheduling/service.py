"""Schedule service - Business logic for opening hours and slot availability"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import ConflictError, NotFoundError, ValidationError
from ...models import BlockedDay, ScheduleConfig
from .availability import Booking, SlotRejection, check_slot
from .clock import local_day_bounds, to_local, utcnow
from .day_type import DayResolution, WeeklySchedule, resolve_day
from .repository import ScheduleRepository
from .schemas import (
    AvailabilityResponse,
    BlockedDayCheckResponse,
    ScheduleConfigResponse,
    ScheduleConfigUpdate,
    TimeSlot,
)
from .services_catalog import get_service
from .slots import generate_slots
from .weekdays import parse_weekdays

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_REASON = "Blocked by administrator"


class ScheduleService:
    """Service layer for day resolution, availability and schedule administration"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()

    # ------------------------------------------------------------------
    # Day resolution and availability
    # ------------------------------------------------------------------

    def get_schedule(self) -> WeeklySchedule:
        return WeeklySchedule.from_config(self.repo.get_or_create_config(self.db))

    def resolve(self, day: date, schedule: Optional[WeeklySchedule] = None) -> DayResolution:
        schedule = schedule or self.get_schedule()
        return resolve_day(day, schedule, self.repo.get_blocked_dates(self.db, day, day))

    def get_bookings(self, day: date) -> list[Booking]:
        start_utc, end_utc = local_day_bounds(day)
        return [
            Booking(id=a.id, start=a.appointment_time, service_type=a.service_type)
            for a in self.repo.get_active_appointments(self.db, start_utc, end_utc)
        ]

    def check(
        self,
        start: datetime,
        service_type,
        exclude_id: Optional[int] = None,
        schedule: Optional[WeeklySchedule] = None,
    ) -> Optional[SlotRejection]:
        """Run the availability rules for one proposed start"""
        day = to_local(start).date()
        return check_slot(start, service_type, self.resolve(day, schedule), self.get_bookings(day), exclude_id)

    def get_availability(self, day: date, service_type, now: Optional[datetime] = None) -> AvailabilityResponse:
        """
        Every candidate slot of the day with its availability.
        Slots at or before `now` are reported as unavailable.
        """
        service = get_service(service_type)
        resolution = self.resolve(day)

        time_slots = []
        if resolution.is_open:
            now = to_local(now or utcnow())
            bookings = self.get_bookings(day)
            for start in generate_slots(day, resolution.open_time, resolution.close_time):
                rejection = check_slot(start, service.service_type, resolution, bookings)
                if rejection is None and start <= now:
                    reason = "in_the_past"
                else:
                    reason = rejection.value if rejection else None
                time_slots.append(
                    TimeSlot(
                        time=start.strftime("%H:%M"),
                        startsAt=start,
                        available=reason is None,
                        reason=reason,
                    )
                )

        return AvailabilityResponse(
            date=day,
            dayType=resolution.kind.value,
            serviceType=service.service_type.value,
            durationMinutes=service.duration_minutes,
            timeSlots=time_slots,
        )

    # ------------------------------------------------------------------
    # Schedule config
    # ------------------------------------------------------------------

    @staticmethod
    def to_config_response(config: ScheduleConfig) -> ScheduleConfigResponse:
        return ScheduleConfigResponse(
            workDays=[d.value for d in parse_weekdays(config.work_days)],
            startTime=config.start_time,
            endTime=config.end_time,
            vacationPeriods=config.vacation_periods or [],
            occasionalWorkDays=config.occasional_work_days or [],
            occasionalWorkDayTimes=config.occasional_work_day_times or {},
        )

    def get_config(self) -> ScheduleConfigResponse:
        return self.to_config_response(self.repo.get_or_create_config(self.db))

    def update_config(self, data: ScheduleConfigUpdate) -> ScheduleConfigResponse:
        config = self.repo.get_or_create_config(self.db)

        updates = {}
        if data.workDays is not None:
            updates["work_days"] = [d.value for d in parse_weekdays(data.workDays)]
        if data.startTime is not None:
            updates["start_time"] = data.startTime
        if data.endTime is not None:
            updates["end_time"] = data.endTime
        if data.vacationPeriods is not None:
            updates["vacation_periods"] = [
                {"start": p.start.isoformat(), "end": p.end.isoformat()} for p in data.vacationPeriods
            ]
        if data.occasionalWorkDays is not None:
            updates["occasional_work_days"] = sorted({d.isoformat() for d in data.occasionalWorkDays})
        if data.occasionalWorkDayTimes is not None:
            updates["occasional_work_day_times"] = {
                day.isoformat(): hours.model_dump() for day, hours in data.occasionalWorkDayTimes.items()
            }

        start_time = updates.get("start_time", config.start_time)
        end_time = updates.get("end_time", config.end_time)
        if start_time >= end_time:
            raise ValidationError("Opening time must be before closing time")

        config = self.repo.update_config(self.db, config, **updates)
        logger.info(f"✅ Schedule config updated: {sorted(updates)}")
        return self.to_config_response(config)

    # ------------------------------------------------------------------
    # Blocked days
    # ------------------------------------------------------------------

    def list_blocked_days(self) -> list[BlockedDay]:
        return self.repo.list_blocked_days(self.db)

    def block_day(self, day: date, reason: Optional[str] = None) -> BlockedDay:
        if self.repo.get_blocked_day_by_date(self.db, day):
            raise ConflictError("already_blocked", f"{day.isoformat()} is already blocked")
        blocked = self.repo.create_blocked_day(self.db, day, reason or DEFAULT_BLOCK_REASON)
        logger.info(f"🚫 Day blocked: {day.isoformat()} ({blocked.reason})")
        return blocked

    def unblock_day(self, blocked_day_id: int) -> None:
        blocked = self.repo.get_blocked_day(self.db, blocked_day_id)
        if not blocked:
            raise NotFoundError("Blocked day not found")
        day = blocked.date
        self.repo.delete_blocked_day(self.db, blocked)
        logger.info(f"✅ Day unblocked: {day.isoformat()}")

    def check_blocked(self, day: date) -> BlockedDayCheckResponse:
        blocked = self.repo.get_blocked_day_by_date(self.db, day)
        return BlockedDayCheckResponse(date=day, isBlocked=blocked is not None, reason=blocked.reason if blocked else None)
