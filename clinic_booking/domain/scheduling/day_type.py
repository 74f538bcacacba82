"""Classifies a calendar day against the weekly schedule and admin exceptions"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Iterable, Optional

from .clock import parse_hhmm, parse_iso_date
from .weekdays import Weekday, parse_weekdays


class DayKind(str, Enum):
    BLOCKED = "blocked"
    VACATION = "vacation"
    REGULAR_WORKDAY = "regular_workday"
    OCCASIONAL_WORKDAY = "occasional_workday"
    NON_WORKDAY = "non_workday"


OPEN_KINDS = (DayKind.REGULAR_WORKDAY, DayKind.OCCASIONAL_WORKDAY)


@dataclass(frozen=True)
class DayResolution:
    day: date
    kind: DayKind
    open_time: Optional[time] = None
    close_time: Optional[time] = None

    @property
    def is_open(self) -> bool:
        return self.kind in OPEN_KINDS


@dataclass(frozen=True)
class VacationPeriod:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class WeeklySchedule:
    """Plain snapshot of ScheduleConfig, decoupled from the ORM row"""

    work_days: list[Weekday]
    start_time: time
    end_time: time
    vacation_periods: list[VacationPeriod] = field(default_factory=list)
    occasional_work_days: set[date] = field(default_factory=set)
    occasional_hours: dict[date, tuple[time, time]] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config) -> "WeeklySchedule":
        occasional_hours = {}
        for iso_day, hours in (config.occasional_work_day_times or {}).items():
            if hours and hours.get("startTime") and hours.get("endTime"):
                occasional_hours[parse_iso_date(iso_day)] = (
                    parse_hhmm(hours["startTime"]),
                    parse_hhmm(hours["endTime"]),
                )
        return cls(
            work_days=parse_weekdays(config.work_days),
            start_time=parse_hhmm(config.start_time),
            end_time=parse_hhmm(config.end_time),
            vacation_periods=[
                VacationPeriod(parse_iso_date(p["start"]), parse_iso_date(p["end"]))
                for p in (config.vacation_periods or [])
                if p.get("start") and p.get("end")
            ],
            occasional_work_days={parse_iso_date(d) for d in (config.occasional_work_days or [])},
            occasional_hours=occasional_hours,
        )


def resolve_day(day: date, schedule: WeeklySchedule, blocked_days: Iterable[date]) -> DayResolution:
    """
    Precedence: blocked > vacation > regular workday > occasional workday > closed.
    A regular workday always uses the default hours, even if it is also listed
    as an occasional day with its own hours.
    """
    if day in set(blocked_days):
        return DayResolution(day, DayKind.BLOCKED)

    if any(period.contains(day) for period in schedule.vacation_periods):
        return DayResolution(day, DayKind.VACATION)

    if Weekday.from_date(day) in schedule.work_days:
        return DayResolution(day, DayKind.REGULAR_WORKDAY, schedule.start_time, schedule.end_time)

    if day in schedule.occasional_work_days:
        open_time, close_time = schedule.occasional_hours.get(
            day, (schedule.start_time, schedule.end_time)
        )
        return DayResolution(day, DayKind.OCCASIONAL_WORKDAY, open_time, close_time)

    return DayResolution(day, DayKind.NON_WORKDAY)
