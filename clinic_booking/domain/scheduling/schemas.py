"""Scheduling domain schemas - Pydantic models for validation"""

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _validate_hhmm(v):
    if v is not None and not HHMM.match(v):
        raise ValueError("Time must use HH:MM format")
    return v


class TimeSlot(BaseModel):
    time: str  # HH:MM practice-local
    startsAt: datetime
    available: bool
    reason: Optional[str] = None


class AvailabilityResponse(BaseModel):
    date: date
    dayType: str
    serviceType: str
    durationMinutes: int
    timeSlots: list[TimeSlot]


class OccasionalHours(BaseModel):
    startTime: str
    endTime: str

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return _validate_hhmm(v)

    @model_validator(mode="after")
    def validate_order(self):
        # HH:MM strings compare in time order
        if self.startTime >= self.endTime:
            raise ValueError("Opening time must be before closing time")
        return self


class VacationPeriodSchema(BaseModel):
    start: date
    end: date


class ScheduleConfigResponse(BaseModel):
    workDays: list[str]
    startTime: str
    endTime: str
    vacationPeriods: list[VacationPeriodSchema] = []
    occasionalWorkDays: list[date] = []
    occasionalWorkDayTimes: dict[str, OccasionalHours] = {}


class ScheduleConfigUpdate(BaseModel):
    """Partial update; weekday names may be English or Spanish"""

    workDays: Optional[list[str]] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    vacationPeriods: Optional[list[VacationPeriodSchema]] = None
    occasionalWorkDays: Optional[list[date]] = None
    occasionalWorkDayTimes: Optional[dict[date, OccasionalHours]] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return _validate_hhmm(v)

    @field_validator("vacationPeriods")
    @classmethod
    def validate_periods(cls, v):
        for period in v or []:
            if period.end < period.start:
                raise ValueError("Vacation period ends before it starts")
        return v


class BlockedDayCreate(BaseModel):
    date: date
    reason: Optional[str] = None


class BlockedDayResponse(BaseModel):
    id: int
    date: date
    reason: str

    class Config:
        from_attributes = True


class BlockedDayCheckResponse(BaseModel):
    date: date
    isBlocked: bool
    reason: Optional[str] = None
