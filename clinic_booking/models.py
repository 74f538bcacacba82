from enum import Enum

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED_BY_PATIENT = "cancelled_by_patient"
    CANCELLED_BY_PROFESSIONAL = "cancelled_by_professional"
    ATTENDED = "attended"
    NO_SHOW = "no_show"


# Statuses that occupy a slot
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING.value,
    AppointmentStatus.CONFIRMED.value,
    AppointmentStatus.ATTENDED.value,
)
# Statuses that vacate a slot
TERMINAL_STATUSES = (
    AppointmentStatus.CANCELLED_BY_PATIENT.value,
    AppointmentStatus.CANCELLED_BY_PROFESSIONAL.value,
    AppointmentStatus.NO_SHOW.value,
)
CANCELLED_STATUSES = (
    AppointmentStatus.CANCELLED_BY_PATIENT.value,
    AppointmentStatus.CANCELLED_BY_PROFESSIONAL.value,
)


class CreatedBy(str, Enum):
    PATIENT = "patient"
    ADMIN = "admin"
    EXTERNAL_CALENDAR = "external_calendar"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    patient_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=False, default="")
    # Naive UTC; converted to the practice timezone for all day/time reasoning
    appointment_time = Column(DateTime, nullable=False, index=True)
    service_type = Column(String(50), nullable=False)  # see ServiceType
    is_first_time = Column(Boolean, default=False)
    health_insurance = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default=AppointmentStatus.PENDING.value, index=True)
    created_by = Column(String(30), nullable=False, default=CreatedBy.PATIENT.value)

    cancellation_token = Column(String(64), nullable=True, unique=True, index=True)
    cancellation_token_expires_at = Column(DateTime, nullable=True)

    # Google Calendar event backing this appointment
    external_event_id = Column(String(255), nullable=True, index=True)

    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String(30), nullable=True)  # patient, admin, external_calendar
    attended_at = Column(DateTime, nullable=True)
    no_show_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class BlockedDay(Base):
    __tablename__ = "blocked_days"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, unique=True, index=True)
    reason = Column(String(500), nullable=False, default="Blocked by administrator")
    created_at = Column(DateTime, server_default=func.now())


class ScheduleConfig(Base):
    """Single-row weekly schedule for the practice"""

    __tablename__ = "schedule_config"

    id = Column(Integer, primary_key=True, index=True)
    work_days = Column(JSON, nullable=False, default=list)  # canonical Weekday values
    start_time = Column(String(5), nullable=False, default="09:00")  # HH:MM
    end_time = Column(String(5), nullable=False, default="12:00")
    vacation_periods = Column(JSON, nullable=False, default=list)  # [{"start": iso, "end": iso}]
    occasional_work_days = Column(JSON, nullable=False, default=list)  # [iso date]
    occasional_work_day_times = Column(
        JSON, nullable=False, default=dict
    )  # {iso date: {"startTime": "HH:MM", "endTime": "HH:MM"}}
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class DeletedCalendarEvent(Base):
    """Calendar event of a deleted appointment that could not be removed from the calendar"""

    __tablename__ = "deleted_calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String(255), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
