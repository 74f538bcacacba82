"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...errors import BookingError
from ...models import AppointmentStatus
from ..scheduling.services_catalog import parse_service_type


def _service_type(v):
    if v is None:
        return v
    try:
        return parse_service_type(v).value
    except BookingError as e:
        raise ValueError(e.message) from e


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment. Times without an offset are practice-local."""

    patientName: str
    email: str = ""
    phone: str = ""
    appointmentTime: datetime
    serviceType: str = "consultation"
    isFirstTime: bool = False
    healthInsurance: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("patientName")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Patient name is required")
        return v.strip()

    @field_validator("serviceType")
    @classmethod
    def validate_service_type(cls, v):
        return _service_type(v)


class PatientAppointmentCreate(AppointmentCreate):
    """Online bookings must leave contact details"""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if not v or "@" not in v:
            raise ValueError("A valid email is required")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if not v or not v.strip():
            raise ValueError("Phone is required")
        return v.strip()


class AppointmentUpdate(BaseModel):
    """Schema for updating an existing appointment"""

    patientName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    appointmentTime: Optional[datetime] = None
    serviceType: Optional[str] = None
    isFirstTime: Optional[bool] = None
    healthInsurance: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None

    @field_validator("serviceType")
    @classmethod
    def validate_service_type(cls, v):
        return _service_type(v)


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    patientName: str
    email: str
    phone: str
    appointmentTime: datetime
    serviceType: str
    durationMinutes: int
    isFirstTime: bool
    healthInsurance: Optional[str]
    notes: Optional[str]
    status: str
    createdBy: str
    externalEventId: Optional[str] = None
    cancelledAt: Optional[datetime] = None
    cancelledBy: Optional[str] = None
    attendedAt: Optional[datetime] = None
    noShowAt: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CancelByTokenRequest(BaseModel):
    token: str


class TokenValidationResponse(BaseModel):
    valid: bool
    id: int
    patientName: str
    appointmentTime: datetime
    serviceType: str
    cancellableUntil: datetime


class CalendarStatusResponse(BaseModel):
    initialized: bool
    enabled: bool
    message: str


class CalendarStatusUpdate(BaseModel):
    enabled: bool


class SyncRequest(BaseModel):
    startDate: Optional[date] = None
    endDate: Optional[date] = None


class SyncResultResponse(BaseModel):
    success: bool
    message: str
    startDate: date
    endDate: date
    updated: int = 0
    created: int = 0
    cancelled: int = 0
    linked: int = 0
    errors: int = 0
