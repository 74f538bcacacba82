"""Appointment router - booking, cancellation and calendar sync endpoints"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...email_service import EmailNotifier
from ...models import CreatedBy
from ...services.google_calendar_service import CalendarClient
from ..scheduling.clock import to_local
from .reconciler import ExternalCalendarReconciler
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    CalendarStatusResponse,
    CalendarStatusUpdate,
    CancelByTokenRequest,
    PatientAppointmentCreate,
    SyncRequest,
    SyncResultResponse,
    TokenValidationResponse,
)
from .service import AppointmentService, to_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Appointments"])


def get_calendar_client(request: Request) -> CalendarClient:
    """The process-wide calendar client, created on first use"""
    calendar = getattr(request.app.state, "calendar", None)
    if calendar is None:
        calendar = request.app.state.calendar = CalendarClient.from_settings()
    return calendar


def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def get_appointment_service(
    db: Session = Depends(get_db),
    calendar: CalendarClient = Depends(get_calendar_client),
    notifier: EmailNotifier = Depends(get_notifier),
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db, calendar=calendar, notifier=notifier)


# ============================================================================
# PUBLIC
# ============================================================================


@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
def book_appointment(
    data: PatientAppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Patient booking; the cancellation link is sent by email"""
    return to_response(service.create_appointment(data, created_by=CreatedBy.PATIENT))


@router.get("/appointments/validate-token", response_model=TokenValidationResponse)
def validate_cancellation_token(
    token: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.validate_token(token)
    return TokenValidationResponse(
        valid=True,
        id=appointment.id,
        patientName=appointment.patient_name,
        appointmentTime=to_local(appointment.appointment_time),
        serviceType=appointment.service_type,
        cancellableUntil=to_local(appointment.cancellation_token_expires_at),
    )


@router.post("/appointments/cancel", response_model=AppointmentResponse)
def cancel_with_token(
    data: CancelByTokenRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_response(service.cancel_by_token(data.token))


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/appointments", response_model=list[AppointmentResponse])
def list_appointments(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    includeCancelled: bool = Query(False),
    _admin: dict = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return [to_response(a) for a in service.list_appointments(start, end, includeCancelled)]


@router.post("/admin/appointments", response_model=AppointmentResponse, status_code=201)
def create_appointment_as_admin(
    data: AppointmentCreate,
    _admin: dict = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Booking entered by the practice; starts confirmed"""
    return to_response(service.create_appointment(data, created_by=CreatedBy.ADMIN))


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    _admin: dict = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_response(service.get_appointment(appointment_id))


@router.patch("/appointments/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    _admin: dict = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_response(service.update_appointment(appointment_id, data))


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    _admin: dict = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return to_response(service.cancel_by_admin(appointment_id))


@router.delete("/appointments/{appointment_id}", status_code=204)
def delete_appointment(
    appointment_id: int,
    _admin: dict = Depends(get_current_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    service.delete_appointment(appointment_id)


# ============================================================================
# CALENDAR
# ============================================================================


@router.get("/admin/calendar/status", response_model=CalendarStatusResponse)
def get_calendar_status(
    _admin: dict = Depends(get_current_admin),
    calendar: CalendarClient = Depends(get_calendar_client),
):
    return calendar.status()


@router.patch("/admin/calendar/status", response_model=CalendarStatusResponse)
def set_calendar_status(
    data: CalendarStatusUpdate,
    _admin: dict = Depends(get_current_admin),
    calendar: CalendarClient = Depends(get_calendar_client),
):
    calendar.enabled = data.enabled
    logger.info(f"🔧 Google Calendar sync {'enabled' if data.enabled else 'disabled'}")
    return calendar.status()


@router.post("/admin/calendar/sync", response_model=SyncResultResponse)
def sync_calendar(
    data: Optional[SyncRequest] = None,
    _admin: dict = Depends(get_current_admin),
    db: Session = Depends(get_db),
    calendar: CalendarClient = Depends(get_calendar_client),
):
    """Run a reconciliation sweep now"""
    data = data or SyncRequest()
    result = ExternalCalendarReconciler(db, calendar).reconcile(data.startDate, data.endDate)
    return result.to_dict()
