"""Appointment service - booking, rescheduling and cancellation"""

import logging
import secrets
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...config import CANCELLATION_CUTOFF_HOURS
from ...database import locked_reads
from ...errors import ConflictError, ExpiredTokenError, NotFoundError
from ...models import (
    CANCELLED_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
    CreatedBy,
)
from ..scheduling.clock import TIMEZONE, local_day_bounds, to_local, to_utc_naive, utcnow
from ..scheduling.service import ScheduleService
from ..scheduling.services_catalog import duration_for, parse_service_type
from .calendar_sync import CalendarPublisher
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentResponse, AppointmentUpdate

logger = logging.getLogger(__name__)


def new_cancellation_token() -> str:
    return secrets.token_hex(32)


def _aware(value: datetime) -> datetime:
    """Times without an offset are practice-local"""
    if value.tzinfo is None:
        return value.replace(tzinfo=TIMEZONE)
    return value


def to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        patientName=appointment.patient_name,
        email=appointment.email or "",
        phone=appointment.phone or "",
        appointmentTime=to_local(appointment.appointment_time),
        serviceType=appointment.service_type,
        durationMinutes=duration_for(appointment.service_type),
        isFirstTime=bool(appointment.is_first_time),
        healthInsurance=appointment.health_insurance,
        notes=appointment.notes,
        status=appointment.status,
        createdBy=appointment.created_by,
        externalEventId=appointment.external_event_id,
        cancelledAt=appointment.cancelled_at,
        cancelledBy=appointment.cancelled_by,
        attendedAt=appointment.attended_at,
        noShowAt=appointment.no_show_at,
        created_at=appointment.created_at,
    )


class AppointmentService:
    """
    Appointment lifecycle.

    The store is authoritative. Calendar pushes and notifications run after the
    local commit and never fail the operation.
    """

    def __init__(
        self,
        db: Session,
        calendar=None,
        notifier=None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.repo = AppointmentRepository()
        self.schedule = ScheduleService(db)
        self.publisher = CalendarPublisher(db, calendar)
        self.notifier = notifier
        self.now = now

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def list_appointments(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        include_cancelled: bool = False,
    ) -> list[Appointment]:
        """Appointments between two local dates, both inclusive"""
        start_utc = local_day_bounds(start)[0] if start else None
        end_utc = local_day_bounds(end)[1] if end else None
        return self.repo.list_appointments(self.db, start_utc, end_utc, include_cancelled)

    def get_day_agenda(self, day: date) -> list[Appointment]:
        start_utc, end_utc = local_day_bounds(day)
        return self.repo.get_active_in_range(self.db, start_utc, end_utc)

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def _ensure_available(self, start: datetime, service_type: str, exclude_id: Optional[int] = None) -> None:
        """
        Check the slot inside the current transaction. On PostgreSQL the day is
        locked first so two concurrent bookings cannot both pass the check.
        """
        schedule = self.schedule.get_schedule()
        with locked_reads(self.db):
            self.schedule.repo.lock_day(self.db, to_local(start).date())
            rejection = self.schedule.check(start, service_type, exclude_id=exclude_id, schedule=schedule)
        if rejection:
            self.db.rollback()
            logger.info(f"🚫 Slot {to_local(start).isoformat()} rejected for {service_type}: {rejection.value}")
            raise ConflictError(rejection.value, f"Requested time is not available ({rejection.value})")

    def create_appointment(
        self,
        data: AppointmentCreate,
        created_by: CreatedBy = CreatedBy.PATIENT,
        external_event_id: Optional[str] = None,
    ) -> Appointment:
        start = _aware(data.appointmentTime)
        service_type = parse_service_type(data.serviceType).value

        if created_by == CreatedBy.PATIENT and start <= self.now():
            raise ConflictError("in_the_past", "Requested time has already passed")

        # Events typed straight into the calendar are taken as they are
        if created_by != CreatedBy.EXTERNAL_CALENDAR:
            self._ensure_available(start, service_type)

        appointment_time = to_utc_naive(start)
        appointment = Appointment(
            patient_name=data.patientName,
            email=data.email or "",
            phone=data.phone or "",
            appointment_time=appointment_time,
            service_type=service_type,
            is_first_time=data.isFirstTime,
            health_insurance=data.healthInsurance,
            notes=data.notes,
            status=(
                AppointmentStatus.PENDING.value
                if created_by == CreatedBy.PATIENT
                else AppointmentStatus.CONFIRMED.value
            ),
            created_by=created_by.value,
            cancellation_token=new_cancellation_token(),
            cancellation_token_expires_at=appointment_time - timedelta(hours=CANCELLATION_CUTOFF_HOURS),
            external_event_id=external_event_id,
        )
        self.repo.add(self.db, appointment)
        appointment = self.repo.save(self.db, appointment)
        logger.info(
            f"✅ Appointment {appointment.id} created by {created_by.value}: "
            f"{to_local(appointment.appointment_time).isoformat()} {service_type}"
        )

        if created_by != CreatedBy.EXTERNAL_CALENDAR:
            self.publisher.publish(appointment)
            self._notify("booking_created", appointment)
        return appointment

    def update_appointment(
        self,
        appointment_id: int,
        data: AppointmentUpdate,
        from_external: bool = False,
    ) -> Appointment:
        """
        Apply a partial update. A new time or service type, or a cancelled
        appointment being reactivated, is re-checked against the schedule,
        ignoring this appointment's own slot, unless the change comes from the
        external calendar.
        """
        appointment = self.get_appointment(appointment_id)

        new_time = to_utc_naive(_aware(data.appointmentTime)) if data.appointmentTime else None
        new_service = data.serviceType
        time_changed = new_time is not None and new_time != appointment.appointment_time
        service_changed = new_service is not None and new_service != appointment.service_type
        new_status = data.status.value if data.status else None
        stays_active = (new_status or appointment.status) not in TERMINAL_STATUSES
        # A cancelled or no-show appointment taken back must win its slot again
        reactivating = appointment.status in TERMINAL_STATUSES and stays_active

        if (time_changed or service_changed or reactivating) and stays_active and not from_external:
            self._ensure_available(
                _aware(data.appointmentTime) if time_changed else to_local(appointment.appointment_time),
                new_service or appointment.service_type,
                exclude_id=appointment.id,
            )

        updates = {
            "patient_name": data.patientName,
            "email": data.email,
            "phone": data.phone,
            "service_type": new_service,
            "is_first_time": data.isFirstTime,
            "health_insurance": data.healthInsurance,
            "notes": data.notes,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(appointment, key, value)

        if time_changed:
            appointment.appointment_time = new_time
            appointment.cancellation_token_expires_at = new_time - timedelta(hours=CANCELLATION_CUTOFF_HOURS)

        if new_status and new_status != appointment.status:
            self._apply_status(appointment, new_status, by=CreatedBy.ADMIN.value)

        appointment = self.repo.save(self.db, appointment)
        logger.info(f"✅ Appointment {appointment.id} updated{' from external calendar' if from_external else ''}")

        if not from_external:
            if appointment.status in CANCELLED_STATUSES:
                self.publisher.unpublish(appointment)
            elif appointment.status not in TERMINAL_STATUSES:
                self.publisher.publish(appointment)
        return appointment

    def _apply_status(self, appointment: Appointment, status: str, by: str) -> None:
        stamp = to_utc_naive(self.now())
        appointment.status = status
        if status == AppointmentStatus.ATTENDED.value:
            appointment.attended_at = stamp
        elif status == AppointmentStatus.NO_SHOW.value:
            appointment.no_show_at = stamp
        elif status in CANCELLED_STATUSES:
            appointment.cancelled_at = stamp
            appointment.cancelled_by = by

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def validate_token(self, token: str) -> Appointment:
        """Resolve a cancellation token without side effects"""
        appointment = self.repo.get_by_token(self.db, token) if token else None
        if not appointment:
            raise NotFoundError("Invalid cancellation token")
        if to_utc_naive(self.now()) > appointment.cancellation_token_expires_at:
            raise ExpiredTokenError(
                f"Appointments can only be cancelled up to {CANCELLATION_CUTOFF_HOURS} hours in advance"
            )
        if appointment.status in TERMINAL_STATUSES:
            raise ConflictError("already_cancelled", "Appointment is already cancelled")
        return appointment

    def cancel_by_token(self, token: str) -> Appointment:
        """Patient self-cancellation. The token works once."""
        appointment = self.validate_token(token)

        self._apply_status(appointment, AppointmentStatus.CANCELLED_BY_PATIENT.value, by=CreatedBy.PATIENT.value)
        appointment.cancellation_token = None
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"✅ Appointment {appointment.id} cancelled by patient")

        self.publisher.unpublish(appointment)
        self._notify("cancelled_by_patient", appointment)
        return appointment

    def cancel_by_admin(self, appointment_id: int) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.status in CANCELLED_STATUSES:
            raise ConflictError("already_cancelled", "Appointment is already cancelled")
        if appointment.status in TERMINAL_STATUSES:
            raise ConflictError("not_cancellable", f"Appointment is {appointment.status}")

        self._apply_status(appointment, AppointmentStatus.CANCELLED_BY_PROFESSIONAL.value, by=CreatedBy.ADMIN.value)
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"✅ Appointment {appointment.id} cancelled by professional")

        self.publisher.unpublish(appointment)
        self._notify("cancelled_by_professional", appointment)
        return appointment

    def cancel_from_external(self, appointment: Appointment, note: str) -> Appointment:
        """The backing calendar event was deleted: keep the record, mark it cancelled by the practice"""
        self._apply_status(
            appointment,
            AppointmentStatus.CANCELLED_BY_PROFESSIONAL.value,
            by=CreatedBy.EXTERNAL_CALENDAR.value,
        )
        appointment.notes = f"{appointment.notes}\n{note}" if appointment.notes else note
        appointment.external_event_id = None
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"✅ Appointment {appointment.id} cancelled after its calendar event disappeared")
        return appointment

    def link_event(self, appointment: Appointment, event_id: str) -> Appointment:
        appointment.external_event_id = event_id
        return self.repo.save(self.db, appointment)

    def delete_appointment(self, appointment_id: int) -> None:
        appointment = self.get_appointment(appointment_id)
        removed = self.publisher.unpublish(appointment)
        orphan_event_id = None if removed else appointment.external_event_id
        self.repo.delete(self.db, appointment, orphan_event_id=orphan_event_id)
        if orphan_event_id:
            logger.warning(
                f"⚠️ Appointment {appointment_id} deleted; event {orphan_event_id} left on the calendar "
                f"will be removed by the next sweep"
            )
        else:
            logger.info(f"🗑️ Appointment {appointment_id} deleted")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _notify(self, event: str, appointment: Appointment) -> None:
        if self.notifier is None:
            return
        try:
            getattr(self.notifier, event)(appointment)
        except Exception as e:
            logger.error(f"❌ Notification '{event}' failed for appointment {appointment.id}: {e}")
