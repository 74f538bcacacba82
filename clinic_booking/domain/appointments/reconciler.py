"""
Inbound calendar reconciliation.

The external calendar can create, move or delete events behind our back. A
sweep over a bounded window brings the local store back in line:
- linked event deleted -> appointment cancelled by the professional, record kept
- linked event moved -> appointment time follows the event
- unlinked event -> linked to a matching local appointment, else imported
- event left behind by a deleted appointment -> removed from the calendar

A sweep that finds nothing changed performs no writes.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import SYNC_MAX_WINDOW_DAYS, SYNC_WINDOW_DAYS
from ...errors import ExternalServiceError, ValidationError
from ...models import Appointment, CreatedBy
from ..scheduling.clock import combine_local, local_today, parse_instant, to_local, to_utc_naive
from ..scheduling.services_catalog import match_service_keywords
from .schemas import AppointmentCreate, AppointmentUpdate
from .service import AppointmentService

logger = logging.getLogger(__name__)

MISSING_EVENT_NOTE = "Cancelado automáticamente: el evento fue eliminado de Google Calendar"
IMPORTED_NOTE = "Creado automáticamente desde Google Calendar. Evento original: {summary}"

_DESCRIPTION_FIELDS = {
    "email": re.compile(r"^\s*email\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    "phone": re.compile(r"^\s*tel[eé]fono\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    "service": re.compile(r"^\s*(?:tipo de )?servicio\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    "insurance": re.compile(r"^\s*obra social\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
}


@dataclass
class SyncResult:
    success: bool
    start_date: date
    end_date: date
    message: str = ""
    updated: int = 0
    created: int = 0
    cancelled: int = 0
    linked: int = 0
    errors: int = 0

    @property
    def mutations(self) -> int:
        return self.updated + self.created + self.cancelled + self.linked

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "updated": self.updated,
            "created": self.created,
            "cancelled": self.cancelled,
            "linked": self.linked,
            "errors": self.errors,
        }


def sync_window(start: Optional[date] = None, end: Optional[date] = None, today: Optional[date] = None) -> tuple[date, date]:
    """Inclusive local date range for a sweep, capped at SYNC_MAX_WINDOW_DAYS"""
    today = today or local_today()
    start = start or today
    end = end or start + timedelta(days=SYNC_WINDOW_DAYS)
    if end < start:
        raise ValidationError("Sync window ends before it starts")
    if (end - start).days > SYNC_MAX_WINDOW_DAYS:
        logger.warning(f"⚠️ Sync window {start}..{end} capped to {SYNC_MAX_WINDOW_DAYS} days")
        end = start + timedelta(days=SYNC_MAX_WINDOW_DAYS)
    return start, end


def simplify_name(value: str) -> str:
    return re.sub(r"\s+", "", value or "").lower()


def names_match(a: str, b: str) -> bool:
    a, b = simplify_name(a), simplify_name(b)
    return bool(a and b) and (a in b or b in a)


def event_start(event: dict) -> Optional[datetime]:
    """Start instant of a timed event; all-day events have none"""
    raw = (event.get("start") or {}).get("dateTime")
    if not raw:
        return None
    try:
        return parse_instant(raw)
    except ValidationError:
        logger.warning(f"⚠️ Unparseable start on event {event.get('id')}: {raw!r}")
        return None


def parse_event(event: dict, start: datetime) -> AppointmentCreate:
    """Read "Name - Service - Insurance" titles, falling back to description fields"""
    summary = event.get("summary", "").strip()
    description = event.get("description") or ""
    separator = " - " if " - " in summary else "-"
    parts = [p.strip() for p in summary.split(separator)]

    fields = {}
    for key, pattern in _DESCRIPTION_FIELDS.items():
        match = pattern.search(description)
        if match:
            fields[key] = match.group(1).strip()

    service_text = parts[1] if len(parts) > 1 and parts[1] else fields.get("service")
    insurance = parts[2] if len(parts) > 2 and parts[2] else fields.get("insurance")

    return AppointmentCreate(
        patientName=parts[0] or summary,
        email=fields.get("email", ""),
        phone=fields.get("phone", ""),
        appointmentTime=start,
        serviceType=match_service_keywords(service_text).value,
        healthInsurance=insurance,
        notes=IMPORTED_NOTE.format(summary=summary),
    )


class ExternalCalendarReconciler:
    """Brings local appointments in line with the external calendar"""

    def __init__(self, db: Session, calendar, lifecycle: Optional[AppointmentService] = None):
        self.db = db
        self.calendar = calendar
        # Inbound changes must not be echoed back to the calendar
        self.lifecycle = lifecycle or AppointmentService(db, calendar=None, notifier=None)

    def reconcile(self, start: Optional[date] = None, end: Optional[date] = None) -> SyncResult:
        start, end = sync_window(start, end)
        result = SyncResult(success=False, start_date=start, end_date=end)

        if self.calendar is None or not self.calendar.active:
            result.message = "Google Calendar is not active"
            logger.info(f"ℹ️ Calendar sweep skipped: {result.message}")
            return result

        window_start = combine_local(start, datetime.min.time())
        window_end = combine_local(end + timedelta(days=1), datetime.min.time())

        try:
            events = self.calendar.list_events(window_start, window_end)
        except ExternalServiceError as e:
            result.message = f"Could not fetch calendar events: {e.message}"
            result.errors += 1
            logger.error(f"❌ Calendar sweep aborted: {e.message}")
            return result

        events_by_id = {event["id"]: event for event in events if event.get("id")}
        self._reconcile_linked(events_by_id, window_start, window_end, result)
        self._import_unlinked(events_by_id, result)

        result.success = True
        result.message = (
            f"Sync complete: {result.updated} updated, {result.created} created, "
            f"{result.cancelled} cancelled, {result.linked} linked, {result.errors} errors"
        )
        logger.info(f"🔄 Calendar sweep {start}..{end}: {result.message}")
        return result

    def _reconcile_linked(self, events_by_id: dict, window_start: datetime, window_end: datetime, result: SyncResult) -> None:
        appointments = [
            a
            for a in self.lifecycle.repo.get_active_in_range(
                self.db, to_utc_naive(window_start), to_utc_naive(window_end)
            )
            if a.external_event_id
        ]
        # Events moved into the window from outside it
        seen = {a.external_event_id for a in appointments}
        for event_id in events_by_id.keys() - seen:
            appointment = self.lifecycle.repo.get_by_event_id(self.db, event_id)
            if appointment and appointment.is_active:
                appointments.append(appointment)

        for appointment in appointments:
            try:
                event = events_by_id.get(appointment.external_event_id)
                if event is None:
                    # Not in the window listing: deleted, or moved outside the window
                    event = self.calendar.get_event(appointment.external_event_id)
                if event is None:
                    self.lifecycle.cancel_from_external(appointment, MISSING_EVENT_NOTE)
                    result.cancelled += 1
                    continue
                self._follow_time_change(appointment, event, result)
            except Exception as e:
                self.db.rollback()
                result.errors += 1
                logger.error(f"❌ Failed to reconcile appointment {appointment.id}: {e}")

    def _follow_time_change(self, appointment: Appointment, event: dict, result: SyncResult) -> None:
        start = event_start(event)
        if start is None:
            return
        new_time = to_utc_naive(start)
        if new_time == appointment.appointment_time:
            return
        logger.info(
            f"🔄 Appointment {appointment.id} moved in calendar: "
            f"{to_local(appointment.appointment_time).isoformat()} -> {start.isoformat()}"
        )
        self.lifecycle.update_appointment(appointment.id, AppointmentUpdate(appointmentTime=start), from_external=True)
        result.updated += 1

    def _import_unlinked(self, events_by_id: dict, result: SyncResult) -> None:
        linked_ids = self.lifecycle.repo.get_linked_event_ids(self.db)
        deleted_ids = self.lifecycle.repo.get_deleted_event_ids(self.db)
        processed: set[str] = set()

        for event_id, event in events_by_id.items():
            if event_id in linked_ids or event_id in processed:
                continue
            processed.add(event_id)

            if event_id in deleted_ids:
                self._remove_deleted_event(event_id, result)
                continue

            summary = (event.get("summary") or "").strip()
            start = event_start(event)
            if not summary or start is None:
                continue

            try:
                match = self._find_match(summary, start)
                if match:
                    self.lifecycle.link_event(match, event_id)
                    result.linked += 1
                    logger.info(f"🔗 Event {event_id} linked to appointment {match.id}")
                    continue

                appointment = self.lifecycle.create_appointment(
                    parse_event(event, start),
                    created_by=CreatedBy.EXTERNAL_CALENDAR,
                    external_event_id=event_id,
                )
                result.created += 1
                logger.info(f"📥 Event {event_id} imported as appointment {appointment.id}")
            except Exception as e:
                self.db.rollback()
                result.errors += 1
                logger.error(f"❌ Failed to import calendar event {event_id}: {e}")

    def _remove_deleted_event(self, event_id: str, result: SyncResult) -> None:
        """Retry removing the event of an appointment deleted while the calendar was failing"""
        try:
            self.calendar.delete_event(event_id)
        except ExternalServiceError as e:
            result.errors += 1
            logger.error(f"❌ Event {event_id} of a deleted appointment is still on the calendar: {e.message}")
            return
        self.lifecycle.repo.forget_deleted_event(self.db, event_id)
        logger.info(f"🗑️ Event {event_id} of a deleted appointment removed from the calendar")

    def _find_match(self, summary: str, start: datetime) -> Optional[Appointment]:
        """An active, unlinked appointment at the same instant with a similar patient name"""
        instant = to_utc_naive(start)
        separator = " - " if " - " in summary else "-"
        name = summary.split(separator)[0].strip() or summary
        candidates = self.lifecycle.repo.get_active_in_range(self.db, instant, instant + timedelta(seconds=1))
        for appointment in candidates:
            if appointment.external_event_id:
                continue
            if names_match(name, appointment.patient_name):
                return appointment
        return None
