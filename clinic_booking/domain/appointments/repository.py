"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...database import read_retry
from ...models import ACTIVE_STATUSES, CANCELLED_STATUSES, Appointment, DeletedCalendarEvent


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    @read_retry
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    @read_retry
    def get_by_token(db: Session, token: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.cancellation_token == token).first()

    @staticmethod
    @read_retry
    def get_by_event_id(db: Session, event_id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.external_event_id == event_id).first()

    @staticmethod
    @read_retry
    def list_appointments(
        db: Session,
        start_utc: Optional[datetime] = None,
        end_utc: Optional[datetime] = None,
        include_cancelled: bool = False,
    ) -> list[Appointment]:
        query = db.query(Appointment)
        if start_utc is not None:
            query = query.filter(Appointment.appointment_time >= start_utc)
        if end_utc is not None:
            query = query.filter(Appointment.appointment_time < end_utc)
        if not include_cancelled:
            query = query.filter(Appointment.status.notin_(CANCELLED_STATUSES))
        return query.order_by(Appointment.appointment_time).all()

    @staticmethod
    @read_retry
    def get_active_in_range(db: Session, start_utc: datetime, end_utc: datetime) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.appointment_time >= start_utc,
                Appointment.appointment_time < end_utc,
                Appointment.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Appointment.appointment_time)
            .all()
        )

    @staticmethod
    @read_retry
    def get_linked_event_ids(db: Session) -> set[str]:
        """Every external event id referenced by any appointment, whatever its status"""
        rows = db.query(Appointment.external_event_id).filter(Appointment.external_event_id.isnot(None)).all()
        return {row[0] for row in rows}

    @staticmethod
    def add(db: Session, appointment: Appointment) -> Appointment:
        """Stage a new appointment; the caller commits"""
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def save(db: Session, appointment: Appointment) -> Appointment:
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete(db: Session, appointment: Appointment, orphan_event_id: Optional[str] = None) -> None:
        """Hard-delete; an event that is still on the calendar is remembered so sweeps do not re-import it"""
        if orphan_event_id:
            db.add(DeletedCalendarEvent(event_id=orphan_event_id))
        db.delete(appointment)
        db.commit()

    @staticmethod
    @read_retry
    def get_deleted_event_ids(db: Session) -> set[str]:
        rows = db.query(DeletedCalendarEvent.event_id).all()
        return {row[0] for row in rows}

    @staticmethod
    def forget_deleted_event(db: Session, event_id: str) -> None:
        db.query(DeletedCalendarEvent).filter(DeletedCalendarEvent.event_id == event_id).delete()
        db.commit()
