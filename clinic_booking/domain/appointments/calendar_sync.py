"""Outbound calendar mirroring. Best effort: the local store stays authoritative."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import ExternalServiceError
from ...models import Appointment

logger = logging.getLogger(__name__)


class CalendarPublisher:
    """Pushes appointment changes to the external calendar, swallowing its failures"""

    def __init__(self, db: Session, calendar=None):
        self.db = db
        self.calendar = calendar

    @property
    def active(self) -> bool:
        return self.calendar is not None and self.calendar.active

    def publish(self, appointment: Appointment) -> Optional[str]:
        """Create the event, or update it when the appointment already has one"""
        if not self.active:
            return None

        try:
            if appointment.external_event_id:
                self.calendar.update_event(appointment.external_event_id, appointment)
                return appointment.external_event_id
            event_id = self.calendar.create_event(appointment)
        except ExternalServiceError as e:
            logger.error(f"❌ Calendar push failed for appointment {appointment.id}: {e.message}")
            return None

        appointment.external_event_id = event_id
        self.db.commit()
        return event_id

    def unpublish(self, appointment: Appointment) -> bool:
        """Delete the backing event and forget its id. Returns False when it could not be removed."""
        if not appointment.external_event_id:
            return True
        if not self.active:
            logger.warning(
                f"⚠️ Calendar inactive - event {appointment.external_event_id} kept for appointment {appointment.id}"
            )
            return False

        try:
            self.calendar.delete_event(appointment.external_event_id)
        except ExternalServiceError as e:
            logger.error(f"❌ Calendar delete failed for appointment {appointment.id}: {e.message}")
            return False

        appointment.external_event_id = None
        self.db.commit()
        return True
