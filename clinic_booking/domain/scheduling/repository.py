"""Schedule repository - Database operations for schedule config, blocked days and occupancy"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from ...config import DEFAULT_END_TIME, DEFAULT_START_TIME, DEFAULT_WORK_DAYS
from ...database import read_retry
from ...models import ACTIVE_STATUSES, Appointment, BlockedDay, ScheduleConfig

logger = logging.getLogger(__name__)


class ScheduleRepository:
    """Repository for schedule database operations"""

    @staticmethod
    @read_retry
    def find_config(db: Session) -> Optional[ScheduleConfig]:
        return db.query(ScheduleConfig).order_by(ScheduleConfig.id).first()

    @staticmethod
    def get_or_create_config(db: Session) -> ScheduleConfig:
        """Return the schedule row, creating the default one on first use"""
        config = ScheduleRepository.find_config(db)
        if config:
            return config

        config = ScheduleConfig(
            work_days=list(DEFAULT_WORK_DAYS),
            start_time=DEFAULT_START_TIME,
            end_time=DEFAULT_END_TIME,
            vacation_periods=[],
            occasional_work_days=[],
            occasional_work_day_times={},
        )
        db.add(config)
        db.commit()
        db.refresh(config)
        logger.info("✅ Default schedule config created")
        return config

    @staticmethod
    def update_config(db: Session, config: ScheduleConfig, **updates) -> ScheduleConfig:
        for key, value in updates.items():
            if value is not None and hasattr(config, key):
                setattr(config, key, value)
        db.commit()
        db.refresh(config)
        return config

    @staticmethod
    @read_retry
    def list_blocked_days(db: Session) -> list[BlockedDay]:
        return db.query(BlockedDay).order_by(BlockedDay.date).all()

    @staticmethod
    @read_retry
    def get_blocked_day(db: Session, blocked_day_id: int) -> Optional[BlockedDay]:
        return db.query(BlockedDay).filter(BlockedDay.id == blocked_day_id).first()

    @staticmethod
    @read_retry
    def get_blocked_day_by_date(db: Session, day: date) -> Optional[BlockedDay]:
        return db.query(BlockedDay).filter(BlockedDay.date == day).first()

    @staticmethod
    @read_retry
    def get_blocked_dates(db: Session, start: date, end: date) -> set[date]:
        """Blocked dates in [start, end] inclusive"""
        rows = db.query(BlockedDay.date).filter(BlockedDay.date >= start, BlockedDay.date <= end).all()
        return {row[0] for row in rows}

    @staticmethod
    def create_blocked_day(db: Session, day: date, reason: str) -> BlockedDay:
        blocked = BlockedDay(date=day, reason=reason)
        db.add(blocked)
        db.commit()
        db.refresh(blocked)
        return blocked

    @staticmethod
    def delete_blocked_day(db: Session, blocked: BlockedDay) -> None:
        db.delete(blocked)
        db.commit()

    @staticmethod
    @read_retry
    def get_active_appointments(
        db: Session, start_utc: datetime, end_utc: datetime
    ) -> list[Appointment]:
        """Appointments occupying a slot with appointment_time in [start_utc, end_utc)"""
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
    def lock_day(db: Session, day: date) -> None:
        """
        Serialize bookings for one local day until the current transaction ends.
        Only PostgreSQL has advisory locks; other backends rely on their own
        write locking.
        """
        if db.get_bind().dialect.name != "postgresql":
            return
        db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": day.toordinal()})
