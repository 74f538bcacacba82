"""Tests for background jobs"""

import asyncio
from datetime import timedelta

from clinic_booking.domain.appointments.schemas import AppointmentCreate
from clinic_booking.models import BlockedDay, CreatedBy
from clinic_booking.worker import WorkerSettings, calendar_sync_task, send_daily_summary
from conftest import WORKDAY, local

TODAY = WORKDAY - timedelta(days=1)


def book(lifecycle, hour, minute=0, name="Ana Pérez"):
    return lifecycle.create_appointment(
        AppointmentCreate(patientName=name, appointmentTime=local(WORKDAY, hour, minute)),
        created_by=CreatedBy.ADMIN,
    )


def test_daily_summary_lists_tomorrows_active_appointments(db, lifecycle, notifier):
    first = book(lifecycle, 10)
    second = book(lifecycle, 9, name="Beatriz")
    lifecycle.cancel_by_admin(book(lifecycle, 11, name="Carla").id)

    result = send_daily_summary(db, notifier, today=TODAY)

    assert result == {"sent": True, "date": WORKDAY.isoformat(), "appointments": 2}
    assert ("daily_summary", (WORKDAY, [second.id, first.id])) in notifier.sent


def test_daily_summary_skipped_on_closed_day(db, notifier):
    db.add(BlockedDay(date=WORKDAY, reason="Feriado"))
    db.commit()

    result = send_daily_summary(db, notifier, today=TODAY)

    assert result["sent"] is False
    assert not [kind for kind, _ in notifier.sent if kind == "daily_summary"]


def test_daily_summary_sent_for_empty_workday(db, notifier):
    assert send_daily_summary(db, notifier, today=TODAY)["appointments"] == 0


def test_calendar_sync_task_runs_sweep(db, calendar):
    calendar.add_event("Lucía Gómez - Consulta", local(WORKDAY, 10))

    result = asyncio.run(
        calendar_sync_task({"calendar": calendar, "job_id": "test"}, WORKDAY.isoformat(), WORKDAY.isoformat())
    )

    assert result["success"] is True
    assert result["created"] == 1


def test_calendar_sync_task_without_calendar(db):
    result = asyncio.run(calendar_sync_task({}, WORKDAY.isoformat(), WORKDAY.isoformat()))
    assert result["success"] is False


def test_worker_registers_cron_jobs():
    assert {job.name for job in WorkerSettings.cron_jobs} == {
        "cron:calendar_sync_task",
        "cron:daily_summary_task",
    }
