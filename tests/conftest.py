"""Pytest configuration and fixtures."""

import os

# Must be set before the package reads its configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DB_READ_RETRY_DELAY"] = "0"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from datetime import date, datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from clinic_booking.auth import create_admin_token  # noqa: E402
from clinic_booking.database import Base, SessionLocal, engine, get_db  # noqa: E402
from clinic_booking.domain.appointments.router import get_calendar_client, get_notifier  # noqa: E402
from clinic_booking.domain.appointments.service import AppointmentService  # noqa: E402
from clinic_booking.domain.scheduling.clock import TIMEZONE, parse_instant  # noqa: E402
from clinic_booking.errors import CalendarRateLimitError, ExternalServiceError  # noqa: E402
from clinic_booking.main import app  # noqa: E402
from clinic_booking.services.google_calendar_service import build_event_body  # noqa: E402

# 2031-01-01 is a Wednesday, the default working day
WORKDAY = date(2031, 1, 1)


class FakeCalendarClient:
    """In-memory stand-in for CalendarClient"""

    def __init__(self, initialized=True, enabled=True):
        self.initialized = initialized
        self.enabled = enabled
        self.events: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail_writes = False
        self.fail_list = None
        self._next_id = 1

    @property
    def active(self):
        return self.initialized and self.enabled

    def status(self):
        return {
            "initialized": self.initialized,
            "enabled": self.enabled,
            "message": "fake",
        }

    def add_event(self, summary, start, event_id=None, description=None):
        """Simulate an event typed straight into the calendar"""
        event_id = event_id or f"ext-{self._next_id}"
        self._next_id += 1
        self.events[event_id] = {
            "id": event_id,
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat()},
        }
        return event_id

    def move_event(self, event_id, start):
        self.events[event_id]["start"] = {"dateTime": start.isoformat()}

    def create_event(self, appointment):
        self.calls.append(("create", appointment.id))
        if self.fail_writes:
            raise ExternalServiceError("calendar down")
        event_id = f"evt-{self._next_id}"
        self._next_id += 1
        self.events[event_id] = {"id": event_id, **build_event_body(appointment)}
        return event_id

    def update_event(self, event_id, appointment):
        self.calls.append(("update", event_id))
        if self.fail_writes:
            raise ExternalServiceError("calendar down")
        self.events[event_id] = {"id": event_id, **build_event_body(appointment)}
        return event_id

    def delete_event(self, event_id):
        self.calls.append(("delete", event_id))
        if self.fail_writes:
            raise ExternalServiceError("calendar down")
        self.events.pop(event_id, None)

    def get_event(self, event_id):
        self.calls.append(("get", event_id))
        return self.events.get(event_id)

    def list_events(self, time_min, time_max, max_results=100):
        self.calls.append(("list", time_min, time_max))
        if self.fail_list:
            raise self.fail_list
        return [event for event in self.events.values() if _starts_within(event, time_min, time_max)]


def _starts_within(event, time_min, time_max):
    start = event["start"]
    if "dateTime" in start:
        return time_min <= parse_instant(start["dateTime"]) < time_max
    return time_min.date() <= date.fromisoformat(start["date"]) < time_max.date()


class RecordingNotifier:
    def __init__(self, fail=False):
        self.sent: list[tuple] = []
        self.fail = fail

    def _record(self, kind, payload):
        if self.fail:
            raise ExternalServiceError("mail down")
        self.sent.append((kind, payload))

    def booking_created(self, appointment):
        self._record("booking_created", appointment.id)

    def cancelled_by_patient(self, appointment):
        self._record("cancelled_by_patient", appointment.id)

    def cancelled_by_professional(self, appointment):
        self._record("cancelled_by_professional", appointment.id)

    def daily_summary(self, day, appointments):
        self._record("daily_summary", (day, [a.id for a in appointments]))


class Clock:
    def __init__(self, value):
        self.value = value

    def __call__(self):
        return self.value


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def calendar():
    return FakeCalendarClient()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return Clock(datetime(2030, 12, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def lifecycle(db, calendar, notifier, clock):
    return AppointmentService(db, calendar=calendar, notifier=notifier, now=clock)


@pytest.fixture
def client(db, calendar, notifier):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_calendar_client] = lambda: calendar
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_admin_token('dr-test')}"}


def local(day, hour, minute=0):
    """Aware practice-local datetime"""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=TIMEZONE)


def rate_limited():
    return CalendarRateLimitError("Google Calendar rate limit exceeded", reason="rate_limited")
