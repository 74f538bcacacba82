"""Tests for the Google Calendar REST client"""

import json
import time
from datetime import datetime
from types import SimpleNamespace

import httpx
import pytest

from clinic_booking.errors import CalendarRateLimitError, ExternalServiceError
from clinic_booking.services.google_calendar_service import CalendarClient, build_event_body
from conftest import WORKDAY, local


def make_appointment(**overrides):
    values = dict(
        id=1,
        patient_name="Ana Pérez",
        email="ana@example.com",
        phone="1122334455",
        appointment_time=datetime(2031, 1, 1, 12, 0),
        service_type="iud_procedure",
        is_first_time=True,
        health_insurance=None,
        notes=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_client(handler, enabled=True):
    client = CalendarClient(
        client_email="svc@example.iam.gserviceaccount.com",
        private_key="unused",
        calendar_id="clinic",
        enabled=enabled,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )
    # Skip the service-account exchange
    client._access_token = "token"
    client._token_expires_at = time.time() + 3600
    return client


def test_event_body_uses_local_time_and_service_duration():
    body = build_event_body(make_appointment())
    assert body["summary"] == "Ana Pérez - Extracción & Colocación de DIU - Particular"
    assert body["start"]["dateTime"] == "2031-01-01T09:00:00-03:00"
    assert body["end"]["dateTime"] == "2031-01-01T09:40:00-03:00"
    assert body["colorId"] == "11"
    assert "Primera visita: Sí" in body["description"]


def test_create_event_returns_id():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "evt-42"})

    client = make_client(handler)
    assert client.create_event(make_appointment()) == "evt-42"
    assert seen["auth"] == "Bearer token"
    assert seen["path"] == "/calendar/v3/calendars/clinic/events"
    assert seen["body"]["summary"].startswith("Ana Pérez")


def test_delete_ignores_missing_event():
    client = make_client(lambda request: httpx.Response(410))
    client.delete_event("evt-1")


def test_delete_failure_raises():
    client = make_client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(ExternalServiceError):
        client.delete_event("evt-1")


def test_get_event_treats_cancelled_as_missing():
    client = make_client(lambda request: httpx.Response(200, json={"id": "evt-1", "status": "cancelled"}))
    assert client.get_event("evt-1") is None
    client = make_client(lambda request: httpx.Response(404))
    assert client.get_event("evt-1") is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(429),
        httpx.Response(403, json={"error": {"errors": [{"reason": "rateLimitExceeded"}]}}),
    ],
)
def test_rate_limit_is_reported(response):
    client = make_client(lambda request: response)
    with pytest.raises(CalendarRateLimitError) as exc:
        client.list_events(local(WORKDAY, 0), local(WORKDAY, 23))
    assert exc.value.reason == "rate_limited"


def test_list_events_follows_pages_and_drops_cancelled():
    pages = {
        None: {"items": [{"id": "a"}, {"id": "b", "status": "cancelled"}], "nextPageToken": "p2"},
        "p2": {"items": [{"id": "c"}]},
    }
    seen_params = []

    def handler(request):
        seen_params.append(dict(request.url.params))
        return httpx.Response(200, json=pages[request.url.params.get("pageToken")])

    client = make_client(handler)
    events = client.list_events(local(WORKDAY, 0), local(WORKDAY, 23))

    assert [e["id"] for e in events] == ["a", "c"]
    assert seen_params[0]["singleEvents"] == "true"
    assert seen_params[0]["orderBy"] == "startTime"
    assert seen_params[0]["timeMin"] == "2031-01-01T00:00:00-03:00"


def test_inactive_client_refuses_requests():
    calls = []
    client = make_client(lambda request: calls.append(request) or httpx.Response(200, json={}), enabled=False)
    with pytest.raises(ExternalServiceError):
        client.create_event(make_appointment())
    assert calls == []


def test_status_without_credentials():
    client = CalendarClient(http_client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200))))
    assert client.status() == {
        "initialized": False,
        "enabled": True,
        "message": "Google Calendar credentials are not configured",
    }
    assert not client.active


def test_transport_error_becomes_external_service_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client = make_client(handler)
    with pytest.raises(ExternalServiceError):
        client.get_event("evt-1")
