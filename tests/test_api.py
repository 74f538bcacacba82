"""HTTP API tests"""

from datetime import date, timedelta

from conftest import WORKDAY, local


def booking_payload(hour=9, minute=0, **overrides):
    payload = {
        "patientName": "Ana Pérez",
        "email": "ana@example.com",
        "phone": "1122334455",
        "appointmentTime": local(WORKDAY, hour, minute).isoformat(),
        "serviceType": "consultation",
        "healthInsurance": "OSDE",
    }
    payload.update(overrides)
    return payload


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_services_catalog(client):
    services = {s["serviceType"]: s["durationMinutes"] for s in client.get("/services").json()}
    assert services["consultation"] == 20
    assert services["iud_procedure"] == 40


def test_availability_for_open_day(client):
    response = client.get("/availability", params={"date": WORKDAY.isoformat()})
    assert response.status_code == 200
    body = response.json()
    assert body["dayType"] == "regular_workday"
    assert [s["time"] for s in body["timeSlots"]][:2] == ["09:00", "09:20"]
    assert all(s["available"] for s in body["timeSlots"])


def test_availability_for_closed_day(client):
    body = client.get("/availability", params={"date": (WORKDAY + timedelta(days=1)).isoformat()}).json()
    assert body["dayType"] == "non_workday"
    assert body["timeSlots"] == []


def test_availability_unknown_service(client):
    response = client.get("/availability", params={"date": WORKDAY.isoformat(), "serviceType": "massage"})
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_book_appointment(client, calendar, notifier):
    response = client.post("/appointments", json=booking_payload())
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["durationMinutes"] == 20
    assert body["externalEventId"] in calendar.events
    assert notifier.sent[0][0] == "booking_created"


def test_book_accepts_spanish_service_label(client):
    response = client.post("/appointments", json=booking_payload(serviceType="Consulta & PAP"))
    assert response.status_code == 201
    assert response.json()["serviceType"] == "consultation_pap"


def test_book_requires_contact_details(client):
    response = client.post("/appointments", json=booking_payload(email=""))
    assert response.status_code == 422


def test_taken_slot_returns_conflict_reason(client):
    client.post("/appointments", json=booking_payload())
    response = client.post("/appointments", json=booking_payload(patientName="Beatriz"))
    assert response.status_code == 409
    assert response.json()["reason"] == "overlaps_appointment"


def test_misaligned_slot_rejected(client):
    response = client.post("/appointments", json=booking_payload(minute=10))
    assert response.status_code == 409
    assert response.json()["reason"] == "misaligned"


def test_booked_slot_shows_unavailable(client):
    client.post("/appointments", json=booking_payload(9, 20))
    slots = client.get("/availability", params={"date": WORKDAY.isoformat()}).json()["timeSlots"]
    taken = next(s for s in slots if s["time"] == "09:20")
    assert taken["available"] is False
    assert taken["reason"] == "overlaps_appointment"


def test_cancellation_by_token(client, db):
    from clinic_booking.models import Appointment

    appointment_id = client.post("/appointments", json=booking_payload()).json()["id"]
    token = db.query(Appointment).filter(Appointment.id == appointment_id).one().cancellation_token

    validation = client.get("/appointments/validate-token", params={"token": token})
    assert validation.status_code == 200
    assert validation.json()["id"] == appointment_id

    cancelled = client.post("/appointments/cancel", json={"token": token})
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled_by_patient"

    assert client.post("/appointments/cancel", json={"token": token}).status_code == 404


def test_unknown_token(client):
    response = client.get("/appointments/validate-token", params={"token": "nope"})
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_admin_routes_require_token(client):
    assert client.get("/appointments").status_code == 401
    assert client.get("/blocked-days").status_code == 401
    assert client.patch("/schedule-config", json={"startTime": "08:00"}).status_code == 401
    assert client.get("/appointments", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_admin_lists_and_cancels(client, admin_headers):
    appointment_id = client.post("/appointments", json=booking_payload()).json()["id"]

    listed = client.get(
        "/appointments",
        params={"start": WORKDAY.isoformat(), "end": WORKDAY.isoformat()},
        headers=admin_headers,
    ).json()
    assert [a["id"] for a in listed] == [appointment_id]

    response = client.post(f"/appointments/{appointment_id}/cancel", headers=admin_headers)
    assert response.json()["status"] == "cancelled_by_professional"

    again = client.post(f"/appointments/{appointment_id}/cancel", headers=admin_headers)
    assert again.status_code == 409
    assert again.json()["reason"] == "already_cancelled"


def test_admin_create_is_confirmed(client, admin_headers):
    payload = booking_payload(email="", phone="")
    response = client.post("/admin/appointments", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["status"] == "confirmed"
    assert response.json()["createdBy"] == "admin"


def test_admin_reschedule_and_mark_attended(client, admin_headers):
    appointment_id = client.post("/appointments", json=booking_payload()).json()["id"]

    moved = client.patch(
        f"/appointments/{appointment_id}",
        json={"appointmentTime": local(WORKDAY, 10, 0).isoformat()},
        headers=admin_headers,
    )
    assert moved.status_code == 200
    assert moved.json()["appointmentTime"].startswith(f"{WORKDAY.isoformat()}T10:00:00")

    attended = client.patch(f"/appointments/{appointment_id}", json={"status": "attended"}, headers=admin_headers)
    assert attended.json()["status"] == "attended"
    assert attended.json()["attendedAt"] is not None


def test_admin_delete(client, admin_headers):
    appointment_id = client.post("/appointments", json=booking_payload()).json()["id"]
    assert client.delete(f"/appointments/{appointment_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/appointments/{appointment_id}", headers=admin_headers).status_code == 404


def test_blocked_days_crud(client, admin_headers):
    created = client.post("/blocked-days", json={"date": WORKDAY.isoformat()}, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["reason"] == "Blocked by administrator"

    duplicate = client.post("/blocked-days", json={"date": WORKDAY.isoformat()}, headers=admin_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["reason"] == "already_blocked"

    check = client.get("/blocked-days/check", params={"date": WORKDAY.isoformat()}, headers=admin_headers).json()
    assert check["isBlocked"] is True

    availability = client.get("/availability", params={"date": WORKDAY.isoformat()}).json()
    assert availability["dayType"] == "blocked"
    assert availability["timeSlots"] == []

    blocked_id = created.json()["id"]
    assert client.delete(f"/blocked-days/{blocked_id}", headers=admin_headers).status_code == 204
    assert client.delete(f"/blocked-days/{blocked_id}", headers=admin_headers).status_code == 404


def test_schedule_config_accepts_spanish_days(client, admin_headers):
    response = client.patch(
        "/schedule-config",
        json={"workDays": ["Viernes", "miércoles"], "startTime": "08:00", "endTime": "10:00"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["workDays"] == ["wednesday", "friday"]

    public = client.get("/schedule-config").json()
    assert public["startTime"] == "08:00"

    slots = client.get("/availability", params={"date": WORKDAY.isoformat()}).json()["timeSlots"]
    assert [s["time"] for s in slots][-1] == "09:40"


def test_schedule_config_rejects_inverted_hours(client, admin_headers):
    response = client.patch("/schedule-config", json={"startTime": "13:00"}, headers=admin_headers)
    assert response.status_code == 400


def test_schedule_config_rejects_unknown_weekday(client, admin_headers):
    response = client.patch("/schedule-config", json={"workDays": ["funday"]}, headers=admin_headers)
    assert response.status_code == 400


def test_calendar_status_toggle(client, admin_headers, calendar):
    assert client.get("/admin/calendar/status", headers=admin_headers).json()["enabled"] is True

    response = client.patch("/admin/calendar/status", json={"enabled": False}, headers=admin_headers)
    assert response.json()["enabled"] is False
    assert calendar.active is False

    booked = client.post("/appointments", json=booking_payload())
    assert booked.status_code == 201
    assert booked.json()["externalEventId"] is None


def test_manual_sync(client, admin_headers, calendar):
    calendar.add_event("Lucía Gómez - Biopsia", local(WORKDAY, 10))
    response = client.post(
        "/admin/calendar/sync",
        json={"startDate": WORKDAY.isoformat(), "endDate": WORKDAY.isoformat()},
        headers=admin_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["created"] == 1

    listed = client.get(
        "/appointments",
        params={"start": WORKDAY.isoformat(), "end": WORKDAY.isoformat()},
        headers=admin_headers,
    ).json()
    assert listed[0]["serviceType"] == "biopsy"
    assert listed[0]["createdBy"] == "external_calendar"


def test_schedule_config_rejects_malformed_occasional_day(client, admin_headers):
    response = client.patch(
        "/schedule-config",
        json={"occasionalWorkDayTimes": {"next-friday": {"startTime": "10:00", "endTime": "11:00"}}},
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert client.get("/availability", params={"date": WORKDAY.isoformat()}).status_code == 200


def test_schedule_config_rejects_inverted_occasional_hours(client, admin_headers):
    response = client.patch(
        "/schedule-config",
        json={"occasionalWorkDayTimes": {"2031-01-04": {"startTime": "11:00", "endTime": "10:00"}}},
        headers=admin_headers,
    )
    assert response.status_code == 422


def test_occasional_day_opens_with_its_own_hours(client, admin_headers):
    saturday = date(2031, 1, 4)
    response = client.patch(
        "/schedule-config",
        json={
            "occasionalWorkDays": [saturday.isoformat()],
            "occasionalWorkDayTimes": {saturday.isoformat(): {"startTime": "10:00", "endTime": "11:00"}},
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["occasionalWorkDayTimes"] == {"2031-01-04": {"startTime": "10:00", "endTime": "11:00"}}

    slots = client.get("/availability", params={"date": saturday.isoformat()}).json()["timeSlots"]
    assert [s["time"] for s in slots] == ["10:00", "10:20", "10:40"]
