"""
Google Calendar Service
Mirrors appointments as events on the practice calendar and lists events for
reconciliation. Authenticates with a service account (JWT bearer grant).

A CalendarClient carries its own state:
- initialized: credentials are configured
- enabled: outbound sync switched on by the admin
Callers get the client injected; there is no module-level connection state.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from jose import jwt as jose_jwt

from ..config import (
    GOOGLE_CALENDAR_ENABLED,
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_EMAIL,
    GOOGLE_PRIVATE_KEY,
    SCHEDULE_TIMEZONE,
)
from ..domain.scheduling.clock import to_local
from ..domain.scheduling.services_catalog import get_service
from ..errors import CalendarRateLimitError, ExternalServiceError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
CALENDAR_SCOPE = "https://www.googleapis.com/auth/calendar"
MAX_RESULTS = 100


def build_event_body(appointment) -> dict[str, Any]:
    """Google Calendar event payload for an appointment"""
    service = get_service(appointment.service_type)
    start = to_local(appointment.appointment_time)
    end = start + timedelta(minutes=service.duration_minutes)
    insurance = appointment.health_insurance or "Particular"

    description = "\n".join(
        [
            f"Paciente: {appointment.patient_name}",
            f"Email: {appointment.email or ''}",
            f"Teléfono: {appointment.phone or ''}",
            f"Servicio: {service.label}",
            f"Obra Social: {insurance}",
            f"Primera visita: {'Sí' if appointment.is_first_time else 'No'}",
            f"Notas: {appointment.notes or 'Sin notas'}",
        ]
    )

    return {
        # "Name - Service - Insurance" is also what the reconciler parses back
        "summary": f"{appointment.patient_name} - {service.label} - {insurance}",
        "description": description,
        "start": {"dateTime": start.isoformat(), "timeZone": SCHEDULE_TIMEZONE},
        "end": {"dateTime": end.isoformat(), "timeZone": SCHEDULE_TIMEZONE},
        "colorId": service.color_id,
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 24 * 60},
                {"method": "popup", "minutes": 60},
            ],
        },
    }


class CalendarClient:
    """Thin Google Calendar v3 REST client"""

    def __init__(
        self,
        client_email: Optional[str] = None,
        private_key: Optional[str] = None,
        calendar_id: str = "primary",
        enabled: bool = True,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.client_email = client_email
        self.private_key = private_key
        self.calendar_id = calendar_id
        self.enabled = enabled
        self._http = http_client or httpx.Client(timeout=timeout)
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    @classmethod
    def from_settings(cls) -> "CalendarClient":
        client = cls(
            client_email=GOOGLE_CLIENT_EMAIL,
            private_key=GOOGLE_PRIVATE_KEY,
            calendar_id=GOOGLE_CALENDAR_ID,
            enabled=GOOGLE_CALENDAR_ENABLED,
        )
        if client.initialized:
            logger.info(f"✅ Google Calendar client configured for calendar {client.calendar_id}")
        else:
            logger.warning("⚠️ Google Calendar credentials missing - calendar sync disabled")
        return client

    @property
    def initialized(self) -> bool:
        return bool(self.client_email and self.private_key)

    @property
    def active(self) -> bool:
        return self.initialized and self.enabled

    def status(self) -> dict:
        if not self.initialized:
            message = "Google Calendar credentials are not configured"
        elif not self.enabled:
            message = "Google Calendar sync is disabled"
        else:
            message = "Google Calendar sync is active"
        return {"initialized": self.initialized, "enabled": self.enabled, "message": message}

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _get_access_token(self) -> str:
        """Exchange a signed service-account assertion for an access token, cached until expiry"""
        if self._access_token and time.time() < self._token_expires_at - 60:
            return self._access_token

        now = int(time.time())
        assertion = jose_jwt.encode(
            {
                "iss": self.client_email,
                "scope": CALENDAR_SCOPE,
                "aud": GOOGLE_TOKEN_URL,
                "iat": now,
                "exp": now + 3600,
            },
            self.private_key,
            algorithm="RS256",
        )

        try:
            response = self._http.post(
                GOOGLE_TOKEN_URL,
                data={"grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer", "assertion": assertion},
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Token request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"❌ Google token exchange failed: {response.text}")
            raise ExternalServiceError(f"Token exchange failed with HTTP {response.status_code}")

        tokens = response.json()
        self._access_token = tokens["access_token"]
        self._token_expires_at = now + int(tokens.get("expires_in", 3600))
        logger.info("🔄 Google Calendar access token refreshed")
        return self._access_token

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if not self.active:
            raise ExternalServiceError("Google Calendar is not active")

        headers = {"Authorization": f"Bearer {self._get_access_token()}"}
        url = f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}{path}"
        try:
            response = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Google Calendar request failed: {e}") from e

        if response.status_code == 429 or (
            response.status_code == 403 and "rateLimitExceeded" in response.text
        ):
            logger.warning(f"⚠️ Google Calendar rate limit hit on {method} {path}")
            raise CalendarRateLimitError("Google Calendar rate limit exceeded", reason="rate_limited")
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.status_code >= 400:
            logger.error(f"❌ Failed to {action}: HTTP {response.status_code} {response.text[:300]}")
            raise ExternalServiceError(f"Failed to {action}: HTTP {response.status_code}")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, appointment) -> str:
        """Create an event and return its id"""
        response = self._request("POST", "/events", json=build_event_body(appointment))
        self._raise_for_status(response, "create calendar event")
        event_id = response.json()["id"]
        logger.info(f"✅ Google Calendar event created: {event_id}")
        return event_id

    def update_event(self, event_id: str, appointment) -> str:
        response = self._request("PUT", f"/events/{event_id}", json=build_event_body(appointment))
        self._raise_for_status(response, "update calendar event")
        logger.info(f"✅ Google Calendar event updated: {event_id}")
        return event_id

    def delete_event(self, event_id: str) -> None:
        response = self._request("DELETE", f"/events/{event_id}")
        if response.status_code in (404, 410):
            logger.info(f"ℹ️ Google Calendar event {event_id} already gone")
            return
        self._raise_for_status(response, "delete calendar event")
        logger.info(f"✅ Google Calendar event deleted: {event_id}")

    def get_event(self, event_id: str) -> Optional[dict]:
        """The event, or None when it was deleted"""
        response = self._request("GET", f"/events/{event_id}")
        if response.status_code in (404, 410):
            return None
        self._raise_for_status(response, "fetch calendar event")
        event = response.json()
        if event.get("status") == "cancelled":
            return None
        return event

    def list_events(self, time_min: datetime, time_max: datetime, max_results: int = MAX_RESULTS) -> list[dict]:
        """Single (expanded) events starting in [time_min, time_max], ordered by start"""
        params = {
            "timeMin": to_local(time_min).isoformat(),
            "timeMax": to_local(time_max).isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": str(max_results),
        }
        events: list[dict] = []
        while True:
            response = self._request("GET", "/events", params=params)
            self._raise_for_status(response, "list calendar events")
            payload = response.json()
            events.extend(item for item in payload.get("items", []) if item.get("status") != "cancelled")
            page_token = payload.get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token

        logger.info(f"📅 Fetched {len(events)} Google Calendar events")
        return events
