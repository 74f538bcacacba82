"""
Email service
Compiles MJML templates and delivers them through Resend.
EmailNotifier adapts appointments to the templates; booking operations call it
and log, never propagate, delivery failures.
"""

import logging
from datetime import date
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import (
    EMAIL_FROM_ADDRESS,
    FRONTEND_URL,
    PRACTITIONER_EMAIL,
    RESEND_API_KEY,
)
from .domain.scheduling.clock import to_local
from .domain.scheduling.services_catalog import get_service
from .email_templates import (
    booking_confirmation_template,
    daily_summary_template,
    new_booking_practitioner_template,
    patient_cancelled_template,
    professional_cancelled_template,
)
from .errors import ExternalServiceError
from .utils.sanitization import sanitize_string

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise ExternalServiceError(f"Failed to compile MJML template: {str(e)}") from e
    # mjml-python returns an object exposing .html and .errors
    errors = getattr(result, "errors", None)
    if errors:
        logger.warning(f"MJML compilation warnings: {errors}")
    return getattr(result, "html", None) or str(result)


def send_email(to: Union[str, list[str]], subject: str, mjml_content: str, from_address: Optional[str] = None) -> dict:
    """Send an email through Resend"""
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise ExternalServiceError("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    html_content = compile_mjml_to_html(mjml_content)

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise ExternalServiceError(f"Failed to send email: {str(e)}") from e


def cancellation_url(token: str) -> str:
    return f"{FRONTEND_URL}/cancelar-turno?token={token}"


def _labels(appointment) -> tuple[str, str, str]:
    local = to_local(appointment.appointment_time)
    return (
        local.strftime("%d/%m/%Y"),
        local.strftime("%H:%M"),
        sanitize_string(get_service(appointment.service_type).label),
    )


class EmailNotifier:
    """
    Appointment notifications delivered by email.
    Patient-supplied text is HTML-escaped before it reaches a template.
    """

    def __init__(self, practitioner_email: Optional[str] = PRACTITIONER_EMAIL):
        self.practitioner_email = practitioner_email

    def booking_created(self, appointment) -> None:
        """Confirmation to the patient and a notice to the practitioner, each delivered on its own"""
        date_label, time_label, service_label = _labels(appointment)
        patient_name = sanitize_string(appointment.patient_name)
        failures = []

        if appointment.email and appointment.cancellation_token:
            deadline = to_local(appointment.cancellation_token_expires_at).strftime("%d/%m/%Y %H:%M")
            try:
                send_email(
                    to=appointment.email,
                    subject=f"Turno confirmado - {date_label} {time_label}",
                    mjml_content=booking_confirmation_template(
                        patient_name=patient_name,
                        date_label=date_label,
                        time_label=time_label,
                        service_label=service_label,
                        cancel_url=cancellation_url(appointment.cancellation_token),
                        cancel_deadline=deadline,
                    ),
                )
            except ExternalServiceError as e:
                logger.error(f"❌ Booking confirmation to patient failed for appointment {appointment.id}: {e.message}")
                failures.append(e)

        if self.practitioner_email:
            try:
                send_email(
                    to=self.practitioner_email,
                    subject=f"Nuevo turno: {appointment.patient_name} - {date_label} {time_label}",
                    mjml_content=new_booking_practitioner_template(
                        patient_name=patient_name,
                        date_label=date_label,
                        time_label=time_label,
                        service_label=service_label,
                        email=sanitize_string(appointment.email) or "-",
                        phone=sanitize_string(appointment.phone) or "-",
                        health_insurance=sanitize_string(appointment.health_insurance) or "Particular",
                        is_first_time=bool(appointment.is_first_time),
                    ),
                )
            except ExternalServiceError as e:
                logger.error(f"❌ New booking notice failed for appointment {appointment.id}: {e.message}")
                failures.append(e)

        if failures:
            raise failures[0]

    def cancelled_by_patient(self, appointment) -> None:
        if not self.practitioner_email:
            logger.warning("⚠️ PRACTITIONER_EMAIL not set - skipping cancellation notice")
            return
        date_label, time_label, service_label = _labels(appointment)
        send_email(
            to=self.practitioner_email,
            subject=f"Turno cancelado: {appointment.patient_name} - {date_label} {time_label}",
            mjml_content=patient_cancelled_template(
                sanitize_string(appointment.patient_name), date_label, time_label, service_label
            ),
        )

    def cancelled_by_professional(self, appointment) -> None:
        if not appointment.email:
            logger.info(f"ℹ️ Appointment {appointment.id} has no email - patient not notified")
            return
        date_label, time_label, service_label = _labels(appointment)
        send_email(
            to=appointment.email,
            subject=f"Su turno del {date_label} fue cancelado",
            mjml_content=professional_cancelled_template(
                sanitize_string(appointment.patient_name), date_label, time_label, service_label
            ),
        )

    def daily_summary(self, day: date, appointments: list) -> None:
        if not self.practitioner_email:
            logger.warning("⚠️ PRACTITIONER_EMAIL not set - skipping daily summary")
            return
        rows = [
            {
                "time": to_local(a.appointment_time).strftime("%H:%M"),
                "patient_name": sanitize_string(a.patient_name),
                "service": sanitize_string(get_service(a.service_type).label),
            }
            for a in appointments
        ]
        date_label = day.strftime("%d/%m/%Y")
        send_email(
            to=self.practitioner_email,
            subject=f"Agenda del {date_label}",
            mjml_content=daily_summary_template(date_label, rows),
        )
