"""
MJML Email Templates
Patient and practitioner notifications, compiled to HTML by email_service
"""

from typing import Optional

from .config import PRACTICE_NAME

THEME = {
    "primary": "#7c3aed",
    "primary_dark": "#6d28d9",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#16a34a",
    "danger": "#dc2626",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="14px" font-weight="600" color="{THEME['primary_dark']}" padding="0 0 24px 0">
              {PRACTICE_NAME}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 32px 0" />
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Este es un mensaje automático, por favor no lo responda.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _appointment_block(date_label: str, time_label: str, service_label: str) -> str:
    return f"""
    <mj-text align="center" font-size="16px" color="{THEME['text_primary']}" padding="16px 0 0 0">
      📅 {date_label}
    </mj-text>
    <mj-text align="center" font-size="16px" color="{THEME['text_primary']}" padding="0">
      ⏰ {time_label}
    </mj-text>
    <mj-text align="center" font-size="16px" color="{THEME['text_primary']}" padding="0 0 20px 0">
      🩺 {service_label}
    </mj-text>
    """


def booking_confirmation_template(
    patient_name: str,
    date_label: str,
    time_label: str,
    service_label: str,
    cancel_url: str,
    cancel_deadline: str,
) -> str:
    """Sent to the patient right after booking"""
    content = f"""
    <mj-text>
      Hola {patient_name},
    </mj-text>
    <mj-text>
      Su turno fue registrado correctamente.
    </mj-text>
    {_appointment_block(date_label, time_label, service_label)}
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      Si no puede asistir, puede cancelar el turno hasta el {cancel_deadline}.
    </mj-text>
    """

    return get_base_template(
        title="Turno confirmado ✓",
        preview_text=f"Turno del {date_label} a las {time_label}",
        content_sections=content,
        cta_url=cancel_url,
        cta_label="Cancelar turno",
    )


def new_booking_practitioner_template(
    patient_name: str,
    date_label: str,
    time_label: str,
    service_label: str,
    email: str,
    phone: str,
    health_insurance: str,
    is_first_time: bool,
) -> str:
    """Sent to the practitioner when a patient books online"""
    content = f"""
    <mj-text>
      <strong>{patient_name}</strong> reservó un turno.
    </mj-text>
    {_appointment_block(date_label, time_label, service_label)}
    <mj-text font-size="14px">
      Email: {email}<br/>
      Teléfono: {phone}<br/>
      Obra social: {health_insurance}<br/>
      Primera visita: {"Sí" if is_first_time else "No"}
    </mj-text>
    """

    return get_base_template(
        title="Nuevo turno",
        preview_text=f"{patient_name} - {date_label} {time_label}",
        content_sections=content,
    )


def patient_cancelled_template(patient_name: str, date_label: str, time_label: str, service_label: str) -> str:
    """Sent to the practitioner when a patient cancels with their link"""
    content = f"""
    <mj-text>
      <strong>{patient_name}</strong> canceló su turno. El horario quedó libre.
    </mj-text>
    {_appointment_block(date_label, time_label, service_label)}
    """

    return get_base_template(
        title="Turno cancelado por el paciente",
        preview_text=f"{patient_name} canceló el turno del {date_label}",
        content_sections=content,
    )


def professional_cancelled_template(patient_name: str, date_label: str, time_label: str, service_label: str) -> str:
    """Sent to the patient when the practice cancels"""
    content = f"""
    <mj-text>
      Hola {patient_name},
    </mj-text>
    <mj-text>
      Lamentamos informarle que su turno fue cancelado por el consultorio.
    </mj-text>
    {_appointment_block(date_label, time_label, service_label)}
    <mj-text>
      Puede reservar un nuevo turno cuando lo desee.
    </mj-text>
    """

    return get_base_template(
        title="Su turno fue cancelado",
        preview_text=f"Turno del {date_label} cancelado",
        content_sections=content,
    )


def daily_summary_template(date_label: str, rows: list[dict]) -> str:
    """Next-day agenda for the practitioner"""
    if rows:
        items = "".join(
            f"<tr><td style=\"padding:6px 12px 6px 0\">{row['time']}</td>"
            f"<td style=\"padding:6px 12px 6px 0\">{row['patient_name']}</td>"
            f"<td style=\"padding:6px 0\">{row['service']}</td></tr>"
            for row in rows
        )
        agenda = f"""
        <mj-table font-size="15px" color="{THEME['text_primary']}">
          <tr style="border-bottom:1px solid {THEME['border']};text-align:left">
            <th style="padding:6px 12px 6px 0">Hora</th>
            <th style="padding:6px 12px 6px 0">Paciente</th>
            <th style="padding:6px 0">Servicio</th>
          </tr>
          {items}
        </mj-table>
        """
    else:
        agenda = """
        <mj-text>
          No hay turnos agendados.
        </mj-text>
        """

    content = f"""
    <mj-text>
      Agenda del {date_label}: {len(rows)} turno(s).
    </mj-text>
    {agenda}
    """

    return get_base_template(
        title=f"Agenda del {date_label}",
        preview_text=f"{len(rows)} turno(s) para el {date_label}",
        content_sections=content,
    )
