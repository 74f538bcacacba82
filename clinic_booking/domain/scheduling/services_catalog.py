"""Service types offered by the practice and the booking rules attached to each"""

import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...config import PAP_SMEAR_DURATION_MINUTES
from ...errors import ValidationError


class ServiceType(str, Enum):
    CONSULTATION = "consultation"
    CONSULTATION_PAP = "consultation_pap"
    IUD_PROCEDURE = "iud_procedure"
    REGENERATIVE_THERAPY = "regenerative_therapy"
    BIOPSY = "biopsy"


@dataclass(frozen=True)
class ServiceDefinition:
    service_type: ServiceType
    label: str
    duration_minutes: int
    # Only an appointment at the exact same start conflicts with this service
    exempt_from_overlap: bool = False
    # Must finish within PROCEDURE_GRACE_MINUTES of closing time
    enforce_procedure_window: bool = False
    # Calendar event color
    color_id: str = "1"


SERVICE_CATALOG: dict[ServiceType, ServiceDefinition] = {
    ServiceType.CONSULTATION: ServiceDefinition(
        ServiceType.CONSULTATION, "Consulta", 20
    ),
    ServiceType.CONSULTATION_PAP: ServiceDefinition(
        ServiceType.CONSULTATION_PAP, "Consulta & PAP", PAP_SMEAR_DURATION_MINUTES, color_id="5"
    ),
    ServiceType.IUD_PROCEDURE: ServiceDefinition(
        ServiceType.IUD_PROCEDURE,
        "Extracción & Colocación de DIU",
        40,
        enforce_procedure_window=True,
        color_id="11",
    ),
    ServiceType.REGENERATIVE_THERAPY: ServiceDefinition(
        ServiceType.REGENERATIVE_THERAPY,
        "Terapia de Ginecología Regenerativa",
        40,
        exempt_from_overlap=True,
    ),
    ServiceType.BIOPSY: ServiceDefinition(
        ServiceType.BIOPSY, "Biopsia", 40, enforce_procedure_window=True
    ),
}

PROCEDURE_GRACE_MINUTES = 30


def _simplify(value: str) -> str:
    normalized = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in normalized if unicodedata.category(ch) != "Mn").strip().lower()


_LABELS = {_simplify(d.label): d.service_type for d in SERVICE_CATALOG.values()}


def get_service(service_type) -> ServiceDefinition:
    return SERVICE_CATALOG[parse_service_type(service_type)]


def duration_for(service_type) -> int:
    return get_service(service_type).duration_minutes


def parse_service_type(value) -> ServiceType:
    """Accept an enum value ("iud_procedure") or a display label ("Extracción & Colocación de DIU")"""
    if isinstance(value, ServiceType):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid service type: {value!r}")
    try:
        return ServiceType(value.strip().lower())
    except ValueError:
        pass
    simplified = _simplify(value)
    if simplified in _LABELS:
        return _LABELS[simplified]
    raise ValidationError(f"Unknown service type: {value!r}")


def match_service_keywords(text: Optional[str]) -> ServiceType:
    """
    Best-effort service detection for free text typed into the external calendar.
    Falls back to a plain consultation.
    """
    if not text:
        return ServiceType.CONSULTATION
    simplified = _simplify(text)
    if simplified in _LABELS:
        return _LABELS[simplified]
    if "pap" in simplified:
        return ServiceType.CONSULTATION_PAP
    if "diu" in simplified or "iud" in simplified:
        return ServiceType.IUD_PROCEDURE
    if "terapia" in simplified or "regenerativa" in simplified:
        return ServiceType.REGENERATIVE_THERAPY
    if "biopsia" in simplified or "biopsy" in simplified:
        return ServiceType.BIOPSY
    return ServiceType.CONSULTATION
