import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic_booking.db")

# Read-only repository calls are retried this many times before giving up
DB_READ_RETRIES = int(os.getenv("DB_READ_RETRIES", "3"))
DB_READ_RETRY_DELAY = float(os.getenv("DB_READ_RETRY_DELAY", "0.2"))

# Schedule
SCHEDULE_TIMEZONE = os.getenv("SCHEDULE_TIMEZONE", "America/Argentina/Buenos_Aires")
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "20"))
# The PAP bundle has been booked as both 20 and 30 minutes over time
PAP_SMEAR_DURATION_MINUTES = int(os.getenv("PAP_SMEAR_DURATION_MINUTES", "20"))
CANCELLATION_CUTOFF_HOURS = int(os.getenv("CANCELLATION_CUTOFF_HOURS", "48"))

DEFAULT_WORK_DAYS = ["wednesday"]
DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "12:00"

# Calendar reconciliation
SYNC_WINDOW_DAYS = int(os.getenv("SYNC_WINDOW_DAYS", "3"))
SYNC_MAX_WINDOW_DAYS = int(os.getenv("SYNC_MAX_WINDOW_DAYS", "30"))

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL for cancellation links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Consultorio <turnos@consultorio.example>")
PRACTITIONER_EMAIL = os.getenv("PRACTITIONER_EMAIL")
PRACTICE_NAME = os.getenv("PRACTICE_NAME", "Consultorio")

# Google Calendar service account
# GOOGLE_PRIVATE_KEY is the PEM key from the service account JSON, "\n" escapes allowed
GOOGLE_CLIENT_EMAIL = os.getenv("GOOGLE_CLIENT_EMAIL")
GOOGLE_PRIVATE_KEY = (os.getenv("GOOGLE_PRIVATE_KEY") or "").replace("\\n", "\n") or None
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
GOOGLE_CALENDAR_ENABLED = os.getenv("GOOGLE_CALENDAR_ENABLED", "true").lower() == "true"
