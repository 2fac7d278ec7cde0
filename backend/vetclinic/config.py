# backend/vetclinic/config.py
import os
from dataclasses import dataclass
from datetime import datetime, time, timezone, tzinfo
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the repository root
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///clinic.db")

# Clinic schedule. Veterinarians may override the working window individually.
WORKDAY_START = os.getenv("WORKDAY_START", "09:00")
WORKDAY_END = os.getenv("WORKDAY_END", "17:00")
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))
DEFAULT_DURATION_MINUTES = int(os.getenv("DEFAULT_DURATION_MINUTES", "30"))
MAX_DURATION_MINUTES = int(os.getenv("MAX_DURATION_MINUTES", "180"))
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")  # unset disables the rotating file handler

# Email (SendGrid) and SMS (Twilio) delivery
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
REMINDER_EMAIL = os.getenv("REMINDER_EMAIL", "noreply@example.com")
TWILIO_SID = os.getenv("TWILIO_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")


def parse_clock_time(value: str) -> time:
    """Parse ``HH:MM`` into a time of day."""
    return datetime.strptime(value, "%H:%M").time()


def load_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    from zoneinfo import ZoneInfo

    return ZoneInfo(name)


@dataclass(frozen=True)
class Settings:
    work_start: time = time(9, 0)
    work_end: time = time(17, 0)
    slot_minutes: int = 30
    default_duration_minutes: int = 30
    max_duration_minutes: int = 180
    timezone: tzinfo = timezone.utc


def get_settings() -> Settings:
    return Settings(
        work_start=parse_clock_time(WORKDAY_START),
        work_end=parse_clock_time(WORKDAY_END),
        slot_minutes=SLOT_MINUTES,
        default_duration_minutes=DEFAULT_DURATION_MINUTES,
        max_duration_minutes=MAX_DURATION_MINUTES,
        timezone=load_timezone(CLINIC_TIMEZONE),
    )
