"""
Configuration and constants for the campus booking service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _csv(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# =============================
# Storage
# =============================
# JSON file holding every persisted key; empty keeps state in memory only
STORAGE_PATH = os.getenv("BOOKING_STORAGE_PATH", "")

# =============================
# Booking Options
# =============================
TIME_SLOTS = _csv("BOOKING_TIME_SLOTS", "9:00 AM,10:30 AM,11:45 AM,2:00 PM,3:15 PM,4:30 PM")
DOCTORS = _csv("BOOKING_DOCTORS", "Dr. Aisha Sharma,Dr. Rajiv Mehta")
APPOINTMENT_TYPES = _csv("BOOKING_APPOINTMENT_TYPES", "General Checkup,Specialist Consult")

DEFAULT_TIME = "10:30 AM"
DEFAULT_DOCTOR = DOCTORS[0] if DOCTORS else ""
DEFAULT_TYPE = APPOINTMENT_TYPES[0] if APPOINTMENT_TYPES else ""

# =============================
# Logging
# =============================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
