import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./agenda.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:5173"])

DEFAULT_SLOT_STEP_MINUTES = int(os.getenv("DEFAULT_SLOT_STEP_MINUTES", "30"))
RESERVATION_LOCK_TIMEOUT_SECONDS = float(os.getenv("RESERVATION_LOCK_TIMEOUT_SECONDS", "5"))

# Reminder sweep; offsets are hours before the appointment, comma separated.
REMINDERS_ENABLED = _get_bool(os.getenv("REMINDERS_ENABLED"), default=True)
REMINDER_SWEEP_INTERVAL_SECONDS = float(os.getenv("REMINDER_SWEEP_INTERVAL_SECONDS", "60"))
REMINDER_BATCH_SIZE = int(os.getenv("REMINDER_BATCH_SIZE", "100"))
REMINDER_ON_DEMAND_BATCH_SIZE = int(os.getenv("REMINDER_ON_DEMAND_BATCH_SIZE", "10"))
REMINDER_ON_DEMAND_LOCK_TIMEOUT_SECONDS = float(os.getenv("REMINDER_ON_DEMAND_LOCK_TIMEOUT_SECONDS", "2"))
DEFAULT_EMAIL_REMINDERS = os.getenv("DEFAULT_EMAIL_REMINDERS", "24")
DEFAULT_WHATSAPP_REMINDERS = os.getenv("DEFAULT_WHATSAPP_REMINDERS", "2,0.5")

NOTIFIER_TIMEOUT_SECONDS = float(os.getenv("NOTIFIER_TIMEOUT_SECONDS", "10"))


def validate_runtime_config() -> None:
    if DEFAULT_SLOT_STEP_MINUTES <= 0:
        raise RuntimeError("DEFAULT_SLOT_STEP_MINUTES must be positive.")
    if RESERVATION_LOCK_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("RESERVATION_LOCK_TIMEOUT_SECONDS must be positive.")
    if REMINDER_SWEEP_INTERVAL_SECONDS <= 0:
        raise RuntimeError("REMINDER_SWEEP_INTERVAL_SECONDS must be positive.")
    if REMINDER_BATCH_SIZE <= 0 or REMINDER_ON_DEMAND_BATCH_SIZE <= 0:
        raise RuntimeError("Reminder batch sizes must be positive.")
