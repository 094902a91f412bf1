import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./booking.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Refund channel consumed by the payment service
REFUND_QUEUE_NAME = os.getenv("REFUND_QUEUE_NAME", "arq:refunds")
REFUND_JOB_NAME = os.getenv("REFUND_JOB_NAME", "initiate_refund")


class BookingSettings(BaseModel):
    """Fees and time windows applied by the reservation engine"""

    platform_percentage: float = Field(ge=0, le=100)
    collection_percentage: float = Field(ge=0, le=100)
    disbursement_percentage: float = Field(ge=0, le=100)
    session_payment_expire_minutes: int = Field(ge=1)
    session_cleanup_interval_minutes: int = Field(ge=1, le=59)
    doctor_cancel_before_minutes: int = Field(ge=0)
    patient_cancel_before_minutes: int = Field(ge=0)

    @field_validator("session_cleanup_interval_minutes")
    @classmethod
    def divides_the_hour(cls, v: int) -> int:
        # Cron minutes repeat every hour, so the interval must divide 60
        if 60 % v != 0:
            raise ValueError("Cleanup interval must divide 60 (1, 2, 3, 4, 5, 6, 10, 12, 15, 20, 30)")
        return v


def get_booking_settings() -> BookingSettings:
    """
    Read booking settings from the environment.

    Not cached: a changed fee or window applies to the next booking
    without restarting the API or the worker.
    """
    return BookingSettings(
        platform_percentage=os.getenv("PLATFORM_PERCENTAGE", "10"),
        collection_percentage=os.getenv("COLLECTION_PERCENTAGE", "2"),
        disbursement_percentage=os.getenv("DISBURSEMENT_PERCENTAGE", "1"),
        session_payment_expire_minutes=os.getenv("SESSION_PAYMENT_TIME_EXPIRE_IN_MINS", "15"),
        session_cleanup_interval_minutes=os.getenv(
            "SESSION_CLEANUP_CRON_JOB_INTERVAL_IN_MINS", "5"
        ),
        doctor_cancel_before_minutes=os.getenv("DOCTOR_CAN_CANCEL_BEFORE_TIME_IN_MINS", "60"),
        patient_cancel_before_minutes=os.getenv("PATIENT_CAN_CANCEL_BEFORE_TIME_IN_MINS", "120"),
    )
