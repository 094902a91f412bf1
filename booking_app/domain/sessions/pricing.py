"""
Session price calculation

All rounding is ceiling so neither the platform nor the payment processor
is under-collected. The platform share is computed from the unrounded
doctor amount; only the doctor's displayed price is rounded on its own.
Because every added term is already whole, total = doctor + platform +
payment_api holds exactly.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_CEILING, Decimal


@dataclass(frozen=True)
class SessionPrice:
    total_price: int
    doctor_price: int
    platform_price: int
    payment_api_price: int


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def _decimal(value) -> Decimal:
    # str() keeps float inputs such as 0.1 from dragging binary error into the ceiling
    return Decimal(str(value))


def calculate_session_price(
    fee_per_hour: float,
    start_time: datetime,
    end_time: datetime,
    platform_percentage: float,
    collection_percentage: float,
    disbursement_percentage: float,
) -> SessionPrice:
    """
    Turn an hourly rate and a period into the price breakdown stored on a session.

    Example: 100/h for one hour with 10% platform and 5% + 5% processor fees
    gives doctor 100, platform 10, payment_api ceil(110 * 0.10) = 11, total 121.
    """
    duration_minutes = _decimal(int((end_time - start_time).total_seconds() // 60))
    duration_hours = duration_minutes / Decimal(60)
    hundred = Decimal(100)

    doctor_unrounded = _decimal(fee_per_hour) * duration_hours
    doctor_price = _ceil(doctor_unrounded)

    platform_price = _ceil(doctor_unrounded * _decimal(platform_percentage) / hundred)

    subtotal = doctor_unrounded + platform_price
    processor_percentage = _decimal(collection_percentage) + _decimal(disbursement_percentage)
    payment_api_price = _ceil(subtotal * processor_percentage / hundred)

    total_price = _ceil(subtotal + payment_api_price)

    return SessionPrice(
        total_price=total_price,
        doctor_price=doctor_price,
        platform_price=platform_price,
        payment_api_price=payment_api_price,
    )
