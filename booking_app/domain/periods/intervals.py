"""
Interval rules for doctor periods

Periods are half-open [start, end) ranges stored as naive UTC instants.
A period must:
- last one of the allowed durations
- start and end on the half-hour grid
- start and end on the same calendar day in the doctor's timezone
- not overlap any other non-deleted period of the same doctor
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import Period
from ...shared.validators import validate_timezone

ALLOWED_GAPS_MINUTES = (30, 60, 90, 120)
GRID_MINUTES = (0, 30)


def is_valid_gap(start: datetime, end: datetime) -> bool:
    """End after start, and the duration is one of the allowed gaps"""
    if end <= start:
        return False

    diff_in_minutes = (end - start).total_seconds() / 60
    return diff_in_minutes in ALLOWED_GAPS_MINUTES


def is_aligned(timestamp: datetime) -> bool:
    """Exactly on a :00 or :30 mark, with no seconds or microseconds"""
    return (
        timestamp.minute in GRID_MINUTES
        and timestamp.second == 0
        and timestamp.microsecond == 0
    )


def is_same_calendar_day(start: datetime, end: datetime, tz_name: str) -> bool:
    """Start and end fall on the same local date in the given zone"""
    zone = ZoneInfo(validate_timezone(tz_name))
    local_start = start.replace(tzinfo=timezone.utc).astimezone(zone)
    local_end = end.replace(tzinfo=timezone.utc).astimezone(zone)
    return local_start.date() == local_end.date()


def overlaps(db: Session, doctor_id: int, start: datetime, end: datetime) -> bool:
    """
    Check the new [start, end) against the doctor's non-deleted periods.

    Matches an existing [s, e) when the new start is inside it, the new end
    is inside it, or the new range covers it. Touching ends do not match.
    """
    overlapping_period = (
        db.query(Period.id)
        .filter(
            Period.doctor_id == doctor_id,
            Period.is_deleted.is_(False),
            or_(
                # New start is inside an existing period
                and_(Period.start_time <= start, Period.end_time > start),
                # New end is inside an existing period
                and_(Period.start_time < end, Period.end_time >= end),
                # New period fully covers an existing one
                and_(Period.start_time >= start, Period.end_time <= end),
            ),
        )
        .first()
    )

    return overlapping_period is not None
