"""Shared validation utilities"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utcnow() -> datetime:
    """Current instant as naive UTC, the representation stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive UTC.

    Aware values are converted; naive values are taken to already be UTC.
    """
    if value is None:
        return value
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_timezone(name: Optional[str]) -> str:
    """
    Validate an IANA timezone name.

    Raises:
        ValueError: If the zone is unknown
    """
    if not name:
        return "UTC"
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e
    return name


def validate_page(page: int, items_per_page: int) -> tuple[int, int]:
    """Clamp pagination parameters to at least one page of one item"""
    return max(1, page), max(1, items_per_page)
