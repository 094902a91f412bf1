"""Stable error codes surfaced to API callers"""

from fastapi import HTTPException


class StatusCode:
    # Not found
    PATIENT_NOT_FOUND = "PATIENT_NOT_FOUND"
    DOCTOR_NOT_FOUND = "DOCTOR_NOT_FOUND"
    PERIOD_NOT_FOUND = "PERIOD_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    RATING_NOT_FOUND = "RATING_NOT_FOUND"

    # Period rules
    INVALID_TIME_GAP = "INVALID_TIME_GAP"
    UNALIGNED_TIME = "UNALIGNED_TIME"
    NOT_SAME_DAY = "NOT_SAME_DAY"
    OVERLAP_EXISTS = "OVERLAP_EXISTS"
    INVALID_TIME_RANGE = "INVALID_TIME_RANGE"

    # Booking / cancellation rules
    DOCTOR_INACTIVE = "DOCTOR_INACTIVE"
    PERIOD_OCCUPIED = "PERIOD_OCCUPIED"
    PERIOD_PASSED = "PERIOD_PASSED"
    PERIOD_TOO_CLOSE_TO_START = "PERIOD_TOO_CLOSE_TO_START"
    SESSION_ALREADY_CANCELLED = "SESSION_ALREADY_CANCELLED"
    SESSION_ALREADY_COMPLETED = "SESSION_ALREADY_COMPLETED"
    SESSION_NOT_PAID = "SESSION_NOT_PAID"
    CANCELLATION_WINDOW_PASSED = "CANCELLATION_WINDOW_PASSED"

    # Rating rules
    SESSION_NOT_COMPLETED = "SESSION_NOT_COMPLETED"
    PERIOD_NOT_PASSED = "PERIOD_NOT_PASSED"
    RATING_EXISTS_ALREADY = "RATING_EXISTS_ALREADY"


def api_error(status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": code, "message": message})


def not_found(code: str, message: str) -> HTTPException:
    return api_error(404, code, message)


def conflict(code: str, message: str) -> HTTPException:
    return api_error(409, code, message)


def bad_request(code: str, message: str) -> HTTPException:
    return api_error(400, code, message)
