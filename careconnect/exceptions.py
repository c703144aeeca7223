from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional


class CareConnectError(Exception):
    """Base class for scheduling and notification errors."""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(CareConnectError):
    status_code = 400


class NotFoundError(CareConnectError):
    status_code = 404


class PermissionDenied(CareConnectError):
    status_code = 403


class SlotUnavailable(CareConnectError):
    """The slot was claimed by someone else; re-list availability and pick again."""

    status_code = 409

    def __init__(self, doctor_id: str, date: str, start_time: str):
        super().__init__(
            "This time slot is no longer available, please pick another time",
            {"doctor_id": doctor_id, "date": date, "start_time": start_time},
        )


class InvalidTransition(CareConnectError):
    status_code = 409

    def __init__(self, appointment_id: str, current: str, requested: str):
        super().__init__(
            f"Cannot move appointment from {current} to {requested}",
            {"appointment_id": appointment_id, "current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested


class BookedSlotConflict(CareConnectError):
    status_code = 409

    def __init__(self, appointment_ids: List[str]):
        super().__init__(
            "Time range contains booked slots",
            {"appointment_ids": appointment_ids},
        )
        self.appointment_ids = appointment_ids


class RecipientTokenMissing(CareConnectError):
    pass


class TransientIOError(CareConnectError):
    status_code = 503


class PushDeliveryError(TransientIOError):
    def __init__(self, message: str, permanent: bool = False):
        super().__init__(message)
        # True when the token itself is rejected and a retry cannot succeed
        self.permanent = permanent


class DispatchTimeout(CareConnectError):
    pass


def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


def create_success_response(data: Any) -> dict:
    """Create a standardized success response"""
    return {
        "success": True,
        "data": data,
        "error": None
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", 401)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code)
    )


async def domain_exception_handler(request: Request, exc: CareConnectError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.status_code)
    )
