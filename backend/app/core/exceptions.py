"""
Error taxonomy and the JSON error body shared by every endpoint.

Every non-2xx response is rendered as:
    {"error": "<stable code>", "message": "<human readable>", "details": ...}

Clients surface `message` if present, else `error`.

SECURITY PRINCIPLE: Don't expose internal details to users.
Domain errors carry operator-facing messages; unexpected errors are logged
in full and answered with a generic 500.
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class PharmacyError(Exception):
    """Base for domain errors. `code` is the stable `error` field of the body."""

    code = "PharmacyError"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_body(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidQuantity(PharmacyError):
    code = "InvalidQuantity"


class UnknownMedicine(PharmacyError):
    code = "UnknownMedicine"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, medicine_id: str):
        super().__init__(f"Medicine {medicine_id} is not available for distribution",
                         details={"medicineId": medicine_id})
        self.medicine_id = medicine_id


class InsufficientStock(PharmacyError):
    """
    Raised when requested quantity exceeds stock.

    `shortages` lists every offending medicine:
        [{"medicineId", "medicineName", "requested", "available"}, ...]
    """
    code = "InsufficientStock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, shortages: list[dict]):
        names = ", ".join(
            f"{s['medicineName']} (requested {s['requested']}, available {s['available']})"
            for s in shortages
        )
        super().__init__(f"Insufficient stock for: {names}", details=shortages)
        self.shortages = shortages


class NoStaffSelected(PharmacyError):
    code = "NoStaffSelected"

    def __init__(self, message: str = "Please scan a staff ID card first"):
        super().__init__(message)


class EmptyCart(PharmacyError):
    code = "EmptyCart"

    def __init__(self, message: str = "Please add at least one medicine to distribute"):
        super().__init__(message)


class StaffNotFound(PharmacyError):
    code = "StaffNotFound"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, national_id: str):
        super().__init__(f"No staff member found with national ID '{national_id}'")
        self.national_id = national_id


class NoFieldsProvided(PharmacyError):
    code = "NoFieldsProvided"

    def __init__(self, message: str = "At least one field must be provided"):
        super().__init__(message)


class MedicineNotFound(PharmacyError):
    code = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, medicine_id: str):
        super().__init__("Medicine not found", details={"medicineId": medicine_id})
        self.medicine_id = medicine_id


# ==============================================================================
# CLIENT-SIDE OUTCOMES (raised by app.client, never by the server)
# ==============================================================================

class TransportFailure(PharmacyError):
    """The request never produced a response. Safe to retry reads."""
    code = "TransportFailure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class AmbiguousOutcome(TransportFailure):
    """
    A distribute request may have reached the server but no response came back.
    The operator must check the distribution log before resubmitting.
    """
    code = "AmbiguousOutcome"

    def __init__(self, message: str = (
        "The distribution outcome is unknown. Check the distribution log "
        "before submitting again."
    )):
        super().__init__(message)


class ServerRejected(PharmacyError):
    """Non-2xx response with a structured error body."""
    code = "ServerRejected"

    def __init__(self, status_code: int, error: str, message: Optional[str] = None,
                 details: Any = None):
        super().__init__(message or error, details=details)
        self.status_code = status_code
        self.error = error


class SubmissionInProgress(PharmacyError):
    code = "SubmissionInProgress"

    def __init__(self, message: str = "A distribution for this cart is already being submitted"):
        super().__init__(message)


class BusinessError:
    """HTTP errors with safe (non-leaky) messages."""

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """
        Generic 401 for all authentication failures.

        SECURITY: Same response for missing, expired or forged tokens.
        """
        logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def forbidden(reason: str = "") -> HTTPException:
        logger.warning(f"Forbidden access: {reason}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> JSONResponse:
        """
        Generic 500 - logs actual error internally, hides from user.

        SECURITY: Never expose stack traces, SQL errors, or internal paths to users.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "InternalError",
                "message": "An internal error occurred. Please try again later.",
            },
        )


_HTTP_ERROR_CODES = {
    400: "BadRequest",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
    429: "TooManyRequests",
}


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error in the `{error, message}` shape."""

    @app.exception_handler(PharmacyError)
    async def pharmacy_error_handler(request: Request, exc: PharmacyError):
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": _HTTP_ERROR_CODES.get(exc.status_code, "HTTPError"),
                "message": str(exc.detail),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": message,
                "details": [
                    {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg")}
                    for e in errors
                ],
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        return BusinessError.server_error(exc)
