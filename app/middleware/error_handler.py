import logging
import traceback

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from app.utils.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int,
    message: str,
    code: str,
    details: list | None = None,
    field: str | None = None,
    headers: dict | None = None,
    **extra,
) -> JSONResponse:
    """Every failure leaves the API as {success: false, message, error: {code, details, field}}."""
    content = {
        "success": False,
        "message": message,
        **extra,
        "error": {"code": code, "details": details, "field": field},
    }
    return JSONResponse(status_code=status_code, content=content, headers=headers)


# ─── AppException ─────────────────────────────────────────────────────────────
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    detail = exc.detail
    error = detail.get("error") or {"code": ErrorCode.INTERNAL_SERVER_ERROR}

    if exc.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {error.get('code')}")

    extra = {}
    if detail.get("refreshRequired"):
        # Client should send the user to login instead of retrying the refresh
        extra["refreshRequired"] = True

    return _error_response(
        exc.status_code,
        detail.get("message", "An error occurred"),
        error.get("code"),
        details=error.get("details"),
        field=error.get("field"),
        headers=exc.headers,
        **extra,
    )


# ─── Request Validation ───────────────────────────────────────────────────────
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic failures are a 400 carrying one message per offending field."""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        message = error.get("msg", "Invalid value")
        # pydantic prefixes messages raised from our validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"field": ".".join(loc) or "unknown", "message": message})

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Validation error. Please check your input.",
        ErrorCode.VALIDATION_ERROR,
        details=details,
        errors=[d["message"] for d in details],
    )


# ─── Integrity Errors ─────────────────────────────────────────────────────────
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    A unique constraint lost to a concurrent insert (two registrations with
    the same email racing past the service's pre-check). Raw DB text stays
    in the log.
    """
    logger.warning(f"IntegrityError on {request.method} {request.url.path}: {exc.orig}")
    field = "email" if "email" in str(exc.orig).lower() else None
    return _error_response(
        status.HTTP_409_CONFLICT,
        "User already registered" if field else "A record with this data already exists.",
        ErrorCode.DUPLICATE_ENTRY,
        field=field,
    )


# ─── Anything Else ────────────────────────────────────────────────────────────
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}\n"
        f"{''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))}"
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Server error",
        ErrorCode.INTERNAL_SERVER_ERROR,
    )
