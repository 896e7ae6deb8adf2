from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES: machine-readable constants for frontend switch/case
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR        = "VALIDATION_ERROR"
    INVALID_CREDENTIALS     = "INVALID_CREDENTIALS"
    UNAUTHORIZED            = "UNAUTHORIZED"
    ACCESS_TOKEN_REQUIRED   = "ACCESS_TOKEN_REQUIRED"
    INVALID_TOKEN_TYPE      = "INVALID_TOKEN_TYPE"
    REFRESH_TOKEN_INVALID   = "REFRESH_TOKEN_INVALID"
    FORBIDDEN               = "FORBIDDEN"
    ACCOUNT_RESTRICTED      = "ACCOUNT_RESTRICTED"
    NOT_FOUND               = "NOT_FOUND"
    DUPLICATE_ENTRY         = "DUPLICATE_ENTRY"
    BAD_REQUEST             = "BAD_REQUEST"
    RESET_TOKEN_INVALID     = "RESET_TOKEN_INVALID"
    RESET_TOKEN_EXPIRED     = "RESET_TOKEN_EXPIRED"
    INTERNAL_SERVER_ERROR   = "INTERNAL_SERVER_ERROR"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error_code for frontend handling, and an
    optional refresh_required hint telling the client to re-authenticate
    instead of retrying.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | None = None,
        field: str | None = None,
        refresh_required: bool = False,
    ):
        super().__init__(status_code=status_code, detail={
            "message": message,
            "error": {
                "code": error_code,
                "details": details,
                "field": field,
            },
            "refreshRequired": refresh_required,
        })


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class BadRequestException(AppException):
    def __init__(self, message: str = "Bad request", field: str | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, ErrorCode.BAD_REQUEST, field=field)


class InvalidCredentialsException(AppException):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, ErrorCode.INVALID_CREDENTIALS)


class UserNotFoundException(AppException):
    """Lookup by email failed on a public form (login / forgot-password)."""
    def __init__(self, message: str = "User not found"):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, ErrorCode.NOT_FOUND, field="email")


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Authentication required", refresh_required: bool = False):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED, message, ErrorCode.UNAUTHORIZED,
            refresh_required=refresh_required,
        )


class AccessTokenRequiredException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Access token required", ErrorCode.ACCESS_TOKEN_REQUIRED)


class InvalidTokenTypeException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_401_UNAUTHORIZED, "Invalid token type", ErrorCode.INVALID_TOKEN_TYPE)


class RefreshTokenInvalidException(AppException):
    def __init__(self, message: str = "Invalid or expired refresh token"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, ErrorCode.REFRESH_TOKEN_INVALID)


class ForbiddenException(AppException):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(status.HTTP_403_FORBIDDEN, message, ErrorCode.FORBIDDEN)


class AccountRestrictedException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            "Your account has been restricted. Contact support.",
            ErrorCode.ACCOUNT_RESTRICTED,
        )


class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class DuplicateEntryException(AppException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.DUPLICATE_ENTRY, field=field)


class ResetTokenInvalidException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Invalid Token", ErrorCode.RESET_TOKEN_INVALID)


class ResetTokenExpiredException(AppException):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Token is expired", ErrorCode.RESET_TOKEN_EXPIRED)
