from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import AuthContext, get_auth_context, get_auth_context_allow_restricted
from app.schemas.auth import (
    RegisterRequest, LoginRequest, ForgotPasswordRequest,
    ResetPasswordRequest, ChangePasswordRequest, TokenData,
)
from app.schemas.common import ErrorResponse, SuccessResponse, success_response
from app.services.auth_service import auth_service
from app.services.password_reset_service import password_reset_service
from app.utils.cookies import REFRESH_COOKIE, set_auth_cookies, clear_auth_cookies

router = APIRouter(
    prefix="/auth",
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)


def _token_data(result: dict) -> dict:
    # The refresh token only travels in its httpOnly cookie
    return TokenData(
        accessToken=result["accessToken"],
        role=result["role"],
        expiresIn=result["expiresIn"],
    ).model_dump()


# ─── POST /auth/register ──────────────────────────────────────────────────────
@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account and start a session",
    response_model=SuccessResponse,
)
def register(
    data: RegisterRequest,
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Register a new user (customer, staff or provider).
    - Email must be unique.
    - Password minimum 8 characters, 1 uppercase, 1 number.
    Welcome / admin notification emails are sent after the response.
    """
    result = auth_service.register(db, data, background_tasks, request)
    set_auth_cookies(response, result["accessToken"], result["refreshToken"])
    return success_response("User registered successfully", _token_data(result))


# ─── POST /auth/login ─────────────────────────────────────────────────────────
@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    summary="Login and receive access + refresh cookies",
    response_model=SuccessResponse,
)
def login(data: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Authenticate user.
    Sets accessToken (15 min) and refreshToken (7 days) cookies; the access
    token is also returned in the body for immediate use.
    """
    result = auth_service.login(db, data, request)
    set_auth_cookies(response, result["accessToken"], result["refreshToken"])
    return success_response("Login Successfully", _token_data(result))


# ─── POST /auth/refresh-token ─────────────────────────────────────────────────
@router.post(
    "/refresh-token",
    status_code=status.HTTP_200_OK,
    summary="Rotate the refresh cookie and get a new access token",
    response_model=SuccessResponse,
)
def refresh_token(request: Request, response: Response, db: Session = Depends(get_db)):
    result = auth_service.refresh(db, request.cookies.get(REFRESH_COOKIE))
    set_auth_cookies(response, result["accessToken"], result["refreshToken"])
    return success_response("Tokens refreshed successfully", _token_data(result))


# ─── POST /auth/logout ────────────────────────────────────────────────────────
@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="End the current device session",
    response_model=SuccessResponse,
)
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    """Always succeeds, even when the session is already gone."""
    auth_service.logout(db, request.cookies.get(REFRESH_COOKIE), request)
    clear_auth_cookies(response)
    return success_response("Logout Successfully.", None)


# ─── POST /auth/logout-all ────────────────────────────────────────────────────
@router.post(
    "/logout-all",
    status_code=status.HTTP_200_OK,
    summary="End every session of the current user",
    response_model=SuccessResponse,
)
def logout_all(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context_allow_restricted),
):
    removed = auth_service.logout_all(db, context.user_id, request)
    clear_auth_cookies(response)
    return success_response("Logged out from all devices successfully.", {"revokedSessions": removed})


# ─── POST /auth/forgot-password ───────────────────────────────────────────────
@router.post(
    "/forgot-password",
    status_code=status.HTTP_200_OK,
    summary="Email a one-time password reset link",
    response_model=SuccessResponse,
)
def forgot_password(data: ForgotPasswordRequest, request: Request, db: Session = Depends(get_db)):
    token = password_reset_service.request_reset(db, data, request)
    payload = {"token": token} if settings.EXPOSE_RESET_TOKEN else None
    return success_response(f"Reset link Sent Successfully to {data.email}", payload)


# ─── POST /auth/reset-password ────────────────────────────────────────────────
@router.post(
    "/reset-password",
    status_code=status.HTTP_200_OK,
    summary="Set a new password using the emailed reset token",
    response_model=SuccessResponse,
)
def reset_password(
    data: ResetPasswordRequest,
    request: Request,
    token: str | None = Query(None),
    db: Session = Depends(get_db),
):
    password_reset_service.reset_password(db, token, data, request)
    return success_response("Password reset successfully", None)


# ─── PATCH /auth/change-password ──────────────────────────────────────────────
@router.patch(
    "/change-password",
    status_code=status.HTTP_200_OK,
    summary="Change password (requires current password, signs out every device)",
    response_model=SuccessResponse,
)
def change_password(
    data: ChangePasswordRequest,
    response: Response,
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    auth_service.change_password(db, data, context.user)
    clear_auth_cookies(response)
    return success_response("Password changed successfully. Please login again.", None)


# ─── GET /auth/sessions ───────────────────────────────────────────────────────
@router.get(
    "/sessions",
    status_code=status.HTTP_200_OK,
    summary="List the active sessions of the current user",
    response_model=SuccessResponse,
)
def list_sessions(
    db: Session = Depends(get_db),
    context: AuthContext = Depends(get_auth_context),
):
    return success_response("Sessions retrieved", auth_service.list_sessions(db, context.user_id))
