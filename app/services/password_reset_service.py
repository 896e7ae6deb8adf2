import logging

from fastapi import Request
from sqlalchemy.orm import Session

from app.models.user import User
from app.models.reset_token import ResetToken
from app.schemas.auth import ForgotPasswordRequest, ResetPasswordRequest
from app.services.auth_service import auth_service
from app.utils.security import (
    hash_password, generate_reset_token, reset_token_expiry, utcnow, as_utc,
)
from app.utils.email import email_sender
from app.utils.email_templates import forgot_password_template
from app.utils.audit import log_action, log_auth_failure
from app.utils.exceptions import (
    UserNotFoundException, ResetTokenInvalidException, ResetTokenExpiredException,
)

logger = logging.getLogger(__name__)


class PasswordResetService:

    # ─── Forgot Password ──────────────────────────────────────────────────────
    def request_reset(self, db: Session, data: ForgotPasswordRequest, request: Request | None = None) -> str:
        """
        Create a one-time reset token (15 min), email the link and return the
        raw token. The route decides whether it is echoed back to the client.
        """
        user = db.query(User).filter(User.email == data.email).first()
        if not user:
            log_auth_failure(data.email, "password reset for unknown email", request)
            raise UserNotFoundException("Email not found")

        token = generate_reset_token()
        db.add(ResetToken(token=token, userId=user.id, expiresAt=reset_token_expiry()))
        log_action(db, user.id, "FORGOT_PASSWORD", "User", user.id,
                   "Password reset requested", request=request)
        db.commit()

        email_sender.send(user.email, "Password Reset Request", forgot_password_template(user.name, token))
        return token

    # ─── Reset Password ───────────────────────────────────────────────────────
    def reset_password(
        self,
        db: Session,
        token: str | None,
        data: ResetPasswordRequest,
        request: Request | None = None,
    ) -> None:
        record = db.query(ResetToken).filter(ResetToken.token == token).first() if token else None
        if not record:
            raise ResetTokenInvalidException()

        if as_utc(record.expiresAt) < utcnow():
            db.delete(record)
            db.commit()
            raise ResetTokenExpiredException()

        user = db.query(User).filter(User.id == record.userId).first()
        user.password = hash_password(data.newPassword)
        # tokenVersion bump + session wipe + token burn commit together
        removed = auth_service.revoke_all_sessions(db, user.id)
        db.delete(record)
        log_action(db, user.id, "RESET_PASSWORD", "User", user.id,
                   f"Password reset via email link ({removed} sessions revoked)", request=request)
        db.commit()
        logger.info(f"Password reset for user {user.id}")


password_reset_service = PasswordResetService()
