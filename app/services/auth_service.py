import logging

from fastapi import BackgroundTasks, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.models.user import User
from app.models.role import RoleName
from app.models.refresh_token import RefreshToken
from app.schemas.auth import LoginRequest, RegisterRequest, ChangePasswordRequest, SessionInfo
from app.utils.security import (
    REFRESH, TokenDecodeError, TokenExpiredError,
    verify_password, hash_password,
    create_access_token, create_refresh_token, decode_token,
    utcnow, as_utc,
)
from app.utils.email import queue_email
from app.utils.email_templates import welcome_user_template, new_provider_registered_template
from app.utils.audit import FAILED, log_action, log_auth_failure
from app.utils.exceptions import (
    InvalidCredentialsException, UserNotFoundException, DuplicateEntryException,
    NotFoundException, RefreshTokenInvalidException, InvalidTokenTypeException,
)

logger = logging.getLogger(__name__)


class AuthService:
    """
    Session manager. Every signed-in device owns one RefreshToken row whose
    token value is swapped for a fresh one on each refresh; logout deletes
    the row, logout-all bumps the user's tokenVersion and deletes them all.
    """

    # ─── Token Pair ───────────────────────────────────────────────────────────
    def _token_payload(self, user: User, access_token: str, refresh_token: str) -> dict:
        return {
            "accessToken":  access_token,
            "refreshToken": refresh_token,
            "expiresIn":    settings.access_token_max_age,
            "role":         user.role.value,
            "user":         user,
        }

    def _open_session(self, db: Session, user: User) -> dict:
        """Issue a new access/refresh pair and persist its session row (caller commits)."""
        access_token = create_access_token(user)
        refresh_token_str, refresh_expires = create_refresh_token(user, user.tokenVersion)
        db.add(RefreshToken(
            userId=user.id,
            token=refresh_token_str,
            expiresAt=refresh_expires,
        ))
        return self._token_payload(user, access_token, refresh_token_str)

    # ─── Login ────────────────────────────────────────────────────────────────
    def login(self, db: Session, data: LoginRequest, request: Request | None = None) -> dict:
        user = db.query(User).filter(User.email == data.email).first()

        if not user:
            log_auth_failure(data.email, "user not found", request)
            raise UserNotFoundException()

        if not verify_password(data.password, user.password):
            log_auth_failure(data.email, "invalid password", request)
            log_action(db, user.id, "LOGIN", "User", user.id, "Wrong password", status=FAILED, request=request)
            db.commit()
            raise InvalidCredentialsException()

        result = self._open_session(db, user)
        log_action(db, user.id, "LOGIN", "User", user.id, f"{user.name} logged in", request=request)
        db.commit()
        return result

    # ─── Register ─────────────────────────────────────────────────────────────
    def register(
        self,
        db: Session,
        data: RegisterRequest,
        background_tasks: BackgroundTasks,
        request: Request | None = None,
    ) -> dict:
        if db.query(User).filter(User.email == data.email).first():
            raise DuplicateEntryException("User already registered", field="email")

        user = User(
            name=data.name,
            email=data.email,
            mobile=data.mobile,
            password=hash_password(data.password),
            role=data.role,
            tokenVersion=0,
            isRestricted=False,
        )
        db.add(user)
        db.flush()  # Get user.id without committing

        result = self._open_session(db, user)
        log_action(db, user.id, "REGISTER", "User", user.id,
                   f"New {user.role.value} registered: {user.name} ({user.email})", request=request)
        db.commit()

        # Notifications run after the response; failures are only logged
        if user.role == RoleName.PROVIDER:
            admins = db.query(User).filter(User.role == RoleName.ADMIN).all()
            for admin in admins:
                queue_email(
                    background_tasks, admin.email, "New Provider Registered",
                    new_provider_registered_template(admin.name, user.name, user.email),
                )
        queue_email(
            background_tasks, user.email, "Welcome to Home Service Management",
            welcome_user_template(user.name),
        )
        return result

    # ─── Refresh Token ────────────────────────────────────────────────────────
    def refresh(self, db: Session, refresh_token_str: str | None) -> dict:
        """
        Exchange a refresh token for a new pair, rotating the session row in
        place. Every rejection is reported the same way so callers cannot tell
        a rotated token from a revoked or expired one.
        """
        if not refresh_token_str:
            raise RefreshTokenInvalidException("Refresh token not provided")

        try:
            payload = decode_token(refresh_token_str)
        except TokenExpiredError:
            # exp equals the row's expiresAt, so the row is dead too
            db.query(RefreshToken).filter(RefreshToken.token == refresh_token_str).delete(
                synchronize_session=False,
            )
            db.commit()
            raise RefreshTokenInvalidException()
        except TokenDecodeError as e:
            logger.info(f"Refresh token rejected by codec: {e}")
            raise RefreshTokenInvalidException()

        if payload.get("type") != REFRESH:
            raise InvalidTokenTypeException()

        stored = db.query(RefreshToken).filter(RefreshToken.token == refresh_token_str).first()
        if not stored:
            raise RefreshTokenInvalidException()

        if as_utc(stored.expiresAt) <= utcnow():
            db.delete(stored)
            db.commit()
            raise RefreshTokenInvalidException()

        user = stored.user
        if (
            user is None
            or str(user.id) != payload.get("sub")
            or payload.get("tokenVersion") != user.tokenVersion
        ):
            # Issued before a logout-all / password reset
            db.delete(stored)
            db.commit()
            raise RefreshTokenInvalidException()

        access_token = create_access_token(user)
        new_refresh_str, new_expires = create_refresh_token(user, user.tokenVersion)

        # Compare-and-swap: only the caller still holding the current value wins
        rotated = db.query(RefreshToken).filter(
            RefreshToken.id == stored.id,
            RefreshToken.token == refresh_token_str,
        ).update({"token": new_refresh_str, "expiresAt": new_expires})

        if rotated != 1:
            db.rollback()
            logger.warning(f"Concurrent refresh lost the rotation race for user {user.id}")
            raise RefreshTokenInvalidException()

        db.commit()
        return self._token_payload(user, access_token, new_refresh_str)

    # ─── Logout ───────────────────────────────────────────────────────────────
    def logout(self, db: Session, refresh_token_str: str | None, request: Request | None = None) -> int:
        """Delete the session(s) holding this token. Idempotent; returns rows removed."""
        if not refresh_token_str:
            return 0

        query = db.query(RefreshToken).filter(RefreshToken.token == refresh_token_str)
        owner_ids = {row.userId for row in query.all()}
        removed = query.delete(synchronize_session=False)

        for user_id in owner_ids:
            log_action(db, user_id, "LOGOUT", "User", user_id, "User logged out", request=request)
        db.commit()
        return removed

    # ─── Logout All Devices ───────────────────────────────────────────────────
    def revoke_all_sessions(self, db: Session, user_id: int) -> int:
        """
        Bump tokenVersion and drop every session row of the user. Does not
        commit, so callers can fold it into their own transaction.
        """
        db.query(User).filter(User.id == user_id).update(
            {User.tokenVersion: User.tokenVersion + 1}, synchronize_session="fetch",
        )
        return db.query(RefreshToken).filter(RefreshToken.userId == user_id).delete(
            synchronize_session=False,
        )

    def logout_all(self, db: Session, user_id: int, request: Request | None = None) -> int:
        if not db.query(User).filter(User.id == user_id).first():
            raise NotFoundException("User")

        removed = self.revoke_all_sessions(db, user_id)
        log_action(db, user_id, "LOGOUT_ALL", "User", user_id,
                   f"Logged out from all devices ({removed} sessions)", request=request)
        db.commit()
        return removed

    # ─── Change Password ──────────────────────────────────────────────────────
    def change_password(self, db: Session, data: ChangePasswordRequest, current_user: User) -> None:
        if not verify_password(data.currentPassword, current_user.password):
            raise InvalidCredentialsException("Current password is incorrect")

        current_user.password = hash_password(data.newPassword)
        self.revoke_all_sessions(db, current_user.id)
        log_action(db, current_user.id, "CHANGE_PASSWORD", "User", current_user.id,
                   f"{current_user.name} changed their password")
        db.commit()

    # ─── Active Sessions ──────────────────────────────────────────────────────
    def list_sessions(self, db: Session, user_id: int) -> list[dict]:
        now = utcnow()
        rows = db.query(RefreshToken).filter(
            RefreshToken.userId == user_id,
        ).order_by(RefreshToken.createdAt.desc(), RefreshToken.id.desc()).all()
        return [
            SessionInfo(
                id=row.id,
                createdAt=as_utc(row.createdAt).isoformat(),
                expiresAt=as_utc(row.expiresAt).isoformat(),
            ).model_dump()
            for row in rows
            if as_utc(row.expiresAt) > now
        ]


auth_service = AuthService()
