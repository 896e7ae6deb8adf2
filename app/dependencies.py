import logging
from dataclasses import dataclass

from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.models.role import RoleName
from app.services.auth_service import auth_service
from app.utils.cookies import ACCESS_COOKIE, REFRESH_COOKIE, set_auth_cookies
from app.utils.security import ACCESS, TokenDecodeError, decode_token
from app.utils.exceptions import (
    AppException,
    UnauthorizedException,
    AccessTokenRequiredException,
    InvalidTokenTypeException,
    AccountRestrictedException,
    ForbiddenException,
)

logger = logging.getLogger(__name__)

# Bearer token extractor, fallback for clients that cannot keep cookies
bearer_scheme = HTTPBearer(auto_error=False)


# ─── Auth Context ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, built fresh from the store on every request."""
    user: User
    user_id: int
    role: RoleName
    is_restricted: bool
    refreshed: bool = False              # True when a silent refresh rewrote the cookies
    access_token: str | None = None      # The new access token after a silent refresh

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN


def _load_context(db: Session, user_id: int, refreshed: bool = False,
                  access_token: str | None = None) -> AuthContext:
    # Never trust role / restriction from the claims; re-read the user
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UnauthorizedException("User no longer exists")
    return AuthContext(
        user=user,
        user_id=user.id,
        role=user.role,
        is_restricted=user.isRestricted,
        refreshed=refreshed,
        access_token=access_token,
    )


def _silent_refresh(db: Session, refresh_token: str | None, response: Response) -> AuthContext | None:
    """Rotate the refresh cookie and build a context from it, or None on any failure."""
    if not refresh_token:
        return None
    try:
        result = auth_service.refresh(db, refresh_token)
    except AppException as e:
        logger.info(f"Silent refresh failed: {e.detail.get('message')}")
        return None

    set_auth_cookies(response, result["accessToken"], result["refreshToken"])
    return _load_context(db, result["user"].id, refreshed=True, access_token=result["accessToken"])


# ─── Authenticate ─────────────────────────────────────────────────────────────
def authenticate(
    request: Request,
    response: Response,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """
    Resolve the caller from the accessToken cookie (or Bearer header),
    falling back to a silent refresh with the refreshToken cookie.
    Raises 401 on every failure; does not look at the restriction flag.
    """
    access_token = request.cookies.get(ACCESS_COOKIE) or (credentials.credentials if credentials else None)
    refresh_token = request.cookies.get(REFRESH_COOKIE)

    if not access_token:
        context = _silent_refresh(db, refresh_token, response)
        if context is None:
            raise AccessTokenRequiredException()
        return context

    try:
        payload = decode_token(access_token)
    except TokenDecodeError as e:
        logger.info(f"Access token rejected: {e}")
        context = _silent_refresh(db, refresh_token, response)
        if context is None:
            raise UnauthorizedException("Invalid or expired access token!", refresh_required=True)
        return context

    if payload.get("type") != ACCESS:
        raise InvalidTokenTypeException()

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise UnauthorizedException("Invalid token payload")

    context = _load_context(db, user_id)
    if payload.get("tokenVersion") != context.user.tokenVersion:
        # Issued before a logout-all / password change / reset
        logger.info(f"Access token for user {user_id} predates tokenVersion {context.user.tokenVersion}")
        context = _silent_refresh(db, refresh_token, response)
        if context is None:
            raise UnauthorizedException("Session has been revoked", refresh_required=True)
    return context


# ─── Restriction Gate ─────────────────────────────────────────────────────────
def get_auth_context(context: AuthContext = Depends(authenticate)) -> AuthContext:
    """Authenticated caller; restricted non-admin accounts get 403."""
    if context.is_restricted and not context.is_admin:
        raise AccountRestrictedException()
    return context


def get_auth_context_allow_restricted(context: AuthContext = Depends(authenticate)) -> AuthContext:
    """For routes a restricted user must still reach (own profile, logout-all)."""
    return context


# ─── Role Guards ──────────────────────────────────────────────────────────────
def require_roles(*roles: RoleName):
    """
    Factory that returns a FastAPI dependency requiring one of the given roles.

    Usage:
        @router.get("/admin-only")
        def admin_route(context: AuthContext = Depends(require_roles(RoleName.ADMIN))):
            ...
    """
    def dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if context.role not in roles:
            raise ForbiddenException(
                f"This action requires one of these roles: {[r.value for r in roles]}"
            )
        return context
    return dependency


def get_admin_context(context: AuthContext = Depends(require_roles(RoleName.ADMIN))) -> AuthContext:
    return context
