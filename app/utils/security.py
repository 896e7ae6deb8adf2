import secrets
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext

from app.config import settings

ACCESS = "access"
REFRESH = "refresh"


# ─── Codec Errors ─────────────────────────────────────────────────────────────
# Plain exceptions, not HTTP errors: callers decide how a bad token is reported.
class TokenDecodeError(Exception):
    """Base for every reason a token could not be decoded."""


class InvalidSignatureError(TokenDecodeError):
    """Malformed token or signature mismatch."""


class TokenExpiredError(TokenDecodeError):
    """Signature is fine but the exp claim is in the past."""


# ─── Clock ────────────────────────────────────────────────────────────────────
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ─── Password Hashing ─────────────────────────────────────────────────────────
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password using bcrypt."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ─── JWT ──────────────────────────────────────────────────────────────────────
def _encode(claims: dict, expire: datetime) -> str:
    payload = {
        **claims,
        "jti": uuid.uuid4().hex,
        "iat": utcnow(),
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user) -> str:
    """
    Create a short-lived JWT access token.
    Payload: sub (user id), role, tokenVersion, type, jti, iat, exp
    """
    expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode({
        "sub": str(user.id),
        "role": _role_value(user.role),
        "tokenVersion": user.tokenVersion,
        "type": ACCESS,
    }, expire)


def create_refresh_token(user, token_version: int) -> tuple[str, datetime]:
    """
    Create a long-lived JWT refresh token carrying the user's tokenVersion
    at issuance time.
    Returns (token_string, expiry_datetime).
    """
    expire = refresh_token_expiry()
    token = _encode({
        "sub": str(user.id),
        "role": _role_value(user.role),
        "tokenVersion": token_version,
        "type": REFRESH,
    }, expire)
    return token, expire


def decode_token(token: str) -> dict:
    """
    Verify signature and expiry of a token and return its claims.
    Raises TokenExpiredError or InvalidSignatureError.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        raise TokenExpiredError(str(e)) from e
    except JWTError as e:
        raise InvalidSignatureError(str(e)) from e


def refresh_token_expiry() -> datetime:
    """Return refresh token / session row expiry timestamp (UTC)."""
    return utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


def _role_value(role) -> str:
    return getattr(role, "value", role)


# ─── Reset Token ──────────────────────────────────────────────────────────────
def generate_reset_token() -> str:
    """Opaque random token for password reset links (not a JWT)."""
    return secrets.token_hex(32)


def reset_token_expiry() -> datetime:
    """Return reset token expiry timestamp (UTC)."""
    return utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
