from fastapi import Response

from app.config import settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _cookie_policy() -> dict:
    """
    Production serves the SPA from another subdomain, so cookies must be
    cross-site (SameSite=None requires Secure). Everything else stays lax.
    """
    policy = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "lax",
        "path": "/",
    }
    if settings.is_production and settings.COOKIE_DOMAIN:
        policy["domain"] = settings.COOKIE_DOMAIN
    return policy


def set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    policy = _cookie_policy()
    response.set_cookie(ACCESS_COOKIE, access_token, max_age=settings.access_token_max_age, **policy)
    response.set_cookie(REFRESH_COOKIE, refresh_token, max_age=settings.refresh_token_max_age, **policy)


def clear_auth_cookies(response: Response) -> None:
    # Browsers only drop a cookie when path/domain/samesite match the original
    policy = _cookie_policy()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, **policy)
