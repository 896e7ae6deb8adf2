from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # ─── Application ───────────────────────────────────────────────────────────
    APP_NAME: str = "Home Service Management"
    NODE_ENV: str = "development"
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    CLIENT_URL: str = "http://localhost:3000"

    # ─── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL:          str
    DATABASE_POOL_SIZE:    int  = 10
    DATABASE_MAX_OVERFLOW: int  = 20
    DATABASE_POOL_TIMEOUT: int  = 30
    DATABASE_ECHO:         bool = False

    # ─── JWT ───────────────────────────────────────────────────────────────────
    JWT_SECRET_KEY:              str
    JWT_ALGORITHM:               str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS:   int = 7

    # ─── Password Reset ────────────────────────────────────────────────────────
    RESET_TOKEN_EXPIRE_MINUTES: int  = 15
    EXPOSE_RESET_TOKEN:         bool = True

    # ─── Session Cleanup ───────────────────────────────────────────────────────
    SESSION_CLEANUP_ENABLED:          bool = True
    SESSION_CLEANUP_INTERVAL_MINUTES: int  = 60

    # ─── Cookies ───────────────────────────────────────────────────────────────
    COOKIE_DOMAIN: str | None = None

    # ─── Email ─────────────────────────────────────────────────────────────────
    SMTP_HOST:          str | None = None
    SMTP_PORT:          int  = 587
    SMTP_USER:          str | None = None
    SMTP_PASSWORD:      str | None = None
    SMTP_USE_TLS:       bool = True
    SENDER_EMAIL:       str | None = None
    SENDER_NAME:        str  = "Home Service Management"
    EMAIL_MAX_ATTEMPTS: int  = 3

    # ─── CORS ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    def get_cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.NODE_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.NODE_ENV == "development"

    @property
    def access_token_max_age(self) -> int:
        """Access cookie lifetime in seconds."""
        return self.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @property
    def refresh_token_max_age(self) -> int:
        """Refresh cookie lifetime in seconds."""
        return self.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


settings = Settings()
