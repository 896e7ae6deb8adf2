import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError

from app.config import settings
from app.database import check_db_connection
from app.services.cleanup_service import CleanupTaskManager
from app.utils.exceptions import AppException
from app.middleware.error_handler import (
    app_exception_handler,
    validation_exception_handler,
    integrity_error_handler,
    generic_exception_handler,
)
from app.api.v1 import auth, profile, users

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if check_db_connection():
        logger.info(f"{settings.APP_NAME} started ({settings.NODE_ENV}), database reachable")
    else:
        logger.error("Database unreachable at startup; requests will fail until it recovers")

    cleanup = CleanupTaskManager(interval_seconds=settings.SESSION_CLEANUP_INTERVAL_MINUTES * 60)
    if settings.SESSION_CLEANUP_ENABLED:
        cleanup.start()
    app.state.session_cleanup = cleanup

    yield

    cleanup.stop()
    logger.info(f"{settings.APP_NAME} shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=API_VERSION,
        description="Home Service Management API: authentication and sessions",
        lifespan=lifespan,
    )

    # ─── CORS ─────────────────────────────────────────────────────────────────
    # Auth travels in cookies, so the SPA origins are listed instead of "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # ─── Error Envelope ───────────────────────────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # ─── Routes ───────────────────────────────────────────────────────────────
    # /auth/* is mounted at the root, the rest under /api/v1
    app.include_router(auth.router, tags=["Auth"])
    app.include_router(profile.router, prefix="/api/v1", tags=["Profile"])
    app.include_router(users.router, prefix="/api/v1", tags=["Users"])

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok", "app": settings.APP_NAME, "version": API_VERSION}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.APP_HOST, port=settings.APP_PORT,
                reload=settings.is_development)
