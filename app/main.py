"""Profile Auth API - FastAPI application entrypoint."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import AppConfig, ensure_storage_dirs, load_config, log_config_snapshot
from app.correlation import CorrelationIdMiddleware, RequestIdLogFilter
from app.exception_handlers import setup_exception_handlers
from app.routers import auth
from assets.store import LocalProfileAssetStore, UploadPolicy
from auth.password import CredentialValidator
from auth.service import AuthService
from auth.sessions import SessionManager
from auth.store import SqliteCredentialStore
from persistence.db import Database

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Root logging with the request ID on every line."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdLogFilter) for f in handler.filters):
            handler.addFilter(RequestIdLogFilter())


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests exceeding size limit to prevent payload bombs."""

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_bytes:
            return JSONResponse(
                status_code=413,
                content={"message": "Request entity too large", "errors": ["Request entity too large"]},
            )
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store"
        return response


def build_auth_service(config: AppConfig, db: Database) -> AuthService:
    """Wire the store, validator, session manager and asset store together."""
    return AuthService(
        store=SqliteCredentialStore(db),
        validator=CredentialValidator(config.password_policy, rounds=config.bcrypt_rounds),
        sessions=SessionManager(db, idle_timeout=timedelta(hours=config.session_idle_hours)),
        assets=LocalProfileAssetStore(config.upload_root, config.upload_public_prefix),
        upload_policy=UploadPolicy(
            allowed_extensions=config.allowed_extensions,
            max_bytes=config.max_upload_bytes,
            verify_content=config.verify_upload_content,
        ),
    )


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the application for a given (or environment-loaded) config."""
    if config is None:
        config = load_config()
    log_config_snapshot(config)
    ensure_storage_dirs(config)

    db = Database(config.db_path)
    service = build_auth_service(config, db)
    started_at = datetime.now(timezone.utc)

    app = FastAPI(
        title="Profile Auth",
        description="Cookie-session authentication and user profiles",
        version=config.service_version,
        # API docs are only exposed outside production
        docs_url=None if config.is_production else "/docs",
        redoc_url=None if config.is_production else "/redoc",
        openapi_url=None if config.is_production else "/openapi.json",
    )
    app.state.config = config
    app.state.db = db
    app.state.auth_service = service
    app.state.cookie_settings = config.cookie_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware stack (added in reverse execution order)
    # 1. CorrelationId: First to run, wraps everything, adds X-Request-Id to responses
    # 2. SecurityHeaders: Adds security headers to responses
    # 3. RequestSizeLimit: Rejects oversized requests early
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=config.max_request_size_bytes)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    setup_exception_handlers(app)

    app.include_router(auth.router)

    # Profile pictures are served from the public prefix
    app.mount(
        config.upload_public_prefix,
        StaticFiles(directory=config.upload_root),
        name="profile-pictures",
    )

    @app.on_event("startup")
    async def startup_event():
        """Sweep sessions that expired while the service was down."""
        service.sessions.cleanup_expired()

    @app.on_event("shutdown")
    async def shutdown_event():
        db.close()

    @app.get("/health")
    async def health():
        """Health check with service observability."""
        return {
            "status": "healthy",
            "service": config.service_name,
            "version": config.service_version,
            "environment": config.environment,
            "started_at": started_at.isoformat(),
        }

    return app


configure_logging()
app = create_app()
