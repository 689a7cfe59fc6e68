import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cashflow_api.core.config import Settings, get_settings
from cashflow_api.core.errors import AuthorizationError, ServiceError
from cashflow_api.core.logging_config import configure_logging
from cashflow_api.core.revocation import build_revocation_registry
from cashflow_api.core.security import PasswordHasher, TokenService
from cashflow_api.db.session import build_engine, build_session_factory
from cashflow_api.routers.auth import router as auth_router
from cashflow_api.routers.cash import router as cash_router
from cashflow_api.routers.health import router as health_router
from cashflow_api.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, message: str, code: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=message,
            code=code,
            request_id=request.headers.get("X-Request-ID"),
        ).model_dump(),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return ", ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("Service error on %s %s: %s", request.method, request.url.path, exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthorizationError) else None
        return _error_response(request, exc.status_code, exc.message, exc.error_code, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, 400, _validation_message(exc), "validation_error")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message, code = f"Route {request.method} {request.url.path} not found", "not_found"
        elif exc.status_code == 405:
            message, code = str(exc.detail), "method_not_allowed"
        else:
            message, code = str(exc.detail), "http_error"
        return _error_response(request, exc.status_code, message, code, getattr(exc, "headers", None))

    # Global exception handler for unhandled errors
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected server errors with structured response."""
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        if settings.is_development:
            message = f"{type(exc).__name__}: {exc}"
        else:
            message = "An unexpected error occurred. Please try again later."
        return _error_response(request, 500, message, "server_error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application and its long-lived services from ``settings``."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Personal expense tracking API - user accounts and per-user cashflow records.",
        version="0.1.0",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
    )

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.password_hasher = PasswordHasher.from_settings(settings)
    app.state.token_service = TokenService.from_settings(settings)
    app.state.revocation_registry = build_revocation_registry(settings, session_factory)

    register_exception_handlers(app, settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)
        level = logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        logger.log(
            level,
            "%s %s -> %s (%sms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "request_id": request.headers.get("X-Request-ID"),
            },
        )
        return response

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.CORS_ORIGINS),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(cash_router)

    @app.get("/")
    def read_root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "docs": None if settings.is_production else "/docs",
            "health": "/health",
        }

    logger.info("Application initialized (environment=%s)", settings.ENVIRONMENT)
    return app
