"""
Application entry point.
Run with:  uvicorn toolkit_backend.main:app --reload

Set SEED_MOCK_DATA=true to populate an empty inventory with sample toolkits
on startup (see toolkit_backend/db/mock_seeder.py).
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from toolkit_backend.core.logging_config import configure_logging
from fastapi.middleware.cors import CORSMiddleware

from toolkit_backend.core.config import settings
from toolkit_backend.core.exceptions import LedgerError
from toolkit_backend.api.v1.router import api_router
from toolkit_backend.db.database import init_db
from toolkit_backend.db.mock_seeder import seed_mock_data
from toolkit_backend.schemas.envelope import ApiResponse
from toolkit_backend.services.notification_service import shutdown_dispatcher

configure_logging()


def _envelope(status_code: int, message: str, error: str) -> JSONResponse:
    body = ApiResponse.fail(status=status_code, message=message, error=error)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Convert every error into the ``{status, success, message, error}`` envelope."""
    logger = logging.getLogger(__name__)

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        logger.warning(
            "%s %s failed status=%s detail=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        return _envelope(exc.status_code, exc.message, str(exc.detail))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.warning(
            "%s %s failed status=%s detail=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        return _envelope(exc.status_code, str(exc.detail), str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        detail = _format_validation_errors(exc)
        logger.warning("%s %s rejected: %s", request.method, request.url.path, detail)
        return _envelope(status.HTTP_400_BAD_REQUEST, "Validation failed", detail)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return _envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            "An unexpected error occurred",
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    logger = logging.getLogger(__name__)
    logger.info("Starting FastAPI application setup")
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=(
            "Backend API for a safety-equipment toolkit inventory with "
            "per-variant stock tracking and an append-only stock history."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Middleware ──────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error envelope ──────────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Routers ─────────────────────────────────────────────────────────────
    app.include_router(api_router)

    # ── Startup / shutdown events ───────────────────────────────────────────
    @app.on_event("startup")
    def on_startup() -> None:
        """Initialize the database and optional development seed data."""
        logger.info("Initializing database")
        init_db()
        if settings.SEED_MOCK_DATA:
            seed_mock_data()

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        """Drain queued notifications before the process exits."""
        shutdown_dispatcher()

    return app


app = create_app()
