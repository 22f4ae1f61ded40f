from __future__ import annotations

import asyncio
import json

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import ReminderError
from .logging_config import configure_logging, get_logger
from .routes import api_router
from .utils.responses import error_response

logger = get_logger(__name__)


# Register global exception handlers for consistent error responses across the API
def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ReminderError)
    async def _reminder_error_handler(request: Request, exc: ReminderError):
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return error_response(exc.message, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.debug("validation error", extra={"errors": exc.errors(), "path": str(request.url)})
        return JSONResponse(
            {"ok": False, "error": "Invalid request", "detail": json.loads(json.dumps(exc.errors(), default=str))},
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        logger.debug(
            "http error",
            extra={"detail": exc.detail, "status": exc.status_code, "path": str(request.url)},
        )
        detail = exc.detail
        if not isinstance(detail, str):
            detail = json.dumps(detail)
        return error_response(detail, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": str(request.url)})
        return error_response("Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


configure_logging()
_settings = get_settings()

app = FastAPI(
    title=_settings.app_name,
    version=_settings.app_version,
    docs_url=_settings.resolved_docs_url,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router)


@app.on_event("startup")
# Start the reminder sweep when the app starts
async def _start_services() -> None:
    logger.info("Health reminder server starting up...")

    try:
        from .services.background_services import get_background_manager
        from .services.supabase_client import verify_database_tables

        await asyncio.to_thread(verify_database_tables)

        await get_background_manager().start_services()
        logger.info("Health reminder server startup completed")

    except Exception as e:
        logger.exception(f"Error during startup: {e}")


@app.on_event("shutdown")
# Stop the reminder sweep when the app stops
async def _stop_services() -> None:
    logger.info("Health reminder server shutting down...")

    try:
        from .services.background_services import get_background_manager

        await get_background_manager().stop_services()
        logger.info("Health reminder server shutdown completed")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


__all__ = ["app"]
