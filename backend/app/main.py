import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import settings first for logging configuration
from backend.app.core.config import APP_VERSION
from backend.app.core.config import settings as app_settings

# Configure logging based on settings
# DEBUG=true -> DEBUG level, else use LOG_LEVEL setting
log_level_str = "DEBUG" if app_settings.debug else app_settings.log_level.upper()
log_level = getattr(logging, log_level_str, logging.INFO)
log_format = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Create root logger
root_logger = logging.getLogger()
root_logger.setLevel(log_level)

# Console handler - always enabled
console_handler = logging.StreamHandler()
console_handler.setLevel(log_level)
console_handler.setFormatter(logging.Formatter(log_format))
root_logger.addHandler(console_handler)

# File handler - only in production or if explicitly enabled
if app_settings.log_to_file:
    log_file = app_settings.log_dir / "printfleet.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(file_handler)
    logging.info(f"Logging to file: {log_file}")

# Reduce noise from third-party libraries in production
if not app_settings.debug:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logging.info(f"PrintFleet starting - debug={app_settings.debug}, log_level={log_level_str}")

from backend.app.api.routes import discovery, jobs, maintenance, printers, websocket  # noqa: E402
from backend.app.core.database import async_session, init_db  # noqa: E402
from backend.app.core.websocket import ConnectionManager  # noqa: E402
from backend.app.services.discovery import PrinterDiscoveryService  # noqa: E402
from backend.app.services.errors import FleetError  # noqa: E402
from backend.app.services.printer_lifecycle import PrinterLockRegistry  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()

    yield

    # Shutdown
    await app.state.discovery_service.stop()


# ============== Error Handlers ==============


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "location": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"errors": errors})


async def fleet_exception_handler(request: Request, exc: FleetError):
    logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning("Constraint violation on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=400, content={"message": "Request conflicts with existing data"})


async def store_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Database error"})


def create_app() -> FastAPI:
    """Build the application and the process-wide services it owns."""
    app = FastAPI(
        title=app_settings.app_name,
        description="Fleet dashboard for 3D printers, print jobs and maintenance",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    ws_manager = ConnectionManager()
    app.state.ws_manager = ws_manager
    app.state.printer_locks = PrinterLockRegistry()
    app.state.discovery_service = PrinterDiscoveryService(
        ws_manager,
        port=app_settings.discovery_port,
        timeout=app_settings.discovery_timeout_seconds,
    )
    app.state.session_factory = async_session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(FleetError, fleet_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(SQLAlchemyError, store_exception_handler)

    # API routes
    app.include_router(printers.router, prefix=app_settings.api_prefix)
    app.include_router(jobs.router, prefix=app_settings.api_prefix)
    app.include_router(maintenance.router, prefix=app_settings.api_prefix)
    app.include_router(discovery.router, prefix=app_settings.api_prefix)
    app.include_router(websocket.router, prefix=app_settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "message": "PrintFleet API",
            "version": APP_VERSION,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
