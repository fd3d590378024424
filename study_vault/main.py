"""
FastAPI application entry point.

Sets up the app, lifespan (DB connect/disconnect), CORS, logging, the
uniform error envelope, and includes API routers. Page counting for new
uploads runs via BackgroundTasks.add_task() in the pdfs router so uploads
return immediately.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from study_vault.api import auth, pdfs, users
from study_vault.config import get_settings
from study_vault.database import close_mongo_connection, connect_to_mongo
from study_vault.errors import AppError

# Configure logging - single place for log format and level
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context: runs on startup and shutdown.
    We use it to connect to MongoDB at start and disconnect at end.
    """
    # Startup
    await connect_to_mongo()
    settings = get_settings()
    # Warn if JWT secret is missing or looks like a placeholder
    secret = settings.jwt_secret or ""
    if not secret:
        logger.warning("JWT_SECRET is not set; using the built-in development key. Set it in .env.")
    elif len(secret) < 32 or "secret" in secret.lower() or "your-" in secret.lower():
        logger.warning("JWT_SECRET looks like a placeholder. Use a long random string in production.")
    # Ensure upload directory exists for storing PDFs
    upload_path = Path(settings.upload_dir)
    upload_path.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory ready: %s", upload_path.resolve())
    yield
    # Shutdown
    await close_mongo_connection()


def _envelope(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _envelope(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return _envelope(exc.status_code, "API endpoint not found")
    return _envelope(exc.status_code, str(exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _envelope(status.HTTP_400_BAD_REQUEST, "Invalid request")
    first = errors[0]
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    if first.get("type") == "missing" and field:
        message = f"{field} is required"
    return _envelope(status.HTTP_400_BAD_REQUEST, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_application() -> FastAPI:
    """Factory for the FastAPI app. Keeps main.py clean and testable."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Upload, discover, rate and discuss educational PDF documents.",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(pdfs.router, prefix="/api/pdfs", tags=["pdfs"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])

    @app.get("/api/health", tags=["health"])
    async def health() -> dict:
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        }

    return app


app = create_application()
