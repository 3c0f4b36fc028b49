"""
FastAPI application entry point.
Main application setup and configuration.
"""

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import asyncio
import logging

from app.config import settings
from app.database import AsyncSessionLocal, check_database, close_db_connection, get_db, test_database_connection
from app.routers import api_routers
from app.services.live_group import run_lock_sweeper
from app.utils.exceptions import APIException, ServiceUnavailableError
from app.utils.timeutils import utc_now
from app.services.error_handler import ErrorHandlerService
from app.middleware.request_context import RequestContextMiddleware

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Starts the unit lock sweeper and closes the connection pool on shutdown.
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    db_connected = await test_database_connection()
    if not db_connected:
        logger.error("Failed to connect to database on startup")

    sweeper = asyncio.create_task(run_lock_sweeper(AsyncSessionLocal))

    yield

    logger.info("Shutting down application")
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    await close_db_connection()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Real-estate marketplace API.

    ## Features

    * **Listings**: Sale and rental properties paid for with subscription credits
    * **Live grouping**: Group-buying projects with towers, floors and lockable units
    * **Short stays**: Nightly rentals with reservations, host calendar and analytics
    * **Site visits**: Bookings paid on site or online
    * **Community**: Reviews, wishlists and buyer/owner chat

    ## Authentication

    Register through `/api/otp`, then sign in with `/api/auth/login` and send the
    access token in the Authorization header as `Bearer <token>`.

    ## Rate Limiting

    Requests are limited per client IP and route class. Exceeded limits return 429
    with a `Retry-After` header.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time", "Retry-After"],
)

app.add_middleware(
    RequestContextMiddleware,
    enable_request_logging=not settings.is_testing,
)

for router in api_routers:
    app.include_router(router, prefix=settings.api_prefix)

Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
app.mount(settings.uploads_url_path, StaticFiles(directory=settings.upload_dir), name="uploads")


# Global exception handlers using ErrorHandlerService
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Handle custom API exceptions with structured error responses."""
    return ErrorHandlerService.handle_api_exception(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed field information."""
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    return ErrorHandlerService.handle_validation_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors with appropriate error responses."""
    return ErrorHandlerService.handle_database_error(exc, request)


@app.exception_handler(HTTPException)
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions, including unknown routes, with structured error responses."""
    return ErrorHandlerService.handle_http_exception(exc, request)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with secure error responses."""
    return ErrorHandlerService.handle_unexpected_error(exc, request)


@app.get("/", tags=["Health"])
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
        "api_prefix": settings.api_prefix
    }


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint with database connectivity test.
    Used by container health checks and load balancers.
    """
    try:
        await check_database(db)
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise ServiceUnavailableError("Database unavailable")

    return {
        "status": "ok",
        "database": "connected",
        "timestamp": utc_now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
