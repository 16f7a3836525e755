from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import logging
import time
import traceback
import uuid

from .config import settings
from .database import create_tables
from .schemas.common import error_response
from .utils.errors import AppError
from .utils.logging_config import (
    setup_logging,
    get_logger,
    set_request_context,
    clear_request_context,
    request_id_var,
)
from .utils.rate_limiter import limiter

from .routers import bookings, jobs, notifications, health

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(settings.log_level, settings.use_json_logs)

    logger.info(f"Starting logistics backend ({settings.environment})")
    logger.info(f"CORS origins: {settings.cors_origins}")

    create_tables()
    logger.info("Database ready")

    yield

    logger.info("Shutting down logistics backend")


# Create FastAPI app
app = FastAPI(
    title="Logistics Backend API",
    description="Bookings, driver jobs, collection evidence and notifications",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        start = time.time()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.api_request(
                request.method,
                request.url.path,
                response.status_code,
                (time.time() - start) * 1000,
            )
            return response
        finally:
            clear_request_context()


# Add other middleware AFTER CORS
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_var.get()


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    error = exc.to_dict()
    error["request_id"] = _request_id(request)
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log_with_context(
        level,
        f"{exc.code}: {exc.message}",
        path=request.url.path,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=error_response(error))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = {}
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        fields[location or "body"] = err.get("msg", "Invalid value")
    return JSONResponse(
        status_code=400,
        content=error_response({
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "fields": fields,
            "request_id": _request_id(request),
        }),
    )


# Rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content=error_response({
            "code": "RATE_LIMITED",
            "message": "Too many requests, try again later",
            "request_id": _request_id(request),
        }),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = {
        "code": "INTERNAL_ERROR",
        "message": "Internal server error" if settings.is_production else str(exc),
        "request_id": _request_id(request),
    }
    if settings.show_error_trace:
        error["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=error_response(error))


# Include routers
app.include_router(bookings.router)
app.include_router(jobs.router)
app.include_router(notifications.router)
app.include_router(health.router)


@app.get("")
@app.get("/")
async def root():
    return {
        "message": "Logistics Backend API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running",
    }
