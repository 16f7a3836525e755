"""
Rate Limiter Configuration

In-memory storage by default. Set RATE_LIMIT_STORAGE_URI (for example
redis://host:6379) when running more than one instance.
"""

import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings
from .security import verify_access_token

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind a reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def get_rate_limit_key(request: Request) -> str:
    """Authenticated callers are limited per user, everyone else per IP"""
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get("access_token")

    if token:
        payload = verify_access_token(token)
        if payload and payload.get("sub"):
            return f"user:{payload['sub']}"

    return get_real_client_ip(request)


def create_limiter() -> Limiter:
    if settings.rate_limit_storage_uri:
        logger.info("Rate limiter using external storage")
        return Limiter(
            key_func=get_rate_limit_key,
            storage_uri=settings.rate_limit_storage_uri,
            default_limits=["100/minute"],
            enabled=settings.rate_limit_enabled,
        )

    logger.info("Rate limiter using in-memory storage")
    return Limiter(
        key_func=get_rate_limit_key,
        default_limits=["100/minute"],
        enabled=settings.rate_limit_enabled,
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    # Bookings
    "booking_create": "30/minute",
    "booking_update": "60/minute",
    "booking_assign": "30/minute",

    # Jobs - drivers tap through statuses quickly on site
    "job_status": "60/minute",
    "job_journey": "30/minute",
    "job_cancel": "20/minute",

    # Evidence carries photo payloads
    "evidence": "20/minute",

    # Reads
    "list": "100/minute",
    "notification_update": "60/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
