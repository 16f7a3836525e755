"""
FastAPI dependencies: caller identity, role gates, scope and services.

Services are built per request around the request's session.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import UserRole
from ..services.access_scope import AccessScope, resolve_scope
from ..services.booking_service import BookingService
from ..services.evidence_service import EvidenceLedger
from ..services.job_service import JobLifecycleManager
from ..services.notification_service import NotificationService
from .errors import ForbiddenError, UnauthorizedError
from .logging_config import user_id_var
from .security import verify_access_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: str
    tenant_id: Optional[str]
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER.value


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """Identity from a bearer token, falling back to the access_token cookie."""
    token = credentials.credentials if credentials else request.cookies.get("access_token")
    if not token:
        raise UnauthorizedError("Not authenticated")

    payload = verify_access_token(token)
    if payload is None:
        raise UnauthorizedError("Invalid or expired token")

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or role not in {r.value for r in UserRole}:
        raise UnauthorizedError("Invalid token claims")

    user_id_var.set(user_id)
    return CurrentUser(
        user_id=user_id,
        role=role,
        tenant_id=payload.get("tenant_id"),
        email=payload.get("email"),
    )


def require_roles(*roles: UserRole):
    """Dependency factory: allow only the given roles."""
    allowed = {r.value for r in roles}

    def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            raise ForbiddenError("Forbidden: insufficient permissions")
        return current_user

    return checker


require_admin = require_roles(UserRole.ADMIN)


def get_access_scope(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AccessScope:
    return resolve_scope(db, current_user.role, current_user.user_id, current_user.tenant_id, current_user.email)


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


def get_job_service(db: Session = Depends(get_db)) -> JobLifecycleManager:
    return JobLifecycleManager(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_evidence_ledger(db: Session = Depends(get_db)) -> EvidenceLedger:
    return EvidenceLedger(db)
