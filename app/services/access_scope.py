"""
Access Scope Resolution

Turns the caller's identity into the set of bookings and jobs they may see.

- admin: everything, across tenants
- driver: jobs assigned to them (no tenant restriction) and the bookings
  they were assigned on
- client: bookings in their tenant for Client records matching their email,
  or that they created; jobs of those bookings
- reseller: bookings in their tenant whose Client is owned by them; jobs of
  those bookings

Resolution only reads. A record outside the scope is reported as not found.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from sqlalchemy import false, or_, select
from sqlalchemy.orm import Query, Session

from ..config import settings
from ..models.booking import Booking
from ..models.client import Client
from ..models.job import Job, DRIVER_HISTORY_STATUSES
from ..models.user import User, UserRole
from ..utils.errors import ForbiddenError


@dataclass(frozen=True)
class AccessScope:
    role: UserRole
    user_id: str
    tenant_id: Optional[str] = None
    # Client records the caller is linked to (client: by email, reseller: by ownership)
    client_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def unrestricted(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class BookingCriteria:
    status: Optional[str] = None
    client_id: Optional[str] = None


@dataclass(frozen=True)
class JobCriteria:
    status: Optional[str] = None
    client_id: Optional[str] = None
    search: Optional[str] = None
    include_history: bool = False


def resolve_scope(
    db: Session,
    role,
    user_id: str,
    tenant_id: Optional[str],
    email: Optional[str] = None,
) -> AccessScope:
    try:
        role = UserRole(role)
    except ValueError:
        raise ForbiddenError(f"Unknown role: {role}")

    if role in (UserRole.ADMIN, UserRole.DRIVER):
        return AccessScope(role=role, user_id=user_id, tenant_id=tenant_id)

    if role == UserRole.CLIENT:
        if email is None:
            user = db.query(User).filter(User.id == user_id).first()
            email = user.email if user else None
        client_ids = ()
        if email:
            rows = db.query(Client.id).filter(
                Client.tenant_id == tenant_id,
                Client.email == email
            ).all()
            client_ids = tuple(sorted(r[0] for r in rows))
        return AccessScope(role=role, user_id=user_id, tenant_id=tenant_id, client_ids=client_ids)

    rows = db.query(Client.id).filter(
        Client.tenant_id == tenant_id,
        Client.reseller_id == user_id
    ).all()
    return AccessScope(
        role=role,
        user_id=user_id,
        tenant_id=tenant_id,
        client_ids=tuple(sorted(r[0] for r in rows)),
    )


def booking_scope_condition(scope: AccessScope):
    """SQL predicate on Booking for the scope, or None when unrestricted."""
    if scope.unrestricted:
        return None

    if scope.role == UserRole.DRIVER:
        return Booking.driver_id == scope.user_id

    if scope.role == UserRole.CLIENT:
        owned = Booking.created_by == scope.user_id
        if scope.client_ids:
            owned = or_(Booking.client_id.in_(scope.client_ids), owned)
        return (Booking.tenant_id == scope.tenant_id) & owned

    if scope.role == UserRole.RESELLER:
        if not scope.client_ids:
            return false()
        return (Booking.tenant_id == scope.tenant_id) & Booking.client_id.in_(scope.client_ids)

    return false()


def job_scope_condition(scope: AccessScope):
    """SQL predicate on Job for the scope, or None when unrestricted."""
    if scope.unrestricted:
        return None

    if scope.role == UserRole.DRIVER:
        return Job.driver_id == scope.user_id

    booking_condition = booking_scope_condition(scope)
    visible_bookings = select(Booking.id).where(booking_condition)
    return (Job.tenant_id == scope.tenant_id) & Job.booking_id.in_(visible_bookings)


def apply_booking_scope(query: Query, scope: AccessScope) -> Query:
    condition = booking_scope_condition(scope)
    if condition is None:
        return query
    return query.filter(condition)


def apply_job_scope(query: Query, scope: AccessScope) -> Query:
    condition = job_scope_condition(scope)
    if condition is None:
        return query
    return query.filter(condition)


def apply_booking_criteria(query: Query, criteria: BookingCriteria) -> Query:
    if criteria.status:
        query = query.filter(Booking.status == criteria.status)
    if criteria.client_id:
        query = query.filter(Booking.client_id == criteria.client_id)
    return query


def apply_job_criteria(query: Query, criteria: JobCriteria, scope: AccessScope) -> Query:
    """
    Filter jobs by criteria.

    Drivers see their active jobs by default; warehouse-and-later jobs only
    when history is requested (or a history status is asked for directly).
    """
    history_values = [s.value for s in DRIVER_HISTORY_STATUSES]

    if scope.role == UserRole.DRIVER and settings.driver_active_statuses_only:
        wants_history = criteria.include_history or criteria.status in history_values
        if wants_history:
            query = query.filter(Job.status.in_(history_values))
            if criteria.status in history_values:
                query = query.filter(Job.status == criteria.status)
        elif criteria.status:
            query = query.filter(Job.status == criteria.status)
        else:
            query = query.filter(Job.status.notin_(history_values))
    elif criteria.status:
        query = query.filter(Job.status == criteria.status)

    if criteria.client_id:
        client_bookings = select(Booking.id).where(Booking.client_id == criteria.client_id)
        query = query.filter(Job.booking_id.in_(client_bookings))

    if criteria.search:
        term = f"%{criteria.search.strip()}%"
        query = query.filter(or_(
            Job.client_name.ilike(term),
            Job.erp_job_number.ilike(term),
            Job.site_name.ilike(term),
            Job.site_address.ilike(term),
        ))

    return query


__all__ = [
    "AccessScope",
    "BookingCriteria",
    "JobCriteria",
    "resolve_scope",
    "apply_booking_scope",
    "apply_job_scope",
    "apply_booking_criteria",
    "apply_job_criteria",
]
