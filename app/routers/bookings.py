from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional

from ..config import settings
from ..models.booking import BookingStatus
from ..models.user import UserRole
from ..schemas.booking import (
    AssignDriverRequest,
    BookingCreate,
    BookingDetailResponse,
    BookingResponse,
    BookingStatusHistoryResponse,
    BookingStatusUpdate,
)
from ..schemas.common import success_response
from ..schemas.pagination import PaginationMeta
from ..services.access_scope import AccessScope, BookingCriteria
from ..services.booking_service import BookingService
from ..utils.dependencies import (
    CurrentUser,
    get_access_scope,
    get_booking_service,
    require_admin,
    require_roles,
)
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


@router.get("")
@router.get("/")
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    client_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    scope: AccessScope = Depends(get_access_scope),
    service: BookingService = Depends(get_booking_service),
):
    """List bookings visible to the caller, newest first."""
    criteria = BookingCriteria(
        status=status_filter.value if status_filter else None,
        client_id=client_id,
    )
    bookings, total = service.list_bookings(scope, criteria, page, page_size)
    return success_response(
        [BookingResponse.model_validate(b) for b in bookings],
        PaginationMeta.create(total, page, page_size),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("booking_create"))
async def create_booking(
    request: Request,
    booking_data: BookingCreate,
    current_user: CurrentUser = Depends(require_roles(UserRole.ADMIN, UserRole.CLIENT, UserRole.RESELLER)),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.create_booking(
        booking_data.model_dump(),
        actor_id=current_user.user_id,
        actor_role=current_user.role,
        tenant_id=current_user.tenant_id,
    )
    return success_response(BookingDetailResponse.model_validate(booking))


@router.get("/{booking_id}")
@router.get("/{booking_id}/")
async def get_booking(
    booking_id: str,
    scope: AccessScope = Depends(get_access_scope),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id, scope)
    return success_response(BookingDetailResponse.model_validate(booking))


@router.get("/{booking_id}/history")
@router.get("/{booking_id}/history/")
async def get_booking_history(
    booking_id: str,
    scope: AccessScope = Depends(get_access_scope),
    service: BookingService = Depends(get_booking_service),
):
    """Status history, newest first."""
    history = service.get_history(booking_id, scope)
    return success_response([BookingStatusHistoryResponse.model_validate(h) for h in history])


@router.patch("/{booking_id}/status")
@router.patch("/{booking_id}/status/")
@limiter.limit(get_rate_limit("booking_update"))
async def update_booking_status(
    request: Request,
    booking_id: str,
    status_data: BookingStatusUpdate,
    current_user: CurrentUser = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.update_booking_status(
        booking_id,
        status_data.status,
        changed_by=current_user.user_id,
        notes=status_data.notes,
    )
    return success_response(BookingDetailResponse.model_validate(booking))


@router.post("/{booking_id}/assign-driver")
@router.post("/{booking_id}/assign-driver/")
@limiter.limit(get_rate_limit("booking_assign"))
async def assign_driver(
    request: Request,
    booking_id: str,
    assignment: AssignDriverRequest,
    current_user: CurrentUser = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Schedule the booking with a driver and create its job."""
    booking = service.assign_driver(booking_id, assignment.driver_id, scheduled_by=current_user.user_id)
    return success_response(BookingDetailResponse.model_validate(booking))
