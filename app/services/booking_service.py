"""
Booking Service

Creation, listing and admin status changes for collection bookings, plus
driver assignment, which schedules the booking and hands the work to a job.
Status changes made here are never pushed down to the job.
"""

import logging
import secrets
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from ..models.booking import (
    Booking,
    BookingAsset,
    BookingStatus,
    BookingStatusHistory,
    BOOKING_STATUS_TIMESTAMPS,
)
from ..models.client import Client
from ..models.user import User, UserRole
from ..schemas.pagination import paginate_query
from ..utils.db_helpers import acquire_row_lock, compare_and_set_status
from ..utils.errors import ForbiddenError, NotFoundError, ValidationError
from ..utils.logging_config import get_logger
from ..utils.sanitization import sanitize_string
from .access_scope import AccessScope, BookingCriteria, apply_booking_criteria, apply_booking_scope
from .job_service import JobLifecycleManager, erp_job_number_in_use, erp_job_number_in_use_message
from .notification_service import NotificationService
from .workflow import is_valid_booking_transition

logger = get_logger(__name__)


def generate_booking_number(now: Optional[datetime] = None) -> str:
    """BK-YYYYMMDD-XXXXXX with a random hex suffix"""
    now = now or datetime.utcnow()
    return f"BK-{now.strftime('%Y%m%d')}-{secrets.token_hex(3).upper()}"


def parse_booking_status(value) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f'Invalid booking status "{value}"',
            to_status=str(value),
            fields={"status": f"must be one of: {', '.join(s.value for s in BookingStatus)}"}
        )


class BookingService:
    def __init__(
        self,
        db: Session,
        jobs: Optional[JobLifecycleManager] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.db = db
        self.notifications = notifications or NotificationService(db)
        self.jobs = jobs or JobLifecycleManager(db, notifications=self.notifications)

    # ============ Reads ============

    def get_booking(self, booking_id: str, scope: Optional[AccessScope] = None) -> Booking:
        query = self.db.query(Booking).options(
            selectinload(Booking.assets),
            selectinload(Booking.status_history),
        )
        if scope is not None:
            query = apply_booking_scope(query, scope)
        booking = query.filter(Booking.id == booking_id).first()
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    def list_bookings(
        self,
        scope: AccessScope,
        criteria: Optional[BookingCriteria] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Booking], int]:
        query = apply_booking_scope(self.db.query(Booking), scope)
        query = apply_booking_criteria(query, criteria or BookingCriteria())
        query = query.options(selectinload(Booking.assets)).order_by(Booking.created_at.desc(), Booking.id.desc())
        return paginate_query(query, page, page_size)

    def get_history(self, booking_id: str, scope: Optional[AccessScope] = None) -> List[BookingStatusHistory]:
        return list(self.get_booking(booking_id, scope).status_history)

    # ============ Writes ============

    def create_booking(self, data: Dict[str, Any], actor_id: str, actor_role: str, tenant_id: str) -> Booking:
        """
        Create a booking in status created.

        data keys: client_id, site_name, site_address, postcode,
        scheduled_date, estimated_co2e, estimated_buyback, charity_percent,
        erp_job_number, assets [{category_name, quantity}].
        """
        if actor_role == UserRole.DRIVER.value:
            raise ForbiddenError("Forbidden: Drivers cannot create bookings")

        client = None
        client_id = data.get("client_id")
        if client_id:
            client = self.db.query(Client).filter(
                Client.id == client_id,
                Client.tenant_id == tenant_id
            ).first()
            if client is None:
                raise NotFoundError("Client", client_id)
            if actor_role == UserRole.RESELLER.value and client.reseller_id != actor_id:
                raise ForbiddenError("Forbidden: Client is not linked to this reseller")

        reseller_id = None
        if actor_role == UserRole.RESELLER.value:
            reseller_id = actor_id
        elif client is not None:
            reseller_id = client.reseller_id

        erp_job_number = (data.get("erp_job_number") or "").strip() or None
        if erp_job_number and erp_job_number_in_use(self.db, erp_job_number):
            raise ValidationError(
                erp_job_number_in_use_message(erp_job_number),
                fields={"erp_job_number": "already in use"}
            )

        booking_number = self._unique_booking_number()
        now = datetime.utcnow()

        booking = Booking(
            booking_number=booking_number,
            tenant_id=tenant_id,
            client_id=client.id if client else None,
            reseller_id=reseller_id,
            site_name=sanitize_string(data.get("site_name")) or None,
            site_address=sanitize_string(data.get("site_address")) or None,
            postcode=sanitize_string(data.get("postcode")) or None,
            status=BookingStatus.CREATED.value,
            scheduled_date=data.get("scheduled_date"),
            estimated_co2e=data.get("estimated_co2e") or 0,
            estimated_buyback=data.get("estimated_buyback") or 0,
            charity_percent=data.get("charity_percent") or 0,
            erp_job_number=erp_job_number,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        booking.assets = [
            BookingAsset(
                position=index,
                category_name=sanitize_string(asset.get("category_name")),
                quantity=asset.get("quantity", 1),
            )
            for index, asset in enumerate(data.get("assets") or [])
        ]
        booking.status_history = [BookingStatusHistory(
            status=BookingStatus.CREATED.value,
            changed_by=actor_id,
            notes="Booking created",
            created_at=now,
        )]

        self.db.add(booking)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.log_with_context(
            logging.INFO, f"Booking created: {booking_number}",
            entity_type="booking", entity_id=booking.id,
            booking_number=booking_number, asset_lines=len(booking.assets)
        )
        return self.get_booking(booking.id)

    def update_booking_status(
        self,
        booking_id: str,
        new_status,
        changed_by: str,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Admin status change. Milestone timestamps are stamped the first time
        only. The job is not touched.
        """
        target = parse_booking_status(new_status)

        try:
            booking = acquire_row_lock(self.db, Booking, Booking.id == booking_id)
            if booking is None:
                raise NotFoundError("Booking", booking_id)

            current = booking.status
            if not is_valid_booking_transition(current, target):
                raise ValidationError(
                    f'Invalid status transition from "{current}" to "{target.value}"',
                    from_status=current,
                    to_status=target.value,
                )

            now = datetime.utcnow()
            values = {Booking.status: target.value, Booking.updated_at: now}
            stamp_column = BOOKING_STATUS_TIMESTAMPS.get(target)
            if stamp_column and getattr(booking, stamp_column) is None:
                values[getattr(Booking, stamp_column)] = now

            if compare_and_set_status(self.db, Booking, booking.id, current, values) == 0:
                raise ValidationError(
                    f'Booking status changed by another request; expected "{current}"',
                    from_status=current,
                    to_status=target.value,
                )

            self.db.add(BookingStatusHistory(
                booking_id=booking.id,
                status=target.value,
                changed_by=changed_by,
                notes=notes,
                created_at=now,
            ))
            self.db.flush()
            self.db.refresh(booking)

            if current != target.value:
                self.notifications.notify_booking_status_changed(booking, target.value)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.booking_status_changed(booking_id, current, target.value)
        return self.get_booking(booking_id)

    def assign_driver(self, booking_id: str, driver_id: str, scheduled_by: str) -> Booking:
        """
        Schedule a created booking with a driver and create (or re-route) its job.

        The booking snapshot, the job and the notifications commit together.
        """
        try:
            booking = acquire_row_lock(self.db, Booking, Booking.id == booking_id)
            if booking is None:
                raise NotFoundError("Booking", booking_id)

            if booking.status != BookingStatus.CREATED.value:
                raise ValidationError(
                    f'Cannot assign driver to booking in "{booking.status}" status. '
                    f'Only bookings in "created" status can have drivers assigned.',
                    from_status=booking.status,
                    to_status=BookingStatus.SCHEDULED.value,
                )

            driver = self.db.query(User).filter(User.id == driver_id).first()
            if driver is None or driver.role != UserRole.DRIVER.value:
                raise NotFoundError("Driver", driver_id)

            if not booking.erp_job_number:
                raise ValidationError("Booking must have ERP job number before creating job")

            now = datetime.utcnow()
            values = {
                Booking.status: BookingStatus.SCHEDULED.value,
                Booking.driver_id: driver.id,
                Booking.driver_name: driver.name,
                Booking.scheduled_by: scheduled_by,
                Booking.updated_at: now,
            }
            if booking.scheduled_at is None:
                values[Booking.scheduled_at] = now

            if compare_and_set_status(self.db, Booking, booking.id, BookingStatus.CREATED.value, values) == 0:
                raise ValidationError(
                    "Booking status changed by another request",
                    from_status=BookingStatus.CREATED.value,
                    to_status=BookingStatus.SCHEDULED.value,
                )

            self.db.add(BookingStatusHistory(
                booking_id=booking.id,
                status=BookingStatus.SCHEDULED.value,
                changed_by=scheduled_by,
                notes=f"Driver {driver.name} assigned",
                created_at=now,
            ))
            self.db.flush()
            self.db.refresh(booking)

            self.notifications.notify_driver_assignment(booking, driver.name)
            job = self.jobs.create_job_from_booking(booking, driver, scheduled_by, commit=False)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.booking_status_changed(booking_id, BookingStatus.CREATED.value, BookingStatus.SCHEDULED.value)
        logger.info(f"Driver {driver_id} assigned to booking {booking_id}, job {job.id}")
        return self.get_booking(booking_id)

    def _unique_booking_number(self, attempts: int = 5) -> str:
        for _ in range(attempts):
            candidate = generate_booking_number()
            exists = self.db.query(Booking.id).filter(Booking.booking_number == candidate).first()
            if not exists:
                return candidate
        raise ValidationError("Could not allocate a booking number, please retry")
