"""
Job Lifecycle Manager

Owns every job status change. A change is validated against the job graph,
written with a compare-and-set on the observed status, recorded in the job's
status history, mirrored onto the booking where the sync rules allow, and
announced through notifications. All of it commits together or not at all.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..models.booking import Booking
from ..models.job import Job, JobAsset, JobStatus, JobStatusHistory, JOURNEY_FIELDS
from ..models.user import User, UserRole
from ..schemas.pagination import paginate_query
from ..utils.db_helpers import acquire_row_lock, compare_and_set_status
from ..utils.errors import ForbiddenError, NotFoundError, ValidationError
from ..utils.logging_config import get_logger
from ..utils.sanitization import sanitize_string
from .access_scope import AccessScope, JobCriteria, apply_job_criteria, apply_job_scope
from .booking_sync import BookingSynchronizer
from .notification_service import NotificationService
from .workflow import is_terminal_job_status, is_valid_job_transition

logger = get_logger(__name__)

# Accepted spellings that differ from the stored value
JOB_STATUS_ALIASES = {
    "en-route": JobStatus.EN_ROUTE,
}

COMPLETION_FORBIDDEN_MESSAGE = "Forbidden: Only drivers can mark jobs as completed"


def erp_job_number_in_use_message(erp_job_number: str) -> str:
    return f'ERP job number "{erp_job_number}" is already in use. Please enter a unique job number.'


def erp_job_number_in_use(db: Session, erp_job_number: str, exclude_booking_id: Optional[str] = None) -> bool:
    """
    True when another booking or job already carries this ERP job number.

    The booking given by exclude_booking_id and its own job do not count.
    """
    erp_job_number = (erp_job_number or "").strip()
    if not erp_job_number:
        return False

    jobs = db.query(Job.id).filter(Job.erp_job_number == erp_job_number)
    bookings = db.query(Booking.id).filter(Booking.erp_job_number == erp_job_number)
    if exclude_booking_id:
        jobs = jobs.filter(or_(Job.booking_id.is_(None), Job.booking_id != exclude_booking_id))
        bookings = bookings.filter(Booking.id != exclude_booking_id)

    return jobs.first() is not None or bookings.first() is not None


def parse_job_status(value) -> JobStatus:
    """Map a client-supplied status to JobStatus, or raise ValidationError."""
    if isinstance(value, JobStatus):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in JOB_STATUS_ALIASES:
            return JOB_STATUS_ALIASES[normalized]
        try:
            return JobStatus(normalized)
        except ValueError:
            pass
    raise ValidationError(
        f'Invalid job status "{value}"',
        to_status=str(value),
        fields={"status": f"must be one of: {', '.join(s.value for s in JobStatus)}"}
    )


class JobLifecycleManager:
    def __init__(
        self,
        db: Session,
        synchronizer: Optional[BookingSynchronizer] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.db = db
        self.synchronizer = synchronizer or BookingSynchronizer(db)
        self.notifications = notifications or NotificationService(db)

    # ============ Reads ============

    def get_job(self, job_id: str, scope: Optional[AccessScope] = None) -> Job:
        """Load a job with assets, history and evidence. Out-of-scope is NotFound."""
        query = self.db.query(Job).options(
            selectinload(Job.assets),
            selectinload(Job.status_history),
            selectinload(Job.evidence),
        )
        if scope is not None:
            query = apply_job_scope(query, scope)
        job = query.filter(Job.id == job_id).first()
        if not job:
            raise NotFoundError("Job", job_id)
        return job

    def list_jobs(
        self,
        scope: AccessScope,
        criteria: Optional[JobCriteria] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Job], int]:
        query = apply_job_scope(self.db.query(Job), scope)
        query = apply_job_criteria(query, criteria or JobCriteria(), scope)
        query = query.options(selectinload(Job.assets)).order_by(Job.created_at.desc(), Job.id.desc())
        return paginate_query(query, page, page_size)

    # ============ Status changes ============

    def update_job_status(
        self,
        job_id: str,
        new_status,
        changed_by: str,
        notes: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Job:
        """
        Move a job to new_status.

        actor_role is the caller's role; None means a trusted internal caller.
        Only drivers may complete a job, whatever its current status.

        Raises:
            ValidationError: unknown status, transition not allowed, or the
                job was changed by another request in the meantime
            ForbiddenError: non-driver completing a job
            NotFoundError: job does not exist
        """
        target = parse_job_status(new_status)

        if target == JobStatus.COMPLETED and actor_role is not None and actor_role != UserRole.DRIVER.value:
            raise ForbiddenError(COMPLETION_FORBIDDEN_MESSAGE)

        try:
            job = acquire_row_lock(self.db, Job, Job.id == job_id)
            if job is None:
                raise NotFoundError("Job", job_id)

            current = job.status
            if not is_valid_job_transition(current, target):
                raise ValidationError(
                    f'Invalid status transition from "{current}" to "{target.value}"',
                    from_status=current,
                    to_status=target.value,
                )

            now = datetime.utcnow()
            values = {Job.status: target.value, Job.updated_at: now}
            if target == JobStatus.COMPLETED and job.completed_date is None:
                values[Job.completed_date] = now
            if (
                target == JobStatus.EN_ROUTE
                and current != JobStatus.EN_ROUTE.value
                and job.estimated_arrival is None
                and job.scheduled_date is not None
            ):
                # No routing data here; the scheduled slot is the best estimate
                values[Job.estimated_arrival] = job.scheduled_date

            if compare_and_set_status(self.db, Job, job.id, current, values) == 0:
                raise ValidationError(
                    f'Job status changed by another request; expected "{current}"',
                    from_status=current,
                    to_status=target.value,
                )

            self.db.add(JobStatusHistory(
                job_id=job.id,
                status=target.value,
                changed_by=changed_by,
                notes=notes,
                created_at=now,
            ))
            self.db.flush()
            self.db.refresh(job)

            booking_status_before = job.booking.status if job.booking is not None else None
            self.synchronizer.sync_booking_from_job(job, changed_by)

            if current != target.value:
                self.notifications.notify_job_status_changed(job, target, booking_status_before)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.job_status_changed(job_id, current, target.value, changed_by)
        return self.get_job(job_id)

    def cancel_job(
        self,
        job_id: str,
        changed_by: str,
        notes: Optional[str] = None,
        actor_role: Optional[str] = None,
    ) -> Job:
        """
        Administrative cancellation from any non-terminal status.

        Not part of the job graph and not mirrored onto the booking; an admin
        cancels the booking separately if that is wanted.
        """
        if actor_role is not None and actor_role != UserRole.ADMIN.value:
            raise ForbiddenError("Forbidden: Only admins can cancel jobs")

        try:
            job = acquire_row_lock(self.db, Job, Job.id == job_id)
            if job is None:
                raise NotFoundError("Job", job_id)

            current = job.status
            if is_terminal_job_status(current):
                raise ValidationError(
                    f'Cannot cancel a job in status "{current}"',
                    from_status=current,
                    to_status=JobStatus.CANCELLED.value,
                )

            now = datetime.utcnow()
            values = {Job.status: JobStatus.CANCELLED.value, Job.updated_at: now}
            if compare_and_set_status(self.db, Job, job.id, current, values) == 0:
                raise ValidationError(
                    f'Job status changed by another request; expected "{current}"',
                    from_status=current,
                    to_status=JobStatus.CANCELLED.value,
                )

            self.db.add(JobStatusHistory(
                job_id=job.id,
                status=JobStatus.CANCELLED.value,
                changed_by=changed_by,
                notes=notes or "Job cancelled",
                created_at=now,
            ))
            self.db.flush()
            self.db.refresh(job)

            if job.driver_id:
                self.notifications.notify_job_status(job, JobStatus.CANCELLED, job.driver_id, UserRole.DRIVER.value)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.job_status_changed(job_id, current, JobStatus.CANCELLED.value, changed_by)
        return self.get_job(job_id)

    # ============ Creation and details ============

    def create_job_from_booking(
        self,
        booking: Booking,
        driver: User,
        changed_by: str,
        commit: bool = True,
    ) -> Job:
        """
        Create the job for a booking, or hand an existing one to a new driver.

        A new job copies the booking's client, site, estimates and assets and
        starts in routed. An existing job is moved to routed when the graph
        allows it; otherwise only the driver changes. Completed and cancelled
        jobs are refused.

        With commit=False the caller owns the transaction.
        """
        if not commit:
            return self._attach_job(booking, driver, changed_by)

        try:
            job = self._attach_job(booking, driver, changed_by)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self.get_job(job.id)

    def _attach_job(self, booking: Booking, driver: User, changed_by: str) -> Job:
        if not booking.erp_job_number:
            raise ValidationError("Booking must have ERP job number before creating job")

        if driver is None or driver.role != UserRole.DRIVER.value:
            raise NotFoundError("Driver", driver.id if driver is not None else None)

        now = datetime.utcnow()
        job = acquire_row_lock(self.db, Job, Job.booking_id == booking.id)

        if job is not None:
            previous = job.status
            if is_terminal_job_status(previous):
                raise ValidationError(
                    f'Cannot assign a driver to a job in "{previous}" status',
                    from_status=previous,
                    to_status=JobStatus.ROUTED.value,
                )

            values = {Job.driver_id: driver.id, Job.updated_at: now}
            reroute = previous != JobStatus.ROUTED.value and is_valid_job_transition(previous, JobStatus.ROUTED)
            if reroute:
                values[Job.status] = JobStatus.ROUTED.value

            if compare_and_set_status(self.db, Job, job.id, previous, values) == 0:
                raise ValidationError(
                    f'Job status changed by another request; expected "{previous}"',
                    from_status=previous,
                    to_status=JobStatus.ROUTED.value,
                )

            if reroute:
                self.db.add(JobStatusHistory(
                    job_id=job.id,
                    status=JobStatus.ROUTED.value,
                    changed_by=changed_by,
                    notes="Driver assigned - job moved to routed status",
                    created_at=now,
                ))
                self.db.flush()
                self.db.refresh(job)
                self.synchronizer.sync_booking_from_job(job, changed_by)
                logger.job_status_changed(job.id, previous, JobStatus.ROUTED.value, changed_by)
            else:
                self.db.refresh(job)
        else:
            if erp_job_number_in_use(self.db, booking.erp_job_number, exclude_booking_id=booking.id):
                raise ValidationError(
                    erp_job_number_in_use_message(booking.erp_job_number),
                    fields={"erp_job_number": "already in use"}
                )

            job = Job(
                erp_job_number=booking.erp_job_number,
                booking_id=booking.id,
                tenant_id=booking.tenant_id,
                client_name=booking.client.name if booking.client else None,
                site_name=booking.site_name,
                site_address=booking.site_address,
                status=JobStatus.ROUTED.value,
                scheduled_date=booking.scheduled_date,
                co2e_saved=booking.estimated_co2e or 0,
                buyback_value=booking.estimated_buyback or 0,
                charity_percent=booking.charity_percent or 0,
                driver_id=driver.id,
            )
            job.assets = [
                JobAsset(
                    position=asset.position,
                    category_name=asset.category_name,
                    quantity=asset.quantity,
                )
                for asset in booking.assets
            ]
            job.status_history = [JobStatusHistory(
                status=JobStatus.ROUTED.value,
                changed_by=changed_by,
                notes="Job created from booking",
                created_at=now,
            )]
            self.db.add(job)
            try:
                self.db.flush()
            except IntegrityError as exc:
                # A concurrent request took the ERP job number first
                raise ValidationError(
                    erp_job_number_in_use_message(booking.erp_job_number),
                    fields={"erp_job_number": "already in use"}
                ) from exc
            booking.job_id = job.id
            logger.info(f"Job {job.erp_job_number} created from booking {booking.booking_number}")

        self.db.flush()
        self.notifications.notify_driver_assigned(job, driver.id)
        return job

    def update_journey_fields(self, job_id: str, fields: Dict[str, Any]) -> Job:
        """
        Record the driver's journey details.

        Only while the job is routed, and every field must be filled in.
        """
        job = self.get_job(job_id)

        if job.status != JobStatus.ROUTED.value:
            raise ValidationError(
                f"Journey fields can only be updated when job is in 'routed' status. "
                f'Current status: "{job.status}"'
            )

        missing = [
            label for name, label in JOURNEY_FIELDS.items()
            if not isinstance(fields.get(name), str) or not fields.get(name).strip()
        ]
        if missing:
            raise ValidationError(
                f"All journey fields are required. Missing: {', '.join(missing)}",
                fields={name: "required" for name, label in JOURNEY_FIELDS.items() if label in missing}
            )

        for name in JOURNEY_FIELDS:
            setattr(job, name, sanitize_string(fields[name]))

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Journey fields recorded for job {job_id}")
        return self.get_job(job_id)
