"""
Booking <- Job status synchronization

A job status change can advance its booking one milestone, but only when the
booking is exactly one step behind. Anything else (booking already ahead,
booking far behind, booking cancelled) is skipped without error: the job
change has already been accepted and must not fail because of the booking.

Runs inside the caller's transaction; it flushes but never commits.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..models.booking import Booking, BookingStatus, BookingStatusHistory, BOOKING_STATUS_TIMESTAMPS
from ..models.job import Job, JobStatus
from ..utils.db_helpers import compare_and_set_status
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


# job status reached -> (booking status required, booking status applied)
SYNC_RULES = MappingProxyType({
    JobStatus.COLLECTED: (BookingStatus.SCHEDULED, BookingStatus.COLLECTED),
    JobStatus.SANITISED: (BookingStatus.COLLECTED, BookingStatus.SANITISED),
    JobStatus.GRADED: (BookingStatus.SANITISED, BookingStatus.GRADED),
    JobStatus.COMPLETED: (BookingStatus.GRADED, BookingStatus.COMPLETED),
})


def sync_rule_for(job_status) -> Optional[Tuple[BookingStatus, BookingStatus]]:
    try:
        return SYNC_RULES.get(JobStatus(job_status))
    except ValueError:
        return None


class BookingSynchronizer:
    def __init__(self, db: Session):
        self.db = db

    def sync_booking_from_job(self, job: Job, changed_by: str = "system") -> Optional[Booking]:
        """
        Advance the job's booking to match job.status when the rules allow.

        Returns the updated booking, or None when nothing changed.
        """
        if not job.booking_id:
            return None

        rule = sync_rule_for(job.status)
        if rule is None:
            return None
        required, target = rule

        booking = self.db.query(Booking).filter(Booking.id == job.booking_id).first()
        if booking is None:
            logger.warning(f"Job {job.id} references missing booking {job.booking_id}")
            return None

        if booking.status != required.value:
            logger.debug(
                f"Booking {booking.id} not synced: job reached {job.status}, "
                f"booking is {booking.status} (needs {required.value})"
            )
            return None

        now = datetime.utcnow()
        values = {Booking.status: target.value, Booking.updated_at: now}
        stamp_column = BOOKING_STATUS_TIMESTAMPS.get(target)
        if stamp_column and getattr(booking, stamp_column) is None:
            values[getattr(Booking, stamp_column)] = now

        updated = compare_and_set_status(self.db, Booking, booking.id, required.value, values)
        if updated == 0:
            # Another writer moved the booking first
            logger.debug(f"Booking {booking.id} changed concurrently, sync skipped")
            return None

        self.db.add(BookingStatusHistory(
            booking_id=booking.id,
            status=target.value,
            changed_by=changed_by,
            notes=f"Updated from job status: {job.status}",
            created_at=now,
        ))
        self.db.flush()
        self.db.refresh(booking)

        logger.booking_synced(booking.id, job.id, required.value, target.value)
        return booking
