"""
Notification Service

Queues in-app notifications for job and booking milestones. Notifications are
added to the caller's session and commit (or roll back) with the status change
that caused them.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.booking import Booking
from ..models.job import Job, JobStatus, DRIVER_HISTORY_STATUSES
from ..models.notification import Notification, NotificationType
from ..models.user import User, UserRole, UserStatus
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


JOB_STATUS_MESSAGES = {
    JobStatus.ROUTED: ("Job assigned", "Job {number} has been assigned to you", NotificationType.INFO),
    JobStatus.EN_ROUTE: ("Job in progress", "Job {number} is now en route", NotificationType.INFO),
    JobStatus.ARRIVED: ("Arrived at site", "You have arrived at the collection site for job {number}", NotificationType.INFO),
    JobStatus.COLLECTED: ("Job collected", "Job {number} has been collected", NotificationType.SUCCESS),
    JobStatus.WAREHOUSE: ("Job delivered", "Job {number} has been delivered to warehouse", NotificationType.SUCCESS),
    JobStatus.SANITISED: ("Job sanitised", "Job {number} has been sanitised", NotificationType.INFO),
    JobStatus.GRADED: ("Job graded", "Job {number} has been graded", NotificationType.INFO),
    JobStatus.COMPLETED: ("Job completed", "Job {number} has been completed", NotificationType.SUCCESS),
    JobStatus.CANCELLED: ("Job cancelled", "Job {number} has been cancelled", NotificationType.WARNING),
}

BOOKING_STATUS_MESSAGES = {
    "scheduled": ("Booking scheduled", "Booking {number} has been scheduled", NotificationType.INFO),
    "collected": ("Booking collected", "Booking {number} has been collected", NotificationType.SUCCESS),
    "sanitised": ("Booking sanitised", "Booking {number} has been sanitised", NotificationType.INFO),
    "graded": ("Booking graded", "Booking {number} has been graded", NotificationType.INFO),
    "completed": ("Booking completed", "Booking {number} has been completed", NotificationType.SUCCESS),
    "cancelled": ("Booking cancelled", "Booking {number} has been cancelled", NotificationType.WARNING),
}

# Admins are told about these job milestones
ADMIN_JOB_STATUSES = (JobStatus.WAREHOUSE, JobStatus.SANITISED, JobStatus.COMPLETED)

# Resellers are only told about the important booking milestones
RESELLER_JOB_STATUSES = (JobStatus.WAREHOUSE, JobStatus.GRADED, JobStatus.COMPLETED)


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        user_id: str,
        tenant_id: str,
        notification_type: NotificationType,
        title: str,
        message: Optional[str] = None,
        url: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            tenant_id=tenant_id,
            type=notification_type.value,
            title=title,
            message=message,
            url=url,
            entity_type=entity_type,
            entity_id=entity_id,
            is_read=False,
        )
        self.db.add(notification)
        return notification

    def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    def unread_count(self, user_id: str) -> int:
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False)
        ).count()

    def mark_as_read(self, notification_id: str, user_id: str) -> Optional[Notification]:
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()
        if notification is None:
            return None
        if not notification.is_read:
            notification.mark_as_read()
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_as_read(self, user_id: str) -> int:
        notifications = self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False)
        ).all()
        for notification in notifications:
            notification.mark_as_read()
        self.db.commit()
        return len(notifications)

    # ============ Workflow notifications ============

    def notify_job_status(self, job: Job, status: JobStatus, user_id: str, role: str):
        entry = JOB_STATUS_MESSAGES.get(status)
        if entry is None:
            return
        title, template, notification_type = entry

        if role == UserRole.DRIVER.value and status not in DRIVER_HISTORY_STATUSES:
            url = f"/driver/jobs/{job.id}"
        else:
            url = f"/jobs/{job.id}"

        self.create_notification(
            user_id, job.tenant_id, notification_type, title,
            template.format(number=job.erp_job_number), url, "job", job.id
        )

    def notify_booking_status(self, booking: Booking, status: str, user_id: str):
        entry = BOOKING_STATUS_MESSAGES.get(status)
        if entry is None:
            return
        title, template, notification_type = entry
        self.create_notification(
            user_id, booking.tenant_id, notification_type, title,
            template.format(number=booking.booking_number),
            f"/bookings/{booking.id}", "booking", booking.id
        )

    def notify_job_status_changed(self, job: Job, new_status: JobStatus, booking_status_before: Optional[str]):
        """
        Fan out notifications for a job status change.

        - driver: when assets reach the warehouse
        - client (or booking creator): driver en route/arrived and every
          milestone from collected on
        - reseller: warehouse, graded and completed
        - admins: warehouse, sanitised and completed
        """
        if job.driver_id and new_status == JobStatus.WAREHOUSE:
            self.notify_job_status(job, new_status, job.driver_id, UserRole.DRIVER.value)

        booking = job.booking
        if booking is not None:
            self._notify_booking_parties(job, booking, new_status, booking_status_before)

        if new_status in ADMIN_JOB_STATUSES:
            admin_ids = self._active_admin_ids()
            if not admin_ids:
                logger.warning(f"No admin users to notify for job {job.id} -> {new_status.value}")
            for admin_id in admin_ids:
                self.notify_job_status(job, new_status, admin_id, UserRole.ADMIN.value)

    def notify_driver_assigned(self, job: Job, driver_id: str):
        self.notify_job_status(job, JobStatus.ROUTED, driver_id, UserRole.DRIVER.value)

    def notify_driver_assignment(self, booking: Booking, driver_name: str):
        """Tell the booking creator (and a separate reseller) who is collecting."""
        recipients = [booking.created_by]
        if booking.reseller_id and booking.reseller_id != booking.created_by:
            recipients.append(booking.reseller_id)

        for user_id in recipients:
            if not user_id:
                continue
            self.create_notification(
                user_id, booking.tenant_id, NotificationType.INFO, "Driver assigned",
                f"Driver {driver_name} has been assigned to booking {booking.booking_number}",
                f"/bookings/{booking.id}", "booking", booking.id
            )

    def notify_booking_status_changed(self, booking: Booking, new_status: str):
        """
        Admin-initiated booking status change.

        scheduled/sanitised/graded/completed are announced by driver
        assignment and job changes instead, so only collected and cancelled
        are sent from here.
        """
        if new_status not in ("collected", "cancelled"):
            return

        client_user_id = self._client_user_id(booking)
        if client_user_id:
            self.notify_booking_status(booking, new_status, client_user_id)

        reseller_id = booking.reseller_id or (booking.client.reseller_id if booking.client else None)
        if new_status == "cancelled" and reseller_id and reseller_id != client_user_id:
            self.notify_booking_status(booking, new_status, reseller_id)

    def _notify_booking_parties(self, job: Job, booking: Booking, new_status: JobStatus,
                                booking_status_before: Optional[str]):
        client_user_id = self._client_user_id(booking)
        reseller_id = booking.reseller_id or (booking.client.reseller_id if booking.client else None)
        url = f"/bookings/{booking.id}"

        if new_status == JobStatus.EN_ROUTE:
            if client_user_id:
                self.create_notification(
                    client_user_id, booking.tenant_id, NotificationType.INFO, "Driver en route",
                    f"The driver for booking {booking.booking_number} is now en route to your location",
                    url, "booking", booking.id
                )
            return

        if new_status == JobStatus.ARRIVED:
            if client_user_id:
                self.create_notification(
                    client_user_id, booking.tenant_id, NotificationType.INFO, "Driver arrived",
                    f"The driver for booking {booking.booking_number} has arrived at your location",
                    url, "booking", booking.id
                )
            return

        recipients = []
        if new_status == JobStatus.COLLECTED:
            # Skip if the booking was already collected, to avoid a duplicate
            if booking_status_before != "collected" and booking.created_by:
                recipients.append(booking.created_by)
        elif new_status in (JobStatus.WAREHOUSE, JobStatus.SANITISED, JobStatus.GRADED, JobStatus.COMPLETED):
            if client_user_id:
                recipients.append(client_user_id)
            if reseller_id and reseller_id != client_user_id and new_status in RESELLER_JOB_STATUSES:
                recipients.append(reseller_id)

        for user_id in recipients:
            if new_status == JobStatus.WAREHOUSE:
                self.create_notification(
                    user_id, booking.tenant_id, NotificationType.SUCCESS, "Assets delivered to warehouse",
                    f"Assets for booking {booking.booking_number} have been delivered to the warehouse",
                    url, "booking", booking.id
                )
            else:
                self.notify_booking_status(booking, new_status.value, user_id)

    def _client_user_id(self, booking: Booking) -> Optional[str]:
        """The invited client user for the booking's Client, else the booking creator."""
        client = booking.client
        if client is not None and client.email:
            user = self.db.query(User.id).filter(
                User.tenant_id == booking.tenant_id,
                User.email == client.email,
                User.role == UserRole.CLIENT.value
            ).first()
            if user:
                return user[0]
        return booking.created_by

    def _active_admin_ids(self) -> List[str]:
        # Admins are global across tenants
        rows = self.db.query(User.id).filter(
            User.role == UserRole.ADMIN.value,
            User.status == UserStatus.ACTIVE.value
        ).all()
        return [r[0] for r in rows]
