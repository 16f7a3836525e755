# Models package
from .tenant import Tenant
from .user import User, UserRole, UserStatus
from .client import Client
from .booking import Booking, BookingAsset, BookingStatusHistory, BookingStatus, BOOKING_STATUS_TIMESTAMPS
from .job import Job, JobAsset, JobStatusHistory, JobStatus, DRIVER_HISTORY_STATUSES, JOURNEY_FIELDS
from .evidence import Evidence
from .notification import Notification, NotificationType, NOTIFICATION_ICONS

__all__ = [
    "Tenant",
    "User", "UserRole", "UserStatus",
    "Client",
    "Booking", "BookingAsset", "BookingStatusHistory", "BookingStatus", "BOOKING_STATUS_TIMESTAMPS",
    "Job", "JobAsset", "JobStatusHistory", "JobStatus", "DRIVER_HISTORY_STATUSES", "JOURNEY_FIELDS",
    "Evidence",
    "Notification", "NotificationType", "NOTIFICATION_ICONS",
]
