# Services package
from .workflow import (
    BOOKING_TRANSITIONS,
    JOB_TRANSITIONS,
    is_valid_transition,
    is_valid_booking_transition,
    is_valid_job_transition,
    next_booking_statuses,
    next_job_statuses,
    is_terminal_booking_status,
    is_terminal_job_status,
)
from .access_scope import AccessScope, BookingCriteria, JobCriteria, resolve_scope, apply_booking_scope, apply_job_scope
from .booking_sync import BookingSynchronizer
from .evidence_service import EvidenceLedger
from .notification_service import NotificationService
from .job_service import JobLifecycleManager, parse_job_status
from .booking_service import BookingService, generate_booking_number

__all__ = [
    "BOOKING_TRANSITIONS", "JOB_TRANSITIONS",
    "is_valid_transition", "is_valid_booking_transition", "is_valid_job_transition",
    "next_booking_statuses", "next_job_statuses",
    "is_terminal_booking_status", "is_terminal_job_status",
    "AccessScope", "BookingCriteria", "JobCriteria",
    "resolve_scope", "apply_booking_scope", "apply_job_scope",
    "BookingSynchronizer",
    "EvidenceLedger",
    "NotificationService",
    "JobLifecycleManager", "parse_job_status",
    "BookingService", "generate_booking_number",
]
