"""
Workflow Transition Tables

Allowed status moves for bookings and jobs. Both graphs are read-only and
shared by every request. Staying in the same status is always allowed so a
repeated request (a double-tap in the driver app, a retried call) is a no-op
rather than an error.

Booking:
    created -> scheduled | cancelled
    scheduled -> collected | cancelled
    collected -> sanitised -> graded -> completed

Job:
    booked -> routed | en_route
    routed -> en_route -> arrived -> collected
    collected -> warehouse | completed
    warehouse -> sanitised -> graded -> completed

completed and cancelled are terminal in both graphs. No job status leads to
cancelled; see JobLifecycleManager.cancel_job.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping, Union

from ..models.booking import BookingStatus
from ..models.job import JobStatus


StatusLike = Union[str, BookingStatus, JobStatus]


BOOKING_TRANSITIONS: Mapping[BookingStatus, FrozenSet[BookingStatus]] = MappingProxyType({
    BookingStatus.CREATED: frozenset({BookingStatus.SCHEDULED, BookingStatus.CANCELLED}),
    BookingStatus.SCHEDULED: frozenset({BookingStatus.COLLECTED, BookingStatus.CANCELLED}),
    BookingStatus.COLLECTED: frozenset({BookingStatus.SANITISED}),
    BookingStatus.SANITISED: frozenset({BookingStatus.GRADED}),
    BookingStatus.GRADED: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
})

JOB_TRANSITIONS: Mapping[JobStatus, FrozenSet[JobStatus]] = MappingProxyType({
    JobStatus.BOOKED: frozenset({JobStatus.ROUTED, JobStatus.EN_ROUTE}),
    JobStatus.ROUTED: frozenset({JobStatus.EN_ROUTE}),
    JobStatus.EN_ROUTE: frozenset({JobStatus.ARRIVED}),
    JobStatus.ARRIVED: frozenset({JobStatus.COLLECTED}),
    # Assets may go straight to completed when no warehouse processing is needed
    JobStatus.COLLECTED: frozenset({JobStatus.WAREHOUSE, JobStatus.COMPLETED}),
    JobStatus.WAREHOUSE: frozenset({JobStatus.SANITISED}),
    JobStatus.SANITISED: frozenset({JobStatus.GRADED}),
    JobStatus.GRADED: frozenset({JobStatus.COMPLETED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
})


def _coerce(value: StatusLike, enum_cls):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def is_valid_transition(from_status: StatusLike, to_status: StatusLike, table: Mapping) -> bool:
    """
    True if moving from_status -> to_status is allowed by table.

    Same status is always valid. An unknown from_status is rejected.
    """
    enum_cls = type(next(iter(table)))
    current = _coerce(from_status, enum_cls)
    target = _coerce(to_status, enum_cls)
    if current is None or target is None:
        return False
    if current == target:
        return True
    return target in table.get(current, frozenset())


def is_valid_booking_transition(from_status: StatusLike, to_status: StatusLike) -> bool:
    return is_valid_transition(from_status, to_status, BOOKING_TRANSITIONS)


def is_valid_job_transition(from_status: StatusLike, to_status: StatusLike) -> bool:
    return is_valid_transition(from_status, to_status, JOB_TRANSITIONS)


def next_booking_statuses(status: StatusLike) -> FrozenSet[BookingStatus]:
    current = _coerce(status, BookingStatus)
    if current is None:
        return frozenset()
    return BOOKING_TRANSITIONS[current]


def next_job_statuses(status: StatusLike) -> FrozenSet[JobStatus]:
    current = _coerce(status, JobStatus)
    if current is None:
        return frozenset()
    return JOB_TRANSITIONS[current]


def is_terminal_booking_status(status: StatusLike) -> bool:
    return _coerce(status, BookingStatus) in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


def is_terminal_job_status(status: StatusLike) -> bool:
    return _coerce(status, JobStatus) in (JobStatus.COMPLETED, JobStatus.CANCELLED)
