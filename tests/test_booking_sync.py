"""
Tests for BookingSynchronizer

The booking only follows the job when it is exactly one milestone behind;
every other combination is skipped without error.
"""

import pytest
from datetime import datetime
from unittest.mock import patch

from app.models import BookingStatus, BookingStatusHistory, JobStatus
from app.services.booking_sync import BookingSynchronizer, SYNC_RULES, sync_rule_for


@pytest.fixture
def synchronizer(db):
    return BookingSynchronizer(db)


def booking_history(db, booking_id):
    return db.query(BookingStatusHistory).filter(BookingStatusHistory.booking_id == booking_id).all()


class TestSyncRules:
    def test_rule_table(self):
        assert sync_rule_for(JobStatus.COLLECTED) == (BookingStatus.SCHEDULED, BookingStatus.COLLECTED)
        assert sync_rule_for("sanitised") == (BookingStatus.COLLECTED, BookingStatus.SANITISED)
        assert sync_rule_for("graded") == (BookingStatus.SANITISED, BookingStatus.GRADED)
        assert sync_rule_for("completed") == (BookingStatus.GRADED, BookingStatus.COMPLETED)

    @pytest.mark.parametrize("status", ["booked", "routed", "en_route", "arrived", "warehouse", "cancelled", "bogus"])
    def test_statuses_without_rule(self, status):
        assert sync_rule_for(status) is None

    def test_rules_are_read_only(self):
        with pytest.raises(TypeError):
            SYNC_RULES[JobStatus.WAREHOUSE] = (BookingStatus.COLLECTED, BookingStatus.COLLECTED)


class TestSyncBookingFromJob:
    def test_booking_behind_by_one_advances(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="collected")
        job = factory.job(tenant, booking=booking, status="sanitised")

        result = synchronizer.sync_booking_from_job(job, "driver-1")

        assert result is not None
        assert result.status == "sanitised"
        assert result.sanitised_at is not None
        history = booking_history(db, booking.id)
        assert len(history) == 1
        assert history[0].status == "sanitised"
        assert history[0].changed_by == "driver-1"
        assert history[0].notes == "Updated from job status: sanitised"

    def test_booking_too_far_behind_is_skipped(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="scheduled")
        job = factory.job(tenant, booking=booking, status="sanitised")

        assert synchronizer.sync_booking_from_job(job) is None

        db.refresh(booking)
        assert booking.status == "scheduled"
        assert booking.sanitised_at is None
        assert booking_history(db, booking.id) == []

    def test_timestamp_stamped_exactly_once(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="collected")
        job = factory.job(tenant, booking=booking, status="sanitised")

        synchronizer.sync_booking_from_job(job)
        db.commit()
        db.refresh(booking)
        first_stamp = booking.sanitised_at

        # Booking is no longer one behind; a repeat is a no-op
        assert synchronizer.sync_booking_from_job(job) is None
        db.refresh(booking)
        assert booking.sanitised_at == first_stamp
        assert len(booking_history(db, booking.id)) == 1

    def test_existing_timestamp_is_kept(self, db, synchronizer, factory, tenant):
        earlier = datetime(2026, 1, 5, 14, 0)
        booking = factory.booking(tenant, status="collected", sanitised_at=earlier)
        job = factory.job(tenant, booking=booking, status="sanitised")

        result = synchronizer.sync_booking_from_job(job)

        assert result.status == "sanitised"
        assert result.sanitised_at == earlier

    def test_cancelled_booking_is_left_alone(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="cancelled")
        job = factory.job(tenant, booking=booking, status="collected")

        assert synchronizer.sync_booking_from_job(job) is None
        db.refresh(booking)
        assert booking.status == "cancelled"

    def test_booking_ahead_is_left_alone(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="graded")
        job = factory.job(tenant, booking=booking, status="collected")

        assert synchronizer.sync_booking_from_job(job) is None
        db.refresh(booking)
        assert booking.status == "graded"

    def test_job_without_booking(self, synchronizer, factory, tenant):
        job = factory.job(tenant, status="collected")
        assert synchronizer.sync_booking_from_job(job) is None

    def test_status_without_rule(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="collected")
        job = factory.job(tenant, booking=booking, status="warehouse")

        assert synchronizer.sync_booking_from_job(job) is None
        db.refresh(booking)
        assert booking.status == "collected"

    def test_concurrent_booking_change_discards_sync(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="scheduled")
        job = factory.job(tenant, booking=booking, status="collected")

        with patch("app.services.booking_sync.compare_and_set_status", return_value=0):
            assert synchronizer.sync_booking_from_job(job) is None

        assert booking_history(db, booking.id) == []

    def test_completed_from_graded(self, db, synchronizer, factory, tenant):
        booking = factory.booking(tenant, status="graded")
        job = factory.job(tenant, booking=booking, status="completed")

        result = synchronizer.sync_booking_from_job(job)

        assert result.status == "completed"
        assert result.completed_at is not None
