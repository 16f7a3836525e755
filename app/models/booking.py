import uuid
from datetime import datetime
from sqlalchemy import Column, String, Float, Integer, Text, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class BookingStatus(str, enum.Enum):
    CREATED = "created"
    SCHEDULED = "scheduled"
    COLLECTED = "collected"
    SANITISED = "sanitised"
    GRADED = "graded"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Milestone timestamp column stamped the first time a booking reaches each status
BOOKING_STATUS_TIMESTAMPS = {
    BookingStatus.SCHEDULED: "scheduled_at",
    BookingStatus.COLLECTED: "collected_at",
    BookingStatus.SANITISED: "sanitised_at",
    BookingStatus.GRADED: "graded_at",
    BookingStatus.COMPLETED: "completed_at",
}


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_number = Column(String(40), unique=True, nullable=False)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    reseller_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Collection site
    site_name = Column(String(200), nullable=True)
    site_address = Column(Text, nullable=True)
    postcode = Column(String(20), nullable=True)

    status = Column(String(30), nullable=False, default=BookingStatus.CREATED.value, index=True)
    scheduled_date = Column(DateTime, nullable=True)

    # Stamped once, never rolled back
    scheduled_at = Column(DateTime, nullable=True)
    collected_at = Column(DateTime, nullable=True)
    sanitised_at = Column(DateTime, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Estimates are supplied by the caller
    estimated_co2e = Column(Float, default=0)
    estimated_buyback = Column(Float, default=0)
    charity_percent = Column(Float, default=0)

    # Dispatch
    erp_job_number = Column(String(100), nullable=True)
    job_id = Column(String(36), nullable=True)
    driver_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    driver_name = Column(String(200), nullable=True)
    scheduled_by = Column(String(36), nullable=True)

    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    client = relationship("Client", back_populates="bookings")
    job = relationship("Job", back_populates="booking", uselist=False, foreign_keys="Job.booking_id")
    assets = relationship(
        "BookingAsset",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingAsset.position",
    )
    status_history = relationship(
        "BookingStatusHistory",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by=lambda: (BookingStatusHistory.created_at.desc(), BookingStatusHistory.id.desc()),
    )

    __table_args__ = (
        Index("ix_booking_tenant_status", "tenant_id", "status"),
    )

    def __repr__(self):
        return f"<Booking {self.booking_number} - {self.status}>"


class BookingAsset(Base):
    __tablename__ = "booking_assets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    category_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    booking = relationship("Booking", back_populates="assets")


class BookingStatusHistory(Base):
    """Append-only audit trail of booking status changes"""
    __tablename__ = "booking_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(30), nullable=False)
    changed_by = Column(String(36), nullable=False)  # user id or "system"
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    booking = relationship("Booking", back_populates="status_history")

    def __repr__(self):
        return f"<BookingStatusHistory {self.booking_id} -> {self.status}>"
