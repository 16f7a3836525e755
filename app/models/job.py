import uuid
from datetime import datetime
from sqlalchemy import Column, String, Float, Integer, Text, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class JobStatus(str, enum.Enum):
    BOOKED = "booked"
    ROUTED = "routed"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    COLLECTED = "collected"
    WAREHOUSE = "warehouse"
    SANITISED = "sanitised"
    GRADED = "graded"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Driver's part of the job is over once assets reach the warehouse
DRIVER_HISTORY_STATUSES = (
    JobStatus.WAREHOUSE,
    JobStatus.SANITISED,
    JobStatus.GRADED,
    JobStatus.COMPLETED,
)

JOURNEY_FIELDS = {
    "dial2_collection": "DIAL 2 Collection",
    "security_requirements": "Security Requirements",
    "id_required": "ID Required",
    "loading_bay_location": "Loading Bay Location",
    "vehicle_height_restrictions": "Vehicle Height Restrictions",
    "door_lift_size": "Door & Lift Size",
    "road_works_public_events": "Road Works / Public Events",
    "manual_handling_requirements": "Manual Handling Requirements",
}


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    erp_job_number = Column(String(100), unique=True, nullable=False)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, unique=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    # Snapshot copied from the booking when the job is created
    client_name = Column(String(200), nullable=True)
    site_name = Column(String(200), nullable=True)
    site_address = Column(Text, nullable=True)

    status = Column(String(30), nullable=False, default=JobStatus.BOOKED.value, index=True)
    scheduled_date = Column(DateTime, nullable=True)
    completed_date = Column(DateTime, nullable=True)
    estimated_arrival = Column(DateTime, nullable=True)

    driver_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    co2e_saved = Column(Float, default=0)
    travel_emissions = Column(Float, default=0)
    buyback_value = Column(Float, default=0)
    charity_percent = Column(Float, default=0)

    # Journey details entered by the driver while the job is routed
    dial2_collection = Column(Text, nullable=True)
    security_requirements = Column(Text, nullable=True)
    id_required = Column(Text, nullable=True)
    loading_bay_location = Column(Text, nullable=True)
    vehicle_height_restrictions = Column(Text, nullable=True)
    door_lift_size = Column(Text, nullable=True)
    road_works_public_events = Column(Text, nullable=True)
    manual_handling_requirements = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    booking = relationship("Booking", back_populates="job", foreign_keys=[booking_id])
    driver = relationship("User", foreign_keys=[driver_id])
    assets = relationship(
        "JobAsset",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="JobAsset.position",
    )
    status_history = relationship(
        "JobStatusHistory",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by=lambda: (JobStatusHistory.created_at.desc(), JobStatusHistory.id.desc()),
    )
    evidence = relationship(
        "Evidence",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="Evidence.created_at",
    )

    __table_args__ = (
        Index("ix_job_tenant_status", "tenant_id", "status"),
    )

    def __repr__(self):
        return f"<Job {self.erp_job_number} - {self.status}>"


class JobAsset(Base):
    __tablename__ = "job_assets"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    category_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    job = relationship("Job", back_populates="assets")


class JobStatusHistory(Base):
    """Append-only audit trail of job status changes"""
    __tablename__ = "job_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(30), nullable=False)
    changed_by = Column(String(36), nullable=False)  # user id or "system"
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    job = relationship("Job", back_populates="status_history")

    def __repr__(self):
        return f"<JobStatusHistory {self.job_id} -> {self.status}>"
