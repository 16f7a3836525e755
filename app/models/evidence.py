"""
Evidence Model

Proof-of-work captured by a driver at a job status milestone.

- UNIQUE(job_id, status): at most one evidence record per milestone,
  enforced by the database so concurrent submissions cannot both succeed
- Write-once: there is no update or delete path
- uploaded_by is nulled (not the record) if the uploading user is removed
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from ..database import Base


class Evidence(Base):
    __tablename__ = "evidence"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)

    # The job status this evidence documents
    status = Column(String(30), nullable=False)

    # Opaque references (base64 data URL, local path or object-storage key)
    photos = Column(JSON, nullable=False, default=list)
    signature = Column(Text, nullable=True)
    seal_numbers = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    uploaded_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    job = relationship("Job", back_populates="evidence")

    __table_args__ = (
        UniqueConstraint("job_id", "status", name="uq_evidence_job_status"),
    )

    def __repr__(self):
        return f"<Evidence job={self.job_id} status={self.status}>"
