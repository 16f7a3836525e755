import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from ..database import Base


class Client(Base):
    """
    A customer organisation record inside a tenant.

    Client users are matched to these records by email within their tenant;
    resellers own the records whose reseller_id points at them.
    """
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    organisation_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)

    reseller_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    reseller = relationship("User", foreign_keys=[reseller_id])
    bookings = relationship("Booking", back_populates="client")

    __table_args__ = (
        Index("ix_client_email_tenant", "email", "tenant_id"),
    )

    def __repr__(self):
        return f"<Client {self.name}>"
