import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from ..database import Base


class Tenant(Base):
    """An isolated customer organisation; most data is scoped to exactly one tenant."""
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Tenant {self.name}>"
