"""
Notification Model - in-app notifications for job and booking milestones
"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship
import enum

from ..database import Base


class NotificationType(str, enum.Enum):
    """Severity shown by the frontend"""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


NOTIFICATION_ICONS = {
    NotificationType.INFO: "info",
    NotificationType.SUCCESS: "check",
    NotificationType.WARNING: "alert-triangle",
    NotificationType.ERROR: "x-circle",
}


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)

    type = Column(String(20), nullable=False, default=NotificationType.INFO.value)

    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=True)
    url = Column(String(500), nullable=True)

    # Related entity (job, booking)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(36), nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        Index("ix_notification_user_read", "user_id", "is_read"),
    )

    def __repr__(self):
        return f"<Notification {self.type} - {self.title}>"

    @property
    def icon(self) -> str:
        try:
            return NOTIFICATION_ICONS[NotificationType(self.type)]
        except ValueError:
            return NOTIFICATION_ICONS[NotificationType.INFO]

    def mark_as_read(self):
        self.is_read = True
        self.read_at = datetime.utcnow()
