from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Enum, JSON
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
import enum
from app.core.database import Base


class NotificationType(str, enum.Enum):
    NEW_INTEREST = "new_interest"
    INTEREST_ACCEPTED = "interest_accepted"
    INTEREST_REJECTED = "interest_rejected"
    INTEREST_WITHDRAWN = "interest_withdrawn"
    CONNECTION_WITHDRAWN = "connection_withdrawn"
    MUTUAL_MATCH = "mutual_match"


class DeliveryStatus(str, enum.Enum):
    pending = "pending"
    delivered = "delivered"
    failed = "failed"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationType), nullable=False, index=True)
    data = Column(JSON)  # event payload (sender id, interest id, ...)

    is_read = Column(Boolean, nullable=False, default=False, index=True)
    read_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Email delivery tracking
    delivery_status = Column(
        Enum(DeliveryStatus, name="deliverystatus"),
        nullable=False,
        default=DeliveryStatus.pending,
        server_default="pending",
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, user={self.user_id}, type={self.type}, is_read={self.is_read})>"
