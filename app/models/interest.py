from sqlalchemy import Column, DateTime, ForeignKey, Text, Enum, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from app.core.database import Base


class InterestStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class Interest(Base):
    __tablename__ = "interests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    message = Column(Text)  # immutable after creation
    status = Column(
        Enum(InterestStatus, name="intereststatus"),
        nullable=False,
        default=InterestStatus.pending,
        index=True,
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])

    # One interest per ordered pair, never to oneself
    __table_args__ = (
        UniqueConstraint("sender_id", "receiver_id", name="unique_sender_receiver_interest"),
        CheckConstraint("sender_id <> receiver_id", name="ck_interest_not_self"),
        Index("idx_interests_receiver_created", "receiver_id", "created_at"),
    )

    def __repr__(self):
        return f"<Interest(sender_id={self.sender_id}, receiver_id={self.receiver_id}, status={self.status})>"
