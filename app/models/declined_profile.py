from sqlalchemy import Column, DateTime, ForeignKey, String, Boolean, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
from app.core.database import Base


class DeclinedSource:
    INTEREST_WITHDRAWN = "interest_withdrawn"
    CONNECTION_WITHDRAWN = "connection_withdrawn"
    PROFILE_DECLINED = "profile_declined"


class DeclinedProfile(Base):
    """User ``user_id`` no longer wants ``declined_user_id`` in their feed."""
    __tablename__ = "declined_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    declined_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    source = Column(String(50))
    hidden_from_reconsider = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    __table_args__ = (UniqueConstraint("user_id", "declined_user_id", name="unique_user_declined_user"),)

    def __repr__(self):
        return f"<DeclinedProfile(user_id={self.user_id}, declined_user_id={self.declined_user_id}, source={self.source})>"
