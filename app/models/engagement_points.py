from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
from app.core.database import Base


class EngagementPoints(Base):
    __tablename__ = "engagement_points"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(String(50), nullable=False)
    interest_id = Column(UUID(as_uuid=True), nullable=True)  # interest may since be deleted
    points = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # A retried job must not award twice
    __table_args__ = (UniqueConstraint("user_id", "kind", "interest_id", name="unique_points_award"),)

    def __repr__(self):
        return f"<EngagementPoints(user_id={self.user_id}, kind={self.kind}, points={self.points})>"
